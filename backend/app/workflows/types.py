# app/workflows/types.py
# 审批流程共享数据类型
#
# Orchestrator、Gateway、TransitionEngine 之间传递的数据结构都放在这里，
# 不依赖任何基础设施模块。

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


# ==================== 命令名称 ====================

START_COMMAND = "Start"
APPROVE_COMMAND = "Approve"
REJECT_COMMAND = "Reject"


# ==================== 待审批条目 ====================

@dataclass(frozen=True)
class Item:
    """
    待审批条目快照

    每次触发时从数据源重新获取，只读，不单独跟踪。
    整个批次共用一个审批流程。

    Attributes:
        name: 名称
        category: 类别
        description: 描述
    """
    name: str
    category: str = ""
    description: str = ""


# ==================== 审批决策 ====================

class Decision(str, Enum):
    """审批决策"""
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def command_name(self) -> str:
        """对应的流程命令名称"""
        return APPROVE_COMMAND if self is Decision.APPROVE else REJECT_COMMAND

    @classmethod
    def from_token(cls, token: Optional[str]) -> "Decision":
        """
        解析链接中的 decision 参数

        只有 "approve"（不区分大小写）解析为 APPROVE，
        其他任何值（包括缺失）一律按 REJECT 处理。
        """
        if token is not None and token.strip().lower() == cls.APPROVE.value:
            return cls.APPROVE
        return cls.REJECT


@dataclass(frozen=True)
class WorkflowCommand:
    """
    流程命令

    由 TransitionEngine.get_legal_commands 返回，携带执行所需的全部上下文，
    原样传回 execute_command。

    Attributes:
        process_id: 流程 ID
        name: 命令名称（Start / Approve / Reject）
        from_state: 命令生效前的状态
        to_state: 命令生效后的状态
    """
    process_id: str
    name: str
    from_state: str
    to_state: str

    def matches(self, name: str) -> bool:
        return self.name.lower() == name.lower()


@dataclass
class DecisionOutcome:
    """
    决策结果

    Attributes:
        recorded: 是否实际完成了流转
        decision: 归一化后的决策
        message: 返回给点击者的文本
    """
    recorded: bool
    decision: Decision
    message: str


@dataclass
class TickResult:
    """
    一次定时触发的结果

    Attributes:
        process_id: 新建的流程 ID；批次为空被跳过时为 None
        item_count: 条目数量
        recipients: 实际收件人
        notified: 通知是否发送成功
    """
    process_id: Optional[str]
    item_count: int
    recipients: list[str] = field(default_factory=list)
    notified: bool = False
    started_at: datetime = field(default_factory=datetime.now)
