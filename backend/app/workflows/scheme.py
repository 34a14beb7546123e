# app/workflows/scheme.py
# 流程方案定义
#
# 方案是一组声明式的状态流转：(起始状态, 命令, 目标状态)。
# 引擎根据流程当前状态查出可执行的命令，执行后切换到目标状态。
#
# 内置 SimpleWF 方案：
#   Created --Start--> PendingDecision --Approve--> Approved
#                                      --Reject---> Rejected

from dataclasses import dataclass

from app.core.exceptions import UnknownSchemeError
from app.workflows.types import (
    APPROVE_COMMAND,
    REJECT_COMMAND,
    START_COMMAND,
    WorkflowCommand,
)


class ProcessState:
    """SimpleWF 方案中的状态名称"""
    CREATED = "Created"
    PENDING_DECISION = "PendingDecision"
    APPROVED = "Approved"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class Transition:
    from_state: str
    command: str
    to_state: str


@dataclass(frozen=True)
class WorkflowScheme:
    """流程方案"""
    code: str
    initial_state: str
    transitions: tuple[Transition, ...]

    def commands_for(self, process_id: str, state: str) -> list[WorkflowCommand]:
        """列出在 state 状态下可执行的命令，终态返回空列表"""
        return [
            WorkflowCommand(
                process_id=process_id,
                name=t.command,
                from_state=t.from_state,
                to_state=t.to_state,
            )
            for t in self.transitions
            if t.from_state == state
        ]

    def is_terminal(self, state: str) -> bool:
        return not any(t.from_state == state for t in self.transitions)


SIMPLE_WF = WorkflowScheme(
    code="SimpleWF",
    initial_state=ProcessState.CREATED,
    transitions=(
        Transition(ProcessState.CREATED, START_COMMAND, ProcessState.PENDING_DECISION),
        Transition(ProcessState.PENDING_DECISION, APPROVE_COMMAND, ProcessState.APPROVED),
        Transition(ProcessState.PENDING_DECISION, REJECT_COMMAND, ProcessState.REJECTED),
    ),
)


# 方案注册表: code -> WorkflowScheme
_SCHEMES: dict[str, WorkflowScheme] = {SIMPLE_WF.code: SIMPLE_WF}


def register_scheme(scheme: WorkflowScheme) -> None:
    _SCHEMES[scheme.code] = scheme


def get_scheme(code: str) -> WorkflowScheme:
    """
    按代码查找方案（不区分大小写）

    Raises:
        UnknownSchemeError: 方案未注册
    """
    for key, scheme in _SCHEMES.items():
        if key.lower() == code.lower():
            return scheme
    raise UnknownSchemeError(f"workflow scheme not registered: {code}")
