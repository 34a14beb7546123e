# app/models/process.py
# 流程实例数据模型
#
# 只保存流程引擎需要的数据：流程 ID、方案、当前状态、流转历史。
# 不保存待审批条目本身。

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class WorkflowProcess(Base):
    """
    流程实例

    state 只由 SqlTransitionEngine 修改，且每次修改都以旧状态为条件，
    保证同一命令不会被执行两次。
    """
    __tablename__ = "workflow_processes"

    process_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="流程 ID（UUID）",
    )

    scheme_code: Mapped[str] = mapped_column(
        String(50),
        index=True,
        comment="流程方案代码",
    )

    state: Mapped[str] = mapped_column(
        String(50),
        index=True,
        comment="当前状态",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        comment="创建时间",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        comment="最后流转时间",
    )

    def __repr__(self) -> str:
        return f"<WorkflowProcess {self.process_id} {self.scheme_code}:{self.state}>"


class WorkflowProcessTransition(Base):
    """流转历史，每执行一次命令记录一行"""
    __tablename__ = "workflow_process_transitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    process_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workflow_processes.process_id", ondelete="CASCADE"),
        index=True,
    )

    command: Mapped[str] = mapped_column(String(50), comment="执行的命令")
    from_state: Mapped[str] = mapped_column(String(50), comment="流转前状态")
    to_state: Mapped[str] = mapped_column(String(50), comment="流转后状态")

    executed_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        comment="执行时间",
    )
