# app/workflows/engine.py
# 流程引擎接口
#
# 功能说明：
# 审批核心只通过三个操作与流程引擎交互，从不直接读取流程状态：
# 1. create_process       - 按方案创建流程实例
# 2. get_legal_commands   - 查询当前可执行的命令
# 3. execute_command      - 执行命令，流转到下一个状态
#
# 实现：
# - InMemoryTransitionEngine：进程内字典，用于测试和本地调试
# - SqlTransitionEngine（app/workflows/sql_engine.py）：数据库持久化，用于生产
#
# 引擎负责持久性与单次执行的原子性：
# execute_command 发现流程状态已不是命令的起始状态时，
# 必须抛出 CommandNotAvailableError，而不是重复流转。

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from app.core.exceptions import CommandNotAvailableError, ProcessAlreadyExistsError
from app.core.logging import get_logger
from app.workflows.scheme import WorkflowScheme, get_scheme
from app.workflows.types import WorkflowCommand

logger = get_logger(__name__)


class TransitionEngine(ABC):
    """流程引擎接口"""

    @abstractmethod
    async def create_process(self, scheme_code: str, process_id: str) -> None:
        """
        创建流程实例，初始状态由方案决定

        Raises:
            ProcessAlreadyExistsError: process_id 已存在
            UnknownSchemeError: 方案未注册
        """

    @abstractmethod
    async def get_legal_commands(self, process_id: str) -> list[WorkflowCommand]:
        """查询可执行命令；流程不存在或已到终态时返回空列表"""

    @abstractmethod
    async def execute_command(self, command: WorkflowCommand) -> None:
        """
        执行命令

        Raises:
            CommandNotAvailableError: 流程当前状态不允许该命令
        """

    async def start(self) -> None:
        """启动引擎（建表、预热等），默认无操作"""

    async def close(self) -> None:
        """释放资源，默认无操作"""

    async def ping(self) -> bool:
        """健康检查"""
        return True


@dataclass
class _ProcessRecord:
    scheme: WorkflowScheme
    state: str
    created_at: datetime = field(default_factory=datetime.now)
    history: list[tuple[str, str, str]] = field(default_factory=list)


class InMemoryTransitionEngine(TransitionEngine):
    """
    内存流程引擎

    所有方法内部没有 await，在单个事件循环里天然是原子的。
    """

    def __init__(self):
        self._processes: dict[str, _ProcessRecord] = {}

    async def create_process(self, scheme_code: str, process_id: str) -> None:
        if process_id in self._processes:
            raise ProcessAlreadyExistsError(process_id)

        scheme = get_scheme(scheme_code)
        self._processes[process_id] = _ProcessRecord(scheme=scheme, state=scheme.initial_state)
        logger.debug(f"[MemoryEngine] 创建流程: {process_id} ({scheme.code})")

    async def get_legal_commands(self, process_id: str) -> list[WorkflowCommand]:
        record = self._processes.get(process_id)
        if record is None:
            return []
        return record.scheme.commands_for(process_id, record.state)

    async def execute_command(self, command: WorkflowCommand) -> None:
        record = self._processes.get(command.process_id)
        if record is None or record.state != command.from_state:
            raise CommandNotAvailableError(command.process_id, command.name)

        record.history.append((command.name, record.state, command.to_state))
        record.state = command.to_state
        logger.debug(
            f"[MemoryEngine] {command.process_id}: "
            f"{command.from_state} --{command.name}--> {command.to_state}"
        )

    def get_state(self, process_id: str) -> Optional[str]:
        """调试/测试用，核心逻辑不调用"""
        record = self._processes.get(process_id)
        return record.state if record else None

    def get_history(self, process_id: str) -> list[tuple[str, str, str]]:
        record = self._processes.get(process_id)
        return list(record.history) if record else []

    def __len__(self) -> int:
        return len(self._processes)
