# app/approvals/gateway.py
# 审批决策入口
#
# 功能说明：
# 处理审批链接点击：decide(流程ID, decision)
# 1. 归一化决策：approve → APPROVE，其他任何值 → REJECT
# 2. 在流程锁内查询可执行命令
# 3. 命令不在可执行列表中 → "not available"（已决策 / 流程不存在 / 状态不符，三者不区分）
# 4. 执行命令
# 5. 只有真正完成 APPROVE 流转时，后台启动下游程序（不阻塞响应）
#
# 幂等性：
# 同一链接被多次请求时，只有第一次完成流转，之后都返回 "not available"，
# 下游程序只会启动一次。

import asyncio
import uuid
from typing import Optional

from app.approvals.downstream import DownstreamLauncher, NoopLauncher
from app.core.exceptions import CommandNotAvailableError
from app.core.locks import LocalProcessLock, ProcessLock
from app.core.logging import get_logger
from app.workflows.engine import TransitionEngine
from app.workflows.types import Decision, DecisionOutcome

logger = get_logger(__name__)


def normalize_process_id(raw: Optional[str]) -> Optional[str]:
    """
    规范化流程 ID

    不是合法 UUID 时返回 None，调用方按"流程不存在"处理。
    """
    if not raw:
        return None
    try:
        return str(uuid.UUID(raw.strip()))
    except ValueError:
        return None


class DecisionGateway:
    """审批决策入口"""

    def __init__(
        self,
        engine: TransitionEngine,
        lock: Optional[ProcessLock] = None,
        launcher: Optional[DownstreamLauncher] = None,
    ):
        self.engine = engine
        self.lock = lock or LocalProcessLock()
        self.launcher = launcher or NoopLauncher()
        # 后台任务需要持有引用，否则可能被 GC 回收
        self._pending: set[asyncio.Task] = set()

    async def decide(self, process_id: Optional[str], decision_token: Optional[str]) -> DecisionOutcome:
        """
        记录审批决策

        Args:
            process_id: 链接中的 pid
            decision_token: 链接中的 decision

        Returns:
            DecisionOutcome: recorded=False 表示命令不可用

        Raises:
            LockTimeoutError: 同一流程的其他请求长时间未完成
        """
        decision = Decision.from_token(decision_token)
        wanted = decision.command_name

        pid = normalize_process_id(process_id)
        if pid is None:
            logger.info(f"[Gateway] 无效的流程 ID: {process_id!r}")
            return self._unavailable(decision)

        async with self.lock.hold(pid):
            commands = await self.engine.get_legal_commands(pid)
            command = next((c for c in commands if c.matches(wanted)), None)
            if command is None:
                logger.info(f"[Gateway] {pid}: 命令 {wanted} 不可用")
                return self._unavailable(decision)

            try:
                await self.engine.execute_command(command)
            except CommandNotAvailableError:
                logger.info(f"[Gateway] {pid}: 命令 {wanted} 已被其他请求执行")
                return self._unavailable(decision)

        logger.info(f"[Gateway] {pid}: 决策已记录 {decision.name}")

        if decision is Decision.APPROVE:
            self._dispatch_downstream(pid)

        return DecisionOutcome(
            recorded=True,
            decision=decision,
            message=f"Decision recorded as {decision.command_name.upper()}.",
        )

    def _unavailable(self, decision: Decision) -> DecisionOutcome:
        return DecisionOutcome(
            recorded=False,
            decision=decision,
            message=f"Command '{decision.command_name}' not available.",
        )

    def _dispatch_downstream(self, process_id: str) -> None:
        task = asyncio.create_task(self._launch(process_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _launch(self, process_id: str) -> None:
        try:
            await self.launcher.launch(process_id)
        except Exception:
            logger.exception(f"[Gateway] 下游程序启动失败: {process_id}")

    async def wait_pending(self) -> None:
        """等待所有后台启动任务结束（关闭时 / 测试中使用）"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
