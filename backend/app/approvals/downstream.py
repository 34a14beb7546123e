# app/approvals/downstream.py
# 审批通过后的下游程序
#
# 审批通过时以 `<command> --processId <流程ID>` 启动外部程序，不等待其结束。
# 可执行文件不存在时跳过（只记日志）。

import asyncio
import os
from abc import ABC, abstractmethod

from app.core.logging import get_logger

logger = get_logger(__name__)


class DownstreamLauncher(ABC):
    """下游程序启动接口"""

    @abstractmethod
    async def launch(self, process_id: str) -> None:
        """启动下游程序，失败时抛出异常，由调用方记录"""


class NoopLauncher(DownstreamLauncher):
    """未配置下游程序"""

    async def launch(self, process_id: str) -> None:
        logger.debug(f"[Downstream] 未配置下游程序，跳过: {process_id}")


class SubprocessLauncher(DownstreamLauncher):
    """以子进程方式启动可执行文件"""

    def __init__(self, executable: str):
        self.executable = executable

    async def launch(self, process_id: str) -> None:
        if not os.path.isfile(self.executable):
            logger.warning(f"[Downstream] 可执行文件不存在，跳过: {self.executable}")
            return

        process = await asyncio.create_subprocess_exec(
            self.executable,
            "--processId",
            process_id,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        logger.info(f"[Downstream] 已启动 {self.executable} (PID: {process.pid}) for {process_id}")
