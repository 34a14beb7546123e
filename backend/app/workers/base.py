# app/workers/base.py
# Worker 基类
#
# 定义后台 Worker 的通用接口和运行状态

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional
from dataclasses import dataclass
from datetime import datetime


class WorkerStatus(str, Enum):
    """Worker 状态"""
    STOPPED = "stopped"      # 已停止
    STARTING = "starting"    # 启动中
    RUNNING = "running"      # 运行中
    STOPPING = "stopping"    # 停止中
    ERROR = "error"          # 错误


@dataclass
class WorkerInfo:
    """Worker 运行信息"""
    worker_type: str                        # Worker 类型
    name: str                               # 显示名称
    status: WorkerStatus                    # 当前状态
    started_at: Optional[datetime] = None   # 启动时间
    error_message: Optional[str] = None     # 错误信息


class BaseWorker(ABC):
    """
    Worker 基类

    所有后台 Worker 都应继承此类并实现 start / stop。

    使用方法：
        class ApprovalScheduler(BaseWorker):
            worker_type = "approval_scheduler"
            name = "审批调度 Worker"

            async def start(self) -> bool:
                ...
    """

    worker_type: str = ""
    name: str = ""
    description: str = ""

    _status: WorkerStatus = WorkerStatus.STOPPED
    _started_at: Optional[datetime] = None
    _error_message: Optional[str] = None

    @abstractmethod
    async def start(self) -> bool:
        """
        启动 Worker

        Returns:
            bool: 是否成功启动
        """

    @abstractmethod
    async def stop(self) -> bool:
        """
        停止 Worker

        Returns:
            bool: 是否成功停止
        """

    def get_status(self) -> WorkerStatus:
        return self._status

    def get_info(self) -> WorkerInfo:
        return WorkerInfo(
            worker_type=self.worker_type,
            name=self.name,
            status=self._status,
            started_at=self._started_at,
            error_message=self._error_message,
        )

    def _set_running(self) -> None:
        self._status = WorkerStatus.RUNNING
        self._started_at = datetime.now()
        self._error_message = None

    def _set_stopped(self) -> None:
        self._status = WorkerStatus.STOPPED
        self._started_at = None

    def _set_error(self, message: str) -> None:
        self._status = WorkerStatus.ERROR
        self._error_message = message
