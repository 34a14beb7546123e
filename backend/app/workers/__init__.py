# app/workers/__init__.py
# Worker Layer - 后台服务
#
# ApprovalScheduler 在应用生命周期内运行，按配置定时发起审批流程。

from app.workers.base import BaseWorker, WorkerStatus
from app.workers.approval_scheduler import ApprovalScheduler, ScheduleConfig

__all__ = [
    "BaseWorker",
    "WorkerStatus",
    "ApprovalScheduler",
    "ScheduleConfig",
]
