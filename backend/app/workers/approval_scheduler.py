# app/workers/approval_scheduler.py
# 审批调度 Worker
#
# 功能说明：
# 1. 按配置定时调用 ApprovalOrchestrator.run_tick()
# 2. 两种触发方式：
#    - interval：固定间隔，立即开始，无限重复（快速验证）
#    - daily：每天固定时刻，指定时区（生产环境）
# 3. 单次触发失败只记录日志，不影响后续触发
#
# 特点：
# - 使用 APScheduler 实现定时任务
# - max_instances=1 + coalesce=True：上一次触发未结束时不会重叠执行

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.approvals.orchestrator import ApprovalOrchestrator
from app.core.exceptions import ItemSourceError, StartCommandMissingError
from app.core.logging import get_logger
from app.workers.base import BaseWorker, WorkerStatus
from app.workflows.types import TickResult

logger = get_logger(__name__)

JOB_ID = "approval_tick"


@dataclass
class ScheduleConfig:
    """调度配置"""
    mode: str = "interval"               # interval / daily
    interval_seconds: int = 60
    daily_hour: int = 7
    daily_minute: int = 0
    timezone: str = "Egypt Standard Time"
    timezone_fallback: str = "Africa/Cairo"


def resolve_timezone(primary: str, fallback: str) -> tzinfo:
    """
    解析时区标识

    主标识找不到时（例如 Windows 风格的 "Egypt Standard Time"）使用备用标识。
    """
    try:
        return ZoneInfo(primary)
    except (ZoneInfoNotFoundError, ValueError):
        logger.info(f"[ApprovalScheduler] 时区 {primary!r} 不可用，使用 {fallback!r}")
        return ZoneInfo(fallback)


def build_trigger(config: ScheduleConfig) -> tuple[BaseTrigger, Optional[datetime]]:
    """
    根据配置创建触发器

    Returns:
        (trigger, 首次执行时间)：interval 模式立即执行，daily 模式由触发器决定
    """
    if config.mode == "daily":
        tz = resolve_timezone(config.timezone, config.timezone_fallback)
        trigger = CronTrigger(hour=config.daily_hour, minute=config.daily_minute, timezone=tz)
        return trigger, None

    trigger = IntervalTrigger(seconds=config.interval_seconds)
    return trigger, datetime.now(trigger.timezone)


class ApprovalScheduler(BaseWorker):
    """审批调度 Worker"""

    worker_type = "approval_scheduler"
    name = "审批调度 Worker"
    description = "定时发起审批流程并发送审批邮件"

    def __init__(self, orchestrator: ApprovalOrchestrator, config: ScheduleConfig):
        self.orchestrator = orchestrator
        self.config = config
        self.scheduler: Optional[AsyncIOScheduler] = None

        # 运行统计
        self.tick_count = 0
        self.failure_count = 0
        self.last_result: Optional[TickResult] = None

    async def start(self) -> bool:
        """启动调度器（需要在运行中的事件循环内调用）"""
        try:
            self._status = WorkerStatus.STARTING
            trigger, first_run = build_trigger(self.config)

            self.scheduler = AsyncIOScheduler()
            job_kwargs = {}
            if first_run is not None:
                job_kwargs["next_run_time"] = first_run

            self.scheduler.add_job(
                self.run_tick_safely,
                trigger=trigger,
                id=JOB_ID,
                name="审批流程触发",
                max_instances=1,
                coalesce=True,
                **job_kwargs,
            )
            self.scheduler.start()
            self._set_running()

            logger.info(f"[ApprovalScheduler] 已启动，触发方式: {trigger}")
            return True

        except Exception as e:
            logger.error(f"[ApprovalScheduler] 启动失败: {e}")
            self._set_error(str(e))
            return False

    async def stop(self) -> bool:
        logger.info("[ApprovalScheduler] 正在停止...")
        self._status = WorkerStatus.STOPPING

        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None

        self._set_stopped()
        logger.info("[ApprovalScheduler] 已停止")
        return True

    def next_run_time(self) -> Optional[datetime]:
        if self.scheduler is None:
            return None
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    async def run_tick_safely(self) -> Optional[TickResult]:
        """
        执行一次触发，吞掉所有异常

        任何失败都只影响本次触发，异常不会传回 APScheduler。
        """
        self.tick_count += 1
        try:
            result = await self.orchestrator.run_tick()
        except ItemSourceError as e:
            self.failure_count += 1
            logger.error(f"[ApprovalScheduler] 获取条目失败，本次触发中止: {e}")
            return None
        except StartCommandMissingError as e:
            self.failure_count += 1
            logger.error(f"[ApprovalScheduler] 流程方案配置错误: {e}")
            return None
        except Exception:
            self.failure_count += 1
            logger.exception("[ApprovalScheduler] 触发执行异常")
            return None

        if result.process_id and not result.notified:
            self.failure_count += 1
            logger.warning(f"[ApprovalScheduler] 流程 {result.process_id} 已创建，但通知未送达")

        self.last_result = result
        return result
