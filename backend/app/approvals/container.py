# app/approvals/container.py
# 组件装配
#
# 从 Settings 构造审批系统的全部组件，并显式传入各自需要的配置值。
# 调用前必须先执行 check_required_settings，保证配置有效。

from dataclasses import dataclass
from typing import Optional

from app.approvals.downstream import DownstreamLauncher, NoopLauncher, SubprocessLauncher
from app.approvals.gateway import DecisionGateway
from app.approvals.item_source import HttpItemSource, ItemSource, StaticItemSource
from app.approvals.notifier import ConsoleNotifier, Notifier, SmtpNotifier
from app.approvals.orchestrator import ApprovalOrchestrator, OrchestratorConfig
from app.core.config import Settings
from app.core.database import Database
from app.core.exceptions import ConfigurationError
from app.core.locks import LocalProcessLock, ProcessLock, RedisProcessLock
from app.core.logging import get_logger
from app.core.redis import RedisClient
from app.workers.approval_scheduler import ApprovalScheduler, ScheduleConfig
from app.workflows.engine import InMemoryTransitionEngine, TransitionEngine
from app.workflows.sql_engine import SqlTransitionEngine

logger = get_logger(__name__)


@dataclass
class ApprovalServices:
    """审批系统组件集合，挂在 app.state.services 上"""
    engine: TransitionEngine
    orchestrator: ApprovalOrchestrator
    gateway: DecisionGateway
    scheduler: Optional[ApprovalScheduler] = None
    redis: Optional[RedisClient] = None

    async def startup(self) -> None:
        if self.redis is not None:
            await self.redis.connect()
            logger.info("Redis 连接成功")

        await self.engine.start()

        if self.scheduler is not None and not await self.scheduler.start():
            info = self.scheduler.get_info()
            raise ConfigurationError(f"approval scheduler failed to start: {info.error_message}")

    async def shutdown(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()

        await self.gateway.wait_pending()

        try:
            await self.engine.close()
        except Exception as e:
            logger.warning(f"流程引擎关闭时出错: {e}")

        if self.redis is not None:
            try:
                await self.redis.disconnect()
                logger.info("Redis 连接已断开")
            except Exception as e:
                logger.warning(f"Redis 断开连接时出错: {e}")


def build_engine(settings: Settings) -> TransitionEngine:
    if settings.ENGINE_BACKEND == "memory":
        logger.warning("使用内存流程引擎，重启后未完成的审批将丢失")
        return InMemoryTransitionEngine()
    database = Database(settings.DATABASE_URL, echo=settings.DEBUG)
    return SqlTransitionEngine(database, auto_create=settings.DATABASE_AUTO_CREATE)


def build_item_source(settings: Settings) -> ItemSource:
    if settings.ITEM_SOURCE_URL:
        return HttpItemSource(settings.ITEM_SOURCE_URL, timeout=settings.ITEM_SOURCE_TIMEOUT)
    return StaticItemSource()


def build_notifier(settings: Settings) -> Notifier:
    if settings.NOTIFIER_BACKEND == "smtp":
        return SmtpNotifier(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            sender=settings.SMTP_FROM,
        )
    return ConsoleNotifier()


def build_launcher(settings: Settings) -> DownstreamLauncher:
    if settings.DOWNSTREAM_COMMAND:
        return SubprocessLauncher(settings.DOWNSTREAM_COMMAND)
    return NoopLauncher()


def build_services(settings: Settings) -> ApprovalServices:
    """按配置装配全部组件"""
    engine = build_engine(settings)

    redis_client: Optional[RedisClient] = None
    lock: ProcessLock
    if settings.LOCK_BACKEND == "redis":
        redis_client = RedisClient(settings.REDIS_URL)
        lock = RedisProcessLock(redis_client, timeout=settings.LOCK_TIMEOUT_SECONDS)
    else:
        lock = LocalProcessLock(timeout=settings.LOCK_TIMEOUT_SECONDS)

    orchestrator = ApprovalOrchestrator(
        config=OrchestratorConfig(
            base_url=settings.APPROVALS_BASE_URL,
            approver_emails=settings.APPROVER_EMAILS,
            subject_prefix=settings.APPROVALS_SUBJECT_PREFIX,
            scheme_code=settings.WORKFLOW_SCHEME,
            skip_empty_batch=settings.APPROVALS_SKIP_EMPTY_BATCH,
        ),
        item_source=build_item_source(settings),
        notifier=build_notifier(settings),
        engine=engine,
    )

    gateway = DecisionGateway(engine, lock=lock, launcher=build_launcher(settings))

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = ApprovalScheduler(
            orchestrator,
            ScheduleConfig(
                mode=settings.SCHEDULE_MODE,
                interval_seconds=settings.SCHEDULE_INTERVAL_SECONDS,
                daily_hour=settings.SCHEDULE_DAILY_HOUR,
                daily_minute=settings.SCHEDULE_DAILY_MINUTE,
                timezone=settings.SCHEDULE_TIMEZONE,
                timezone_fallback=settings.SCHEDULE_TIMEZONE_FALLBACK,
            ),
        )

    return ApprovalServices(
        engine=engine,
        orchestrator=orchestrator,
        gateway=gateway,
        scheduler=scheduler,
        redis=redis_client,
    )
