# app/approvals/orchestrator.py
# 审批编排器
#
# 每次定时触发执行 run_tick()：
# 1. 从数据源获取整批条目（失败则中止，不建流程、不发邮件）
# 2. 生成新的流程 ID
# 3. 渲染审批邮件（条目表格 + 通过/拒绝链接）
# 4. 解析收件人（未配置时使用内置列表）
# 5. 发送邮件（任何失败都只记录，流程照常创建）
# 6. 创建流程并立即执行 Start 命令
#
# 一次触发只建一个流程，整批条目共用这个流程 ID。

import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from app.approvals.item_source import ItemSource
from app.approvals.notifier import Notifier, parse_recipients
from app.approvals.rendering import render_notification
from app.core.config import DEFAULT_APPROVER_EMAILS
from app.core.exceptions import ItemSourceError, NotificationError, StartCommandMissingError
from app.core.logging import get_logger
from app.workflows.engine import TransitionEngine
from app.workflows.types import START_COMMAND, TickResult

logger = get_logger(__name__)


@dataclass
class OrchestratorConfig:
    """编排器配置，由 container 从 Settings 构造后传入"""
    base_url: str
    approver_emails: str = ""
    default_approver_emails: str = DEFAULT_APPROVER_EMAILS
    subject_prefix: str = "New Wells Approval"
    scheme_code: str = "SimpleWF"
    skip_empty_batch: bool = False


class ApprovalOrchestrator:
    """审批编排器"""

    def __init__(
        self,
        config: OrchestratorConfig,
        item_source: ItemSource,
        notifier: Notifier,
        engine: TransitionEngine,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.config = config
        self.item_source = item_source
        self.notifier = notifier
        self.engine = engine
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    async def run_tick(self) -> TickResult:
        """
        执行一次审批触发

        Returns:
            TickResult: 流程 ID、条目数量、收件人、通知是否成功

        Raises:
            ItemSourceError: 获取条目失败，本次触发中止
            StartCommandMissingError: 新流程上找不到 Start 命令
        """
        try:
            items = await self.item_source.get_batch()
        except ItemSourceError:
            raise
        except Exception as e:
            raise ItemSourceError(f"item source failed: {e}") from e

        if not items and self.config.skip_empty_batch:
            logger.info("[Orchestrator] 本批次没有条目，跳过")
            return TickResult(process_id=None, item_count=0)

        process_id = self._new_id()
        logger.info(f"[Orchestrator] 新批次: {len(items)} 个条目，流程 ID: {process_id}")

        notification = render_notification(
            items,
            process_id=process_id,
            base_url=self.config.base_url,
            subject_prefix=self.config.subject_prefix,
        )
        recipients = parse_recipients(
            self.config.approver_emails,
            default=self.config.default_approver_emails,
        )

        notified = False
        try:
            await self.notifier.send(recipients, notification)
            notified = True
            logger.info(f"[Orchestrator] 审批邮件已发送: {recipients}")
        except NotificationError as e:
            logger.error(f"[Orchestrator] 审批邮件发送失败 ({process_id}): {e}")
        except Exception:
            logger.exception(f"[Orchestrator] 审批邮件发送异常 ({process_id})")

        await self._create_and_start(process_id)
        logger.info(
            f"[Orchestrator] 触发完成: {process_id}",
            extra={"extra_data": {"process_id": process_id, "item_count": len(items), "notified": notified}},
        )

        return TickResult(
            process_id=process_id,
            item_count=len(items),
            recipients=recipients,
            notified=notified,
        )

    async def _create_and_start(self, process_id: str) -> None:
        scheme_code = self.config.scheme_code
        await self.engine.create_process(scheme_code, process_id)

        commands = await self.engine.get_legal_commands(process_id)
        start = next((c for c in commands if c.matches(START_COMMAND)), None)
        if start is None:
            raise StartCommandMissingError(process_id, scheme_code)

        await self.engine.execute_command(start)
        logger.info(f"[Orchestrator] 流程已启动: {process_id} -> {start.to_state}")
