# tests/test_orchestrator.py
# 审批编排器测试

import uuid

import pytest

from app.approvals.item_source import StaticItemSource
from app.approvals.notifier import Notifier
from app.approvals.orchestrator import ApprovalOrchestrator, OrchestratorConfig
from app.core.exceptions import ItemSourceError, StartCommandMissingError
from app.workflows.engine import InMemoryTransitionEngine
from app.workflows import scheme
from app.workflows.scheme import ProcessState, Transition, WorkflowScheme

from tests.fakes import BASE_URL, FailingItemSource, RecordingNotifier


class CrashingNotifier(Notifier):
    def __init__(self, error: Exception):
        self.error = error

    async def send(self, recipients, notification):
        raise self.error


class TestRunTick:

    @pytest.mark.asyncio
    async def test_creates_and_starts_one_process(self, orchestrator, memory_engine, notifier, items):
        result = await orchestrator.run_tick()

        assert result.item_count == len(items)
        assert result.notified is True
        assert len(memory_engine) == 1
        assert memory_engine.get_state(result.process_id) == ProcessState.PENDING_DECISION
        # 流程 ID 是合法 UUID
        uuid.UUID(result.process_id)

    @pytest.mark.asyncio
    async def test_sends_one_notification_to_resolved_recipients(self, orchestrator, notifier):
        result = await orchestrator.run_tick()

        assert len(notifier.sent) == 1
        recipients, notification = notifier.sent[0]
        assert recipients == ["a@x.com", "b@y.com"]
        assert result.recipients == recipients
        assert f"pid={result.process_id}" in notification.html_body
        assert notification.html_body.count("<tr>") == 3

    @pytest.mark.asyncio
    async def test_default_recipients_when_unset(self, items, notifier, memory_engine):
        orchestrator = ApprovalOrchestrator(
            config=OrchestratorConfig(base_url=BASE_URL, approver_emails=""),
            item_source=StaticItemSource(items),
            notifier=notifier,
            engine=memory_engine,
        )

        await orchestrator.run_tick()

        assert notifier.sent[0][0] == ["ops1@company.com", "ops2@company.com"]

    @pytest.mark.asyncio
    async def test_each_tick_mints_new_process(self, orchestrator, memory_engine):
        first = await orchestrator.run_tick()
        second = await orchestrator.run_tick()

        assert first.process_id != second.process_id
        assert len(memory_engine) == 2

    @pytest.mark.asyncio
    async def test_item_source_failure_aborts_tick(self, orchestrator_config, notifier, memory_engine):
        orchestrator = ApprovalOrchestrator(
            config=orchestrator_config,
            item_source=FailingItemSource(),
            notifier=notifier,
            engine=memory_engine,
        )

        with pytest.raises(ItemSourceError):
            await orchestrator.run_tick()

        assert len(memory_engine) == 0
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_unexpected_source_error_is_wrapped(self, orchestrator_config, notifier, memory_engine):
        orchestrator = ApprovalOrchestrator(
            config=orchestrator_config,
            item_source=FailingItemSource(RuntimeError("boom")),
            notifier=notifier,
            engine=memory_engine,
        )

        with pytest.raises(ItemSourceError):
            await orchestrator.run_tick()
        assert len(memory_engine) == 0

    @pytest.mark.asyncio
    async def test_notification_failure_still_creates_process(self, orchestrator_config, items, memory_engine):
        orchestrator = ApprovalOrchestrator(
            config=orchestrator_config,
            item_source=StaticItemSource(items),
            notifier=RecordingNotifier(fail=True),
            engine=memory_engine,
        )

        result = await orchestrator.run_tick()

        assert result.notified is False
        assert memory_engine.get_state(result.process_id) == ProcessState.PENDING_DECISION

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        RuntimeError("notifier bug"),
        UnicodeEncodeError("ascii", "\u00e9", 0, 1, "ordinal not in range"),
    ])
    async def test_unexpected_notifier_error_still_creates_process(
        self, orchestrator_config, items, memory_engine, error
    ):
        orchestrator = ApprovalOrchestrator(
            config=orchestrator_config,
            item_source=StaticItemSource(items),
            notifier=CrashingNotifier(error),
            engine=memory_engine,
        )

        result = await orchestrator.run_tick()

        assert result.notified is False
        assert len(memory_engine) == 1
        assert memory_engine.get_state(result.process_id) == ProcessState.PENDING_DECISION

    @pytest.mark.asyncio
    async def test_missing_start_command_is_fatal(self, items, notifier, memory_engine, monkeypatch):
        monkeypatch.setitem(scheme._SCHEMES, "NoStart", WorkflowScheme(
            code="NoStart",
            initial_state="Created",
            transitions=(Transition("Created", "Begin", "Working"),),
        ))
        orchestrator = ApprovalOrchestrator(
            config=OrchestratorConfig(base_url=BASE_URL, scheme_code="NoStart"),
            item_source=StaticItemSource(items),
            notifier=notifier,
            engine=memory_engine,
        )

        with pytest.raises(StartCommandMissingError):
            await orchestrator.run_tick()

    @pytest.mark.asyncio
    async def test_empty_batch_skipped_when_configured(self, notifier, memory_engine):
        orchestrator = ApprovalOrchestrator(
            config=OrchestratorConfig(base_url=BASE_URL, skip_empty_batch=True),
            item_source=StaticItemSource([]),
            notifier=notifier,
            engine=memory_engine,
        )

        result = await orchestrator.run_tick()

        assert result.process_id is None
        assert notifier.sent == []
        assert len(memory_engine) == 0

    @pytest.mark.asyncio
    async def test_empty_batch_notified_by_default(self, notifier):
        engine = InMemoryTransitionEngine()
        orchestrator = ApprovalOrchestrator(
            config=OrchestratorConfig(base_url=BASE_URL),
            item_source=StaticItemSource([]),
            notifier=notifier,
            engine=engine,
        )

        result = await orchestrator.run_tick()

        assert result.item_count == 0
        assert len(notifier.sent) == 1
        assert len(engine) == 1

    @pytest.mark.asyncio
    async def test_custom_id_factory(self, orchestrator_config, items, notifier, memory_engine):
        orchestrator = ApprovalOrchestrator(
            config=orchestrator_config,
            item_source=StaticItemSource(items),
            notifier=notifier,
            engine=memory_engine,
            id_factory=lambda: "00000000-0000-0000-0000-000000000001",
        )

        result = await orchestrator.run_tick()

        assert result.process_id == "00000000-0000-0000-0000-000000000001"
