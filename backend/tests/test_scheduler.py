# tests/test_scheduler.py
# 审批调度 Worker 测试

import asyncio
from zoneinfo import ZoneInfo

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.approvals.item_source import StaticItemSource
from app.approvals.orchestrator import ApprovalOrchestrator
from app.workers.approval_scheduler import (
    ApprovalScheduler,
    ScheduleConfig,
    build_trigger,
    resolve_timezone,
)
from app.workers.base import WorkerStatus

from tests.fakes import FailingItemSource, RecordingNotifier


class TestTrigger:

    def test_windows_timezone_falls_back(self):
        assert resolve_timezone("Egypt Standard Time", "Africa/Cairo") == ZoneInfo("Africa/Cairo")

    def test_iana_timezone_used_directly(self):
        assert resolve_timezone("Europe/Berlin", "Africa/Cairo") == ZoneInfo("Europe/Berlin")

    def test_interval_mode_runs_immediately(self):
        trigger, first_run = build_trigger(ScheduleConfig(mode="interval", interval_seconds=60))

        assert isinstance(trigger, IntervalTrigger)
        assert trigger.interval.total_seconds() == 60
        assert first_run is not None

    def test_daily_mode_uses_cron(self):
        config = ScheduleConfig(mode="daily", daily_hour=7, daily_minute=30)

        trigger, first_run = build_trigger(config)

        assert isinstance(trigger, CronTrigger)
        assert trigger.timezone == ZoneInfo("Africa/Cairo")
        assert first_run is None
        fields = {f.name: str(f) for f in trigger.fields}
        assert fields["hour"] == "7"
        assert fields["minute"] == "30"


class TestRunTickSafely:

    @pytest.mark.asyncio
    async def test_success_is_recorded(self, orchestrator):
        scheduler = ApprovalScheduler(orchestrator, ScheduleConfig())

        result = await scheduler.run_tick_safely()

        assert result is not None
        assert scheduler.tick_count == 1
        assert scheduler.failure_count == 0
        assert scheduler.last_result is result

    @pytest.mark.asyncio
    async def test_source_failure_does_not_stop_later_ticks(self, orchestrator_config, notifier, memory_engine):
        source = FailingItemSource()
        orchestrator = ApprovalOrchestrator(
            config=orchestrator_config,
            item_source=source,
            notifier=notifier,
            engine=memory_engine,
        )
        scheduler = ApprovalScheduler(orchestrator, ScheduleConfig())

        assert await scheduler.run_tick_safely() is None
        assert await scheduler.run_tick_safely() is None

        assert source.calls == 2
        assert scheduler.tick_count == 2
        assert scheduler.failure_count == 2
        assert len(memory_engine) == 0

    @pytest.mark.asyncio
    async def test_notification_failure_counts_as_failure(self, orchestrator_config, items, memory_engine):
        orchestrator = ApprovalOrchestrator(
            config=orchestrator_config,
            item_source=StaticItemSource(items),
            notifier=RecordingNotifier(fail=True),
            engine=memory_engine,
        )
        scheduler = ApprovalScheduler(orchestrator, ScheduleConfig())

        result = await scheduler.run_tick_safely()

        assert result.notified is False
        assert scheduler.failure_count == 1
        assert len(memory_engine) == 1


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, orchestrator):
        scheduler = ApprovalScheduler(orchestrator, ScheduleConfig(mode="daily"))

        assert await scheduler.start() is True
        assert scheduler.get_status() == WorkerStatus.RUNNING
        assert scheduler.next_run_time() is not None

        assert await scheduler.stop() is True
        assert scheduler.get_status() == WorkerStatus.STOPPED
        assert scheduler.next_run_time() is None

    @pytest.mark.asyncio
    async def test_failing_ticks_keep_firing(self, orchestrator_config, notifier, memory_engine):
        source = FailingItemSource()
        orchestrator = ApprovalOrchestrator(
            config=orchestrator_config,
            item_source=source,
            notifier=notifier,
            engine=memory_engine,
        )
        scheduler = ApprovalScheduler(orchestrator, ScheduleConfig(mode="interval", interval_seconds=1))

        assert await scheduler.start() is True
        try:
            # 首次立即执行，之后每秒一次
            for _ in range(50):
                if source.calls >= 2:
                    break
                await asyncio.sleep(0.1)
        finally:
            await scheduler.stop()

        assert source.calls >= 2
        assert scheduler.failure_count == scheduler.tick_count >= 2
        assert len(memory_engine) == 0
        assert notifier.sent == []
