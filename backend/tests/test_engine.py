# tests/test_engine.py
# 流程引擎测试（内存引擎和数据库引擎各跑一遍）

import asyncio
import uuid

import pytest

from app.core.exceptions import (
    CommandNotAvailableError,
    ProcessAlreadyExistsError,
    UnknownSchemeError,
)
from app.workflows.scheme import ProcessState, SIMPLE_WF, get_scheme


def _names(commands):
    return {c.name for c in commands}


async def _started(engine) -> str:
    pid = str(uuid.uuid4())
    await engine.create_process("SimpleWF", pid)
    [start] = await engine.get_legal_commands(pid)
    await engine.execute_command(start)
    return pid


class TestScheme:

    def test_lookup_is_case_insensitive(self):
        assert get_scheme("simplewf") is SIMPLE_WF

    def test_unknown_scheme(self):
        with pytest.raises(UnknownSchemeError):
            get_scheme("Nope")

    def test_terminal_states(self):
        assert SIMPLE_WF.is_terminal(ProcessState.APPROVED)
        assert SIMPLE_WF.is_terminal(ProcessState.REJECTED)
        assert not SIMPLE_WF.is_terminal(ProcessState.PENDING_DECISION)


class TestTransitionEngine:

    @pytest.mark.asyncio
    async def test_new_process_only_offers_start(self, engine):
        pid = str(uuid.uuid4())
        await engine.create_process("SimpleWF", pid)

        assert _names(await engine.get_legal_commands(pid)) == {"Start"}

    @pytest.mark.asyncio
    async def test_pending_decision_offers_approve_and_reject(self, engine):
        pid = await _started(engine)

        assert _names(await engine.get_legal_commands(pid)) == {"Approve", "Reject"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("decision", ["Approve", "Reject"])
    async def test_terminal_after_decision(self, engine, decision):
        pid = await _started(engine)
        commands = await engine.get_legal_commands(pid)
        command = next(c for c in commands if c.name == decision)

        await engine.execute_command(command)

        assert await engine.get_legal_commands(pid) == []

    @pytest.mark.asyncio
    async def test_unknown_process_has_no_commands(self, engine):
        assert await engine.get_legal_commands(str(uuid.uuid4())) == []

    @pytest.mark.asyncio
    async def test_stale_command_is_rejected(self, engine):
        pid = await _started(engine)
        commands = await engine.get_legal_commands(pid)
        approve = next(c for c in commands if c.name == "Approve")
        reject = next(c for c in commands if c.name == "Reject")

        await engine.execute_command(approve)

        with pytest.raises(CommandNotAvailableError):
            await engine.execute_command(approve)
        with pytest.raises(CommandNotAvailableError):
            await engine.execute_command(reject)

    @pytest.mark.asyncio
    async def test_duplicate_process_id(self, engine):
        pid = str(uuid.uuid4())
        await engine.create_process("SimpleWF", pid)

        with pytest.raises(ProcessAlreadyExistsError):
            await engine.create_process("SimpleWF", pid)

    @pytest.mark.asyncio
    async def test_concurrent_execution_applies_once(self, engine):
        pid = await _started(engine)
        commands = await engine.get_legal_commands(pid)
        approve = next(c for c in commands if c.name == "Approve")

        results = await asyncio.gather(
            *(engine.execute_command(approve) for _ in range(5)),
            return_exceptions=True,
        )

        successes = [r for r in results if r is None]
        failures = [r for r in results if isinstance(r, CommandNotAvailableError)]
        assert len(successes) == 1
        assert len(failures) == 4


class TestSqlTransitionEngine:

    @pytest.mark.asyncio
    async def test_history_is_recorded(self, sql_engine):
        pid = await _started(sql_engine)
        commands = await sql_engine.get_legal_commands(pid)
        await sql_engine.execute_command(next(c for c in commands if c.name == "Reject"))

        history = await sql_engine.get_history(pid)

        assert [(h.command, h.from_state, h.to_state) for h in history] == [
            ("Start", ProcessState.CREATED, ProcessState.PENDING_DECISION),
            ("Reject", ProcessState.PENDING_DECISION, ProcessState.REJECTED),
        ]

    @pytest.mark.asyncio
    async def test_ping(self, sql_engine):
        assert await sql_engine.ping() is True
