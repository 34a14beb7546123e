# tests/conftest.py
# Pytest 配置文件
#
# 功能：
# 1. 将 backend 目录加入 Python 路径
# 2. 提供流程引擎、编排器、决策入口、API 客户端等通用 fixtures
#
# 假的外部依赖（数据源、邮件、下游程序）在 tests/fakes.py

import os
import sys

import pytest
import pytest_asyncio

# 将项目根目录添加到 Python 路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.approvals.gateway import DecisionGateway
from app.approvals.item_source import StaticItemSource
from app.approvals.orchestrator import ApprovalOrchestrator, OrchestratorConfig
from app.approvals.container import ApprovalServices
from app.core.database import Database
from app.core.locks import LocalProcessLock
from app.workflows.engine import InMemoryTransitionEngine
from app.workflows.sql_engine import SqlTransitionEngine
from app.workflows.types import Item

from tests.fakes import BASE_URL, RecordingLauncher, RecordingNotifier


# ==================== 条目 ====================

@pytest.fixture
def items():
    """两条示例条目"""
    return [
        Item(name="Meliha-01", category="SRP", description="Sandface recompletion"),
        Item(name="Meliha-02", category="ESP", description="Workover complete"),
    ]


# ==================== 流程引擎 ====================

@pytest.fixture
def memory_engine():
    return InMemoryTransitionEngine()


@pytest_asyncio.fixture
async def sql_engine(tmp_path):
    """基于临时 SQLite 文件的持久化引擎"""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'workflow.db'}")
    engine = SqlTransitionEngine(database)
    await engine.start()
    yield engine
    await engine.close()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def engine(request, tmp_path):
    """两种引擎各跑一遍"""
    if request.param == "memory":
        yield InMemoryTransitionEngine()
        return

    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'workflow.db'}")
    sql = SqlTransitionEngine(database)
    await sql.start()
    yield sql
    await sql.close()


# ==================== 编排器 / 决策入口 ====================

@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def launcher():
    return RecordingLauncher()


@pytest.fixture
def orchestrator_config():
    return OrchestratorConfig(base_url=BASE_URL, approver_emails="a@x.com; b@y.com ;;")


@pytest.fixture
def orchestrator(orchestrator_config, items, notifier, memory_engine):
    return ApprovalOrchestrator(
        config=orchestrator_config,
        item_source=StaticItemSource(items),
        notifier=notifier,
        engine=memory_engine,
    )


@pytest.fixture
def gateway(memory_engine, launcher):
    return DecisionGateway(memory_engine, lock=LocalProcessLock(timeout=2), launcher=launcher)


# ==================== API 客户端 ====================

@pytest.fixture
def services(memory_engine, orchestrator, gateway):
    """不启动调度器的组件集合"""
    return ApprovalServices(engine=memory_engine, orchestrator=orchestrator, gateway=gateway)


@pytest.fixture
def app(services):
    from app.main import create_app
    return create_app(services)


@pytest_asyncio.fixture
async def async_api_client(app):
    """异步测试用 API 客户端（与组件共用同一个事件循环）"""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
