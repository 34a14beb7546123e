# app/core/database.py
# 数据库连接模块
#
# 功能说明：
# 1. 根据连接字符串创建异步引擎和会话工厂
# 2. 提供 ORM 基类 Base
# 3. 启动时建表 / 关闭时释放连接池
#
# 连接字符串在启动前由 check_required_settings 校验，
# 这里只负责按传入的值创建连接，不读取全局配置。

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """ORM 模型基类"""


class Database:
    """
    数据库连接管理

    使用方法：
        db = Database("postgresql+asyncpg://...")
        await db.create_all()
        async with db.session_maker() as session:
            ...
        await db.close()
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo)
        self.session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """创建所有表（已存在则跳过）"""
        # 导入模型，确保注册到 Base.metadata
        from app.models import process  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        await self.engine.dispose()
