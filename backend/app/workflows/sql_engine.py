# app/workflows/sql_engine.py
# 数据库持久化流程引擎
#
# 功能说明：
# 1. 流程实例保存在 workflow_processes 表，重启不丢失
# 2. 执行命令使用条件更新（UPDATE ... WHERE state = 起始状态），
#    并发执行同一命令时只有一个能更新成功，其余抛出 CommandNotAvailableError
# 3. 每次流转写一条 workflow_process_transitions 历史记录
#
# 使用方法：
#   engine = SqlTransitionEngine(Database(settings.DATABASE_URL))
#   await engine.start()

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError

from app.core.database import Database
from app.core.exceptions import CommandNotAvailableError, ProcessAlreadyExistsError
from app.core.logging import get_logger
from app.models.process import WorkflowProcess, WorkflowProcessTransition
from app.workflows.engine import TransitionEngine
from app.workflows.scheme import get_scheme
from app.workflows.types import WorkflowCommand

logger = get_logger(__name__)


class SqlTransitionEngine(TransitionEngine):
    """数据库流程引擎"""

    def __init__(self, database: Database, auto_create: bool = True):
        self.db = database
        self.auto_create = auto_create

    async def start(self) -> None:
        if self.auto_create:
            await self.db.create_all()
            logger.info("[SqlEngine] 流程表已就绪")

    async def close(self) -> None:
        await self.db.close()

    async def ping(self) -> bool:
        return await self.db.ping()

    async def create_process(self, scheme_code: str, process_id: str) -> None:
        scheme = get_scheme(scheme_code)

        async with self.db.session_maker() as session:
            session.add(WorkflowProcess(
                process_id=process_id,
                scheme_code=scheme.code,
                state=scheme.initial_state,
            ))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ProcessAlreadyExistsError(process_id) from e

        logger.debug(f"[SqlEngine] 创建流程: {process_id} ({scheme.code})")

    async def get_legal_commands(self, process_id: str) -> list[WorkflowCommand]:
        async with self.db.session_maker() as session:
            process = await session.get(WorkflowProcess, process_id)

        if process is None:
            return []

        scheme = get_scheme(process.scheme_code)
        return scheme.commands_for(process_id, process.state)

    async def execute_command(self, command: WorkflowCommand) -> None:
        async with self.db.session_maker() as session:
            async with session.begin():
                # 以旧状态为条件的更新，输掉竞争的一方 rowcount 为 0
                result = await session.execute(
                    update(WorkflowProcess)
                    .where(
                        WorkflowProcess.process_id == command.process_id,
                        WorkflowProcess.state == command.from_state,
                    )
                    .values(state=command.to_state, updated_at=func.now())
                )
                if result.rowcount != 1:
                    raise CommandNotAvailableError(command.process_id, command.name)

                session.add(WorkflowProcessTransition(
                    process_id=command.process_id,
                    command=command.name,
                    from_state=command.from_state,
                    to_state=command.to_state,
                ))

        logger.debug(
            f"[SqlEngine] {command.process_id}: "
            f"{command.from_state} --{command.name}--> {command.to_state}"
        )

    async def get_history(self, process_id: str) -> list[WorkflowProcessTransition]:
        """查询流转历史（按执行顺序）"""
        async with self.db.session_maker() as session:
            result = await session.execute(
                select(WorkflowProcessTransition)
                .where(WorkflowProcessTransition.process_id == process_id)
                .order_by(WorkflowProcessTransition.id)
            )
            return list(result.scalars().all())
