# app/main.py
# FastAPI 应用入口
#
# 功能说明：
# 1. 启动前校验配置，缺少必需配置直接退出进程
# 2. 装配审批组件（流程引擎、编排器、决策入口、调度器）
# 3. 配置中间件、注册路由
# 4. 管理应用生命周期（启动调度器 / 关闭时释放资源）
#
# 启动命令：
#   uvicorn app.main:get_application --factory --host 0.0.0.0 --port 8000
#   或：python -m app
#
# API 文档：
#   - Swagger UI: http://localhost:8000/docs

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.approvals.container import ApprovalServices, build_services
from app.core.config import Settings, check_required_settings, get_settings
from app.core.exceptions import ConfigurationError
from app.core.logging import setup_logging, get_logger, RequestLoggingMiddleware

from app.api import approvals
from app.api import health

logger = get_logger(__name__)

APP_VERSION = "0.1.0"


def create_app(services: ApprovalServices, app_name: str = "SimpleWF Approvals") -> FastAPI:
    """
    创建 FastAPI 应用

    Args:
        services: 已装配好的审批组件（测试时可注入内存引擎和假数据源）
        app_name: 应用名称
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ==================== 启动阶段 ====================
        logger.info(f"正在启动 {app_name}...")
        await services.startup()
        logger.info(f"{app_name} 启动完成")

        yield

        # ==================== 关闭阶段 ====================
        logger.info("正在关闭...")
        await services.shutdown()
        logger.info("清理完成，应用已关闭")

    app = FastAPI(
        title=app_name,
        description="定时发起审批流程，通过邮件链接记录审批决策",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.services = services

    # 请求日志中间件
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """处理未捕获的异常"""
        logger.exception(f"未处理的异常: {type(exc).__name__}: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "服务器内部错误"},
        )

    # ==================== 注册路由 ====================

    # 健康检查
    # - GET /health
    # - GET /health/detailed
    app.include_router(health.router)

    # 审批决策
    # - GET /approvals/decide?pid=...&decision=approve|reject
    app.include_router(approvals.router)

    @app.get("/", tags=["Root"], response_class=PlainTextResponse)
    async def root():
        return "SimpleWF Approval API running."

    return app


def load_services(settings: Settings) -> ApprovalServices:
    """
    校验配置并装配组件

    配置无效时记录诊断信息并以状态码 1 退出，不会进入服务阶段。
    """
    try:
        check_required_settings(settings)
    except ConfigurationError as e:
        logger.critical(f"ERROR: {e}")
        sys.exit(1)
    return build_services(settings)


def get_application() -> FastAPI:
    """uvicorn --factory 入口"""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT, settings.DEBUG)
    services = load_services(settings)
    return create_app(services, app_name=settings.APP_NAME)
