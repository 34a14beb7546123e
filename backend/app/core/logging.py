# app/core/logging.py
# 日志配置模块
#
# 功能说明：
# 1. 统一管理应用日志输出
# 2. 支持两种格式：彩色控制台（开发）和 JSON（生产）
# 3. 自动记录请求信息（中间件）
# 4. 与 APScheduler、SQLAlchemy、uvicorn 等库兼容
#
# 使用方法：
#   from app.core.logging import get_logger
#   logger = get_logger(__name__)
#   logger.info("这是一条日志")

import logging
import sys
import json
import time
from datetime import datetime
from typing import Optional, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


# ==================== 彩色输出支持 ====================

class Colors:
    """终端颜色代码"""
    RESET = "\033[0m"
    RED = "\033[31m"       # ERROR
    GREEN = "\033[32m"     # INFO
    YELLOW = "\033[33m"    # WARNING
    BLUE = "\033[34m"      # DEBUG
    MAGENTA = "\033[35m"   # CRITICAL
    CYAN = "\033[36m"      # 时间戳
    GRAY = "\033[90m"      # 位置信息


LEVEL_COLORS = {
    "DEBUG": Colors.BLUE,
    "INFO": Colors.GREEN,
    "WARNING": Colors.YELLOW,
    "ERROR": Colors.RED,
    "CRITICAL": Colors.MAGENTA,
}


# ==================== 自定义 Formatter ====================

class ColoredFormatter(logging.Formatter):
    """
    彩色日志格式化器（开发环境使用）

    输出格式：
    2026-01-30 07:00:00 | INFO     | app.approvals.orchestrator:run_tick:88 - 审批流程已启动
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        level_name = record.levelname
        level_color = LEVEL_COLORS.get(level_name, Colors.RESET)

        # 模块名:函数名:行号
        location = f"{record.name}:{record.funcName}:{record.lineno}"

        formatted = (
            f"{Colors.CYAN}{timestamp}{Colors.RESET} | "
            f"{level_color}{level_name:8}{Colors.RESET} | "
            f"{Colors.GRAY}{location}{Colors.RESET} - "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


class JSONFormatter(logging.Formatter):
    """
    JSON 日志格式化器（生产环境使用）

    每行一个 JSON 对象，便于 ELK、Loki 等工具解析。
    通过 extra={"extra_data": {...}} 传入的上下文会放在 "extra" 字段。
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False)


# ==================== Logger 工厂函数 ====================

def setup_logging(level: str = "INFO", log_format: str = "console", debug: bool = False) -> None:
    """
    初始化日志系统

    应用启动时调用一次，参数来自 Settings 的 LOG_LEVEL / LOG_FORMAT / DEBUG。

    Args:
        level: 日志级别
        log_format: console 或 json
        debug: 调试模式下显示 SQL 语句
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # 清除已有的 handler（避免重复添加）
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = ColoredFormatter()

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # 第三方库日志级别
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    if debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # APScheduler 每次执行都会打印 INFO，降到 WARNING
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    获取 logger 实例

    每个模块应该使用自己的 logger，传入模块名（通常是 __name__）

    Args:
        name: logger 名称，通常传入 __name__

    Returns:
        logging.Logger: logger 实例
    """
    return logging.getLogger(name)


# ==================== 请求日志中间件 ====================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    HTTP 请求日志中间件

    记录每个请求的方法、路径、状态码和耗时。
    审批链接被重复点击时会产生 400，记为 WARNING 而不是 ERROR。

    输出示例：
    INFO | GET /approvals/decide?pid=...&decision=approve -> 200 (12ms)
    """

    def __init__(self, app, logger: Optional[logging.Logger] = None):
        super().__init__(app)
        self.logger = logger or get_logger("app.request")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        method = request.method
        path = request.url.path
        query = str(request.url.query) if request.url.query else ""

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            duration = (time.time() - start_time) * 1000
            self.logger.error(
                f"{method} {path} -> 500 ERROR ({duration:.0f}ms) - {str(e)}"
            )
            raise

        duration = (time.time() - start_time) * 1000

        log_message = f"{method} {path}"
        if query:
            log_message += f"?{query}"
        log_message += f" -> {status_code} ({duration:.0f}ms)"

        if status_code >= 500:
            self.logger.error(log_message)
        elif status_code >= 400:
            self.logger.warning(log_message)
        else:
            self.logger.info(log_message)

        return response
