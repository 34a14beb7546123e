# app/core/config.py
# 配置管理模块
#
# 功能说明：
# 1. 使用 Pydantic Settings 从环境变量加载配置
# 2. 支持 .env 文件读取
# 3. 提供类型安全的配置访问
# 4. 启动前校验必需配置（缺失即退出，不进入运行期）
#
# 使用方法：
#   from app.core.config import get_settings
#   settings = get_settings()
#   print(settings.APP_NAME)
#
# 注意：
# 业务组件（Orchestrator、Gateway、TransitionEngine）不直接读取全局配置，
# 而是在构造时由 app/approvals/container.py 显式传入所需的值。

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import ConfigurationError


# 未配置审批人时使用的内置收件人列表
DEFAULT_APPROVER_EMAILS = "ops1@company.com;ops2@company.com"


class Settings(BaseSettings):
    """
    应用配置类

    所有配置项都可以通过环境变量覆盖，环境变量名与属性名相同（大写）
    例如：设置 SCHEDULE_MODE=daily 环境变量会切换为每日定时触发
    """

    # ==================== 应用基础配置 ====================
    APP_NAME: str = "SimpleWF Approvals"   # 应用名称，显示在日志和API文档中
    DEBUG: bool = False                    # 调试模式：True 时输出 SQL 查询

    # ==================== 日志配置 ====================
    # 日志级别：DEBUG < INFO < WARNING < ERROR < CRITICAL
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # 日志格式：console（彩色控制台输出）或 json（结构化JSON，适合生产环境）
    LOG_FORMAT: Literal["console", "json"] = "console"

    # ==================== 流程引擎配置 ====================
    # sql:    持久化引擎（生产环境），需要 DATABASE_URL
    # memory: 进程内存引擎（本地调试），重启后流程丢失
    ENGINE_BACKEND: Literal["sql", "memory"] = "sql"

    # 数据库连接字符串，格式：postgresql+asyncpg://用户名:密码@主机:端口/数据库名
    # 使用 sql 引擎时必填，缺失会导致启动失败
    DATABASE_URL: str = ""

    # 启动时自动建表（不使用迁移工具时开启）
    DATABASE_AUTO_CREATE: bool = True

    # 审批流程方案代码
    WORKFLOW_SCHEME: str = "SimpleWF"

    # ==================== 并发锁配置 ====================
    # local: 单实例部署，进程内 asyncio 锁
    # redis: 多实例部署，Redis 分布式锁
    LOCK_BACKEND: Literal["local", "redis"] = "local"

    # Redis 连接字符串格式：redis://主机:端口/数据库编号
    REDIS_URL: str = "redis://localhost:6379/0"

    # 等待同一流程锁的最长时间（秒），超时返回 409
    LOCK_TIMEOUT_SECONDS: int = 10

    # ==================== 审批通知配置 ====================
    # 审批链接的基础地址，例如：http://localhost:8000/approvals
    APPROVALS_BASE_URL: str = "http://localhost:8000/approvals"

    # 审批人邮箱，分号分隔；为空时使用内置列表
    APPROVER_EMAILS: str = ""

    # 邮件主题前缀，实际主题会追加日期
    APPROVALS_SUBJECT_PREFIX: str = "New Wells Approval"

    # 批次为空时是否跳过本次触发（不建流程、不发邮件）
    APPROVALS_SKIP_EMPTY_BATCH: bool = False

    # ==================== 数据源配置 ====================
    # 待审批条目的 HTTP 接口地址；为空时使用内置示例数据
    ITEM_SOURCE_URL: str = ""
    ITEM_SOURCE_TIMEOUT: int = 30

    # ==================== 邮件配置 (SMTP) ====================
    # console: 打印到控制台（测试用）
    # smtp:    通过 SMTP 真实发送
    NOTIFIER_BACKEND: Literal["console", "smtp"] = "console"

    SMTP_HOST: str = ""
    SMTP_PORT: int = 465           # SMTP SSL 端口，一般是 465（SSL）或 587（STARTTLS）
    SMTP_USER: str = ""            # 发件人邮箱账号
    SMTP_PASSWORD: str = ""        # 授权码（不是登录密码！）
    SMTP_USE_TLS: bool = True      # 是否使用 SSL/TLS 加密
    SMTP_FROM: str = ""            # 发件人地址，为空时使用 SMTP_USER

    # ==================== 调度配置 ====================
    SCHEDULER_ENABLED: bool = True

    # interval: 固定间隔，立即开始，无限重复（快速验证）
    # daily:    每天固定时刻（生产环境）
    SCHEDULE_MODE: Literal["interval", "daily"] = "interval"
    SCHEDULE_INTERVAL_SECONDS: int = 60
    SCHEDULE_DAILY_HOUR: int = 7
    SCHEDULE_DAILY_MINUTE: int = 0

    # 主时区标识找不到时使用备用标识
    SCHEDULE_TIMEZONE: str = "Egypt Standard Time"
    SCHEDULE_TIMEZONE_FALLBACK: str = "Africa/Cairo"

    # ==================== 审批通过后的下游程序 ====================
    # 可执行文件路径，审批通过时以 --processId <id> 参数启动
    # 为空或文件不存在时跳过
    DOWNSTREAM_COMMAND: str = ""

    class Config:
        """Pydantic 配置类"""
        env_file = ".env"              # 从 .env 文件读取环境变量
        env_file_encoding = "utf-8"    # 文件编码
        case_sensitive = True          # 环境变量名区分大小写


def check_required_settings(settings: Settings) -> None:
    """
    校验启动必需的配置

    在任何组件装配之前调用。失败时抛出 ConfigurationError，
    由入口负责记录诊断信息并退出进程。

    Raises:
        ConfigurationError: 缺少必需配置
    """
    if settings.ENGINE_BACKEND == "sql" and not settings.DATABASE_URL.strip():
        raise ConfigurationError("DATABASE_URL is missing (required by ENGINE_BACKEND=sql)")

    if not settings.APPROVALS_BASE_URL.strip():
        raise ConfigurationError("APPROVALS_BASE_URL is missing")

    if settings.NOTIFIER_BACKEND == "smtp" and not settings.SMTP_HOST.strip():
        raise ConfigurationError("SMTP_HOST is missing (required by NOTIFIER_BACKEND=smtp)")

    if not 0 <= settings.SCHEDULE_DAILY_HOUR <= 23 or not 0 <= settings.SCHEDULE_DAILY_MINUTE <= 59:
        raise ConfigurationError(
            f"invalid daily schedule time "
            f"{settings.SCHEDULE_DAILY_HOUR}:{settings.SCHEDULE_DAILY_MINUTE}"
        )

    if settings.SCHEDULE_INTERVAL_SECONDS <= 0:
        raise ConfigurationError("SCHEDULE_INTERVAL_SECONDS must be positive")

    if settings.SCHEDULER_ENABLED and settings.SCHEDULE_MODE == "daily":
        zones = (settings.SCHEDULE_TIMEZONE, settings.SCHEDULE_TIMEZONE_FALLBACK)
        if not any(_zone_exists(zone) for zone in zones):
            raise ConfigurationError(
                f"unknown schedule timezone {settings.SCHEDULE_TIMEZONE!r} "
                f"(fallback {settings.SCHEDULE_TIMEZONE_FALLBACK!r})"
            )


def _zone_exists(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


@lru_cache()
def get_settings() -> Settings:
    """
    获取配置实例（单例模式）

    使用 @lru_cache 装饰器确保整个应用只创建一个 Settings 实例
    避免重复读取环境变量和 .env 文件

    Returns:
        Settings: 配置实例
    """
    return Settings()
