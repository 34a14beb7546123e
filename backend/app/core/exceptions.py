# app/core/exceptions.py
# 异常定义
#
# 错误分类：
# - 配置错误：启动时致命，进程直接退出
# - 上游依赖错误：数据源 / 邮件发送失败，只影响当前这次触发
# - 非法流转：决策当前不可用，属于预期内的客户端错误
# - 引擎致命错误：新建流程找不到 Start 命令，当前触发失败


class ApprovalError(Exception):
    """审批系统异常基类"""


class ConfigurationError(ApprovalError):
    """缺少或无效的启动配置"""


class ItemSourceError(ApprovalError):
    """获取待审批条目失败"""


class NotificationError(ApprovalError):
    """审批通知发送失败"""


class StartCommandMissingError(ApprovalError):
    """
    新建流程上没有可用的 Start 命令

    说明流程方案配置有误，当前触发直接失败，不在本次触发内重试。
    """

    def __init__(self, process_id: str, scheme_code: str):
        self.process_id = process_id
        self.scheme_code = scheme_code
        super().__init__(
            f"no Start command available for process {process_id} (scheme {scheme_code})"
        )


class CommandNotAvailableError(ApprovalError):
    """命令在流程当前状态下不可执行（已决策、流程不存在或状态不符）"""

    def __init__(self, process_id: str, command: str):
        self.process_id = process_id
        self.command = command
        super().__init__(f"command '{command}' not available for process {process_id}")


class ProcessAlreadyExistsError(ApprovalError):
    """流程 ID 已存在"""


class UnknownSchemeError(ApprovalError):
    """未注册的流程方案"""


class LockTimeoutError(ApprovalError):
    """等待流程锁超时（同一流程的其他请求正在处理）"""
