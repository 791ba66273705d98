"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在服务层做统一捕获并降级到本地 fallback 回答。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "PROVIDER_TIMEOUT"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、tool 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """初始化时缺少凭证或必要配置。非致命，服务进入 fallback 模式。"""


class CollaboratorUnavailable(BusinessError):
    """协作方（向量检索、图片分析）初始化失败，其工具会从注册表中省略。"""


class ToolExecutionFailure(BusinessError):
    """工具执行失败。由 ToolExecutor 捕获并转换为带 error 标记的结果。"""


class ProviderFailure(BusinessError):
    """与 completion provider 交互失败，本轮整体降级为 fallback 回答。"""


class NetworkError(ProviderFailure):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(ProviderFailure):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(ProviderFailure):
    """Provider 限流错误。"""


class ProviderTimeoutError(ProviderFailure):
    """Provider 在配置的超时时间内没有返回。"""
