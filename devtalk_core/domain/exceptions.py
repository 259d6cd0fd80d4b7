"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
便于在 API 层统一捕获并映射为 HTTP 错误信封。

注意：ResponderFailure 只在交换协调器内部流转，
最终被吸收为一条 status=FAILED 的 AI 消息，不会抛给调用方。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 session_id、provider 等）。
    """

    default_code = "BUSINESS_ERROR"
    default_status = 400

    def __init__(self, code: str | None = None, message: str = "", http_status: int | None = None, **extra):
        self.code = code or self.default_code
        self.message = message
        self.http_status = http_status or self.default_status
        self.extra = extra
        super().__init__(message)


class InvalidRequest(BusinessError):
    """请求内容不合法（空消息、未知角色/状态等），在任何写入之前拒绝。"""

    default_code = "INVALID_REQUEST"
    default_status = 400


class SessionNotFound(BusinessError):
    """存储中不存在该会话。"""

    default_code = "SESSION_NOT_FOUND"
    default_status = 404


class SessionUnavailable(BusinessError):
    """会话缺失、未处于 OK 状态或存储不可用，客户端需要新建会话。"""

    default_code = "SESSION_UNAVAILABLE"
    default_status = 404


class ResponderFailure(BusinessError):
    """Responder 出错、超时或返回了无法使用的结果。"""

    default_code = "RESPONDER_FAILURE"
    default_status = 502


class StoreFailure(BusinessError):
    """持久化层无法创建、读取或写入会话。"""

    default_code = "STORE_ERROR"
    default_status = 503


class NetworkError(ResponderFailure):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(ResponderFailure):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(ResponderFailure):
    """Provider 限流错误。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
