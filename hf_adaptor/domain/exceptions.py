"""统一业务异常模型。

适配器对外抛出的所有错误都继承自 BusinessError，
调用方只需捕获基类即可，通过 code 区分失败阶段（构造请求 / 传输 / 解码）。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "RETRIES_EXCEEDED"）。
        message: 可读错误信息。
        http_status: 相关的 HTTP 状态码，默认 400。
        extra: 其他补充字段（例如 body、attempts 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时、读取响应体失败等。不做重试。"""


class ApiError(BusinessError):
    """推理端点返回非 200 且非 503 的状态码时抛出，不做重试。"""


class RetriesExceededError(BusinessError):
    """连续收到 503，重试次数耗尽。"""


class RequestCancelledError(BusinessError):
    """调用方在退避等待期间取消了请求。"""


class DecodeError(BusinessError):
    """响应体与期望的 JSON 结构不符（字段类型错误、choices 为空等）。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
