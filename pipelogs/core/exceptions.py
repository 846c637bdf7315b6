"""统一异常体系

所有业务异常继承 PipeLogsError，替代散落的 ValueError / RuntimeError。
Web 层可据此自动映射 HTTP 状态码，CLI 层可据此输出友好提示。

单条日志下载失败（TransientFetchError）只在下载器内部使用，
被吸收并记录为 skipped，不会传播给调用方。
"""

from __future__ import annotations


class PipeLogsError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(PipeLogsError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(PipeLogsError):
    """输入数据校验失败（非法正则、非正整数 ID 等），发生在任何 IO 之前"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class NotFoundError(PipeLogsError):
    """请求的日志文件不存在，或远端报告该运行没有任何日志"""

    code = "NOT_FOUND"


class AuthenticationError(PipeLogsError):
    """远端服务拒绝认证（401/403），原样向上抛出"""

    code = "AUTHENTICATION_ERROR"


class RemoteServiceError(PipeLogsError):
    """远端服务返回了无法归类的错误"""

    code = "REMOTE_ERROR"


class TransientFetchError(PipeLogsError):
    """单条日志下载失败（网络错误 / 超时 / 非 2xx）"""

    code = "TRANSIENT_FETCH_ERROR"

    def __init__(
        self, message: str, *, log_id: int | None = None, status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.log_id = log_id
        self.status = status
