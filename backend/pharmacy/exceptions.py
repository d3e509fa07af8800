"""
统一异常体系。

所有业务异常继承 BaseAppException，包含：
- type:        错误类型标识（validation_error / block / not_found / error）
- code:        业务错误码（EMPTY_PRESCRIPTION_TEXT / ORDER_NOT_FOUND / ...）
- message:     人类可读的描述
- detail:      可选的附加信息（dict / list / None）
- http_status: HTTP 状态码

View 层只需 raise，exception_handler 统一捕获并格式化响应。
ProviderError 例外：只在 OCR provider 链内部流转，永远不会到达 View。
"""


class BaseAppException(Exception):
    """所有业务异常的基类。"""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)


class InvalidInputError(BaseAppException):
    """缺少文件、文件类型不对、参数不合法。400。"""

    type = 'validation_error'
    code = 'INVALID_INPUT'
    http_status = 400


class EmptyInputError(InvalidInputError):
    """处方文本为空或只有空白。"""

    code = 'EMPTY_PRESCRIPTION_TEXT'


class PayloadTooLargeError(BaseAppException):
    """上传图片超过大小上限，在任何网络调用之前拒绝。413。"""

    type = 'validation_error'
    code = 'PAYLOAD_TOO_LARGE'
    http_status = 413


class InvalidStatusError(BaseAppException):
    """status 不在 pending/processing/ready/dispensed/cancelled 之内。400。"""

    type = 'validation_error'
    code = 'INVALID_STATUS'
    http_status = 400


class InvalidTransitionError(BaseAppException):
    """status 合法，但当前状态不允许流转过去。400。"""

    type = 'block'
    code = 'INVALID_STATUS_TRANSITION'
    http_status = 400


class NotFoundError(BaseAppException):
    type = 'not_found'
    code = 'NOT_FOUND'
    http_status = 404


class ConflictError(BaseAppException):
    """
    唯一约束冲突（order_id 撞号、处方已被下单）。409。

    order_id 撞号是并发创建造成的，客户端可以直接重试。
    """

    type = 'block'
    code = 'CONFLICT'
    http_status = 409


class StorageError(BaseAppException):
    """数据库读写失败，当前请求直接失败。500。"""

    type = 'error'
    code = 'STORAGE_ERROR'
    http_status = 500


class ProviderError(BaseAppException):
    """单个 OCR provider 失败（超时 / 网络 / 空结果）。触发 fallback，不对外暴露。"""

    type = 'provider_error'
    code = 'PROVIDER_ERROR'
    http_status = 502

    def __init__(self, message, provider='', **kwargs):
        self.provider = provider
        super().__init__(message, **kwargs)
