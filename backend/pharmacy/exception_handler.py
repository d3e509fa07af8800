"""
统一异常处理器。

挂到 DRF 的 EXCEPTION_HANDLER setting 上。
所有响应前端都能用同一套逻辑判断：
  success === true   → data 一定完整
  success === false  → 看 type / code / message

统一错误响应格式：
{
    "success": false,
    "type":    "validation_error" | "block" | "not_found" | "error",
    "code":    "ORDER_NOT_FOUND",
    "message": "Order not found",
    "error":   "Order not found",   // 与 message 相同，兼容旧前端
    "detail":  { ... }              // 可选
}
"""

import logging

from rest_framework.exceptions import APIException
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.views import exception_handler as drf_default_handler
from django.http import JsonResponse

from .exceptions import BaseAppException

logger = logging.getLogger(__name__)


def _error_body(type_, code, message, detail=None):
    body = {
        'success': False,
        'type': type_,
        'code': code,
        'message': message,
        'error': message,
    }
    if detail is not None:
        body['detail'] = detail
    return body


def unified_exception_handler(exc, context):
    """
    DRF exception handler entry point.

    优先级：
    1. BaseAppException 及其子类 → 统一格式
    2. DRF 自带的 ValidationError → 转成统一格式
    3. 其他 DRF APIException（ParseError / MethodNotAllowed ...）→ 包一层统一格式
    4. 其他异常 → 交给 DRF 默认处理（返回 None，由 Django 500）
    """

    # --- 1. 我们自己的异常体系 ---
    if isinstance(exc, BaseAppException):
        if exc.http_status >= 500:
            logger.error("[API] %s: %s", exc.code, exc.message, exc_info=exc)
        body = _error_body(exc.type, exc.code, exc.message, exc.detail)
        return JsonResponse(body, status=exc.http_status)

    # --- 2. DRF 自带的 ValidationError ---
    if isinstance(exc, DRFValidationError):
        body = _error_body('validation_error', 'VALIDATION_ERROR', 'Request validation failed', exc.detail)
        return JsonResponse(body, status=400)

    # --- 3. 其他 DRF 异常 ---
    if isinstance(exc, APIException):
        body = _error_body('error', str(exc.default_code).upper(), str(exc.detail))
        return JsonResponse(body, status=exc.status_code)

    # --- 4. 其他的交给 DRF 默认处理 ---
    return drf_default_handler(exc, context)
