"""
统一异常处理器，挂到 DRF 的 EXCEPTION_HANDLER setting 上。

成功响应没有 type 字段；出错时一律是：
{
    "type":    "validation_error" | "block" | "unavailable" | "error",
    "code":    "INVALID_PAYMENT",
    "message": "Payment validation failed.",
    "detail":  { ... }  // 可选
}
"""

from django.http import Http404, JsonResponse
from rest_framework.exceptions import APIException, NotFound, ParseError, UnsupportedMediaType

from .exceptions import BaseAppException

# 请求体本身有问题（JSON 写坏了 / 不是 JSON），归到 validation_error
REQUEST_BODY_ERRORS = (ParseError, UnsupportedMediaType)


def _render(type_, code, message, status, detail=None):
    body = {'type': type_, 'code': code, 'message': message}
    if detail is not None:
        body['detail'] = detail
    return JsonResponse(body, status=status)


def unified_exception_handler(exc, context):
    """
    1. BaseAppException 及其子类：service 层抛出的业务异常
    2. DRF 的 APIException（以及 Django 的 Http404）：请求体解析失败、方法不允许等
    3. 其他异常返回 None，由 Django 按 500 处理
    """
    if isinstance(exc, BaseAppException):
        return _render(exc.type, exc.code, exc.message, exc.http_status, exc.detail)

    if isinstance(exc, Http404):
        exc = NotFound()

    if isinstance(exc, APIException):
        type_ = 'validation_error' if isinstance(exc, REQUEST_BODY_ERRORS) else 'error'
        code = exc.get_codes()
        return _render(
            type_,
            code.upper() if isinstance(code, str) else 'REQUEST_ERROR',
            str(exc.detail),
            exc.status_code,
        )

    return None
