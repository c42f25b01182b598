"""
错误脱敏：把原始传输失败转换为面向用户的错误，并抹掉其中的 API key。
"""

from __future__ import annotations

import re
from typing import Any

from gateway_node.errors import GatewayAPIError

KEY_MASK_SUFFIX = "****"

ERROR_MESSAGES: dict[int, str] = {
    400: "Bad Request: check input parameters",
    401: "Unauthorized: invalid API key",
    403: "Forbidden: no access to this resource",
    404: "Not Found: endpoint does not exist",
    429: "Rate Limited: too many requests",
    500: "Internal Server Error: upstream service error",
    502: "Bad Gateway: upstream temporarily unavailable",
    503: "Service Unavailable: upstream under maintenance",
}


def mask_api_key(api_key: str) -> str:
    # 不超过 4 个字符的 key 会在自身前缀中原样保留，整体打码
    if len(api_key) <= 4:
        return KEY_MASK_SUFFIX
    return api_key[:4] + KEY_MASK_SUFFIX


def redact(text: str, api_key: str) -> str:
    if not api_key or not text:
        return text
    masked = mask_api_key(api_key)
    return re.sub(re.escape(api_key), lambda _m: masked, text)


def _coerce_status(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value or None
    if isinstance(value, str):
        value = value.strip()
        if value.isdigit():
            return int(value) or None
    return None


def extract_status_code(raw_error: Any) -> int | None:
    """先取数值 status_code，再取字符串 http_code；以先出现者为准。"""
    for attr in ("status_code", "http_code"):
        status = _coerce_status(getattr(raw_error, attr, None))
        if status is not None:
            return status
    return None


def _text_attr(raw_error: Any, attr: str) -> str:
    value = getattr(raw_error, attr, None)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def sanitize(raw_error: Any, api_key: str) -> GatewayAPIError:
    """
    把 raw_error 转换为 GatewayAPIError。

    已知状态码使用固定提示语，其余保留原始 message；message 与 description 中都不会残留 api_key。
    """
    message = _text_attr(raw_error, "message") or (str(raw_error) if isinstance(raw_error, BaseException) else "")
    message = message or "Unknown error"
    description = _text_attr(raw_error, "description")

    message = redact(message, api_key)
    description = redact(description, api_key)

    status = extract_status_code(raw_error)
    friendly = ERROR_MESSAGES.get(status, message) if status is not None else message

    return GatewayAPIError(friendly, description=description, code=str(status or 0))


__all__ = [
    "ERROR_MESSAGES",
    "KEY_MASK_SUFFIX",
    "extract_status_code",
    "mask_api_key",
    "redact",
    "sanitize",
]
