"""
网关传输层：端点解析、重试 + 熔断、错误脱敏、响应抽取。
"""

from .base import CredentialsProvider, HttpRequester, HttpxRequester
from .circuit_breaker import (
    BreakerStatus,
    CircuitBreaker,
    CircuitBreakerState,
    get_default_breaker,
)
from .endpoint_map import (
    CHAT_COMPLETIONS_PATH,
    EMBEDDINGS_PATH,
    IMAGE_GENERATIONS_PATH,
    MESSAGES_PATH,
    MODELS_PATH,
    VIDEO_GENERATIONS_PATH,
    BuiltRequest,
    EndpointConfig,
    WireFormat,
    build_request_for_model,
    resolve_endpoint,
    split_system_messages,
)
from .error_sanitizer import ERROR_MESSAGES, extract_status_code, mask_api_key, sanitize
from .request import RETRYABLE_STATUS_CODES, RequestTransport, WireRequest
from .response import (
    ImagePayload,
    NormalizedChatResult,
    convert_anthropic_response,
    extract_chat_content,
    extract_embedding,
    extract_image_url,
    extract_thinking,
    extract_usage,
    extract_video_url,
    parse_image_payload,
)

__all__ = [
    "BreakerStatus",
    "BuiltRequest",
    "CHAT_COMPLETIONS_PATH",
    "CircuitBreaker",
    "CircuitBreakerState",
    "CredentialsProvider",
    "EMBEDDINGS_PATH",
    "ERROR_MESSAGES",
    "EndpointConfig",
    "HttpRequester",
    "HttpxRequester",
    "IMAGE_GENERATIONS_PATH",
    "ImagePayload",
    "MESSAGES_PATH",
    "MODELS_PATH",
    "NormalizedChatResult",
    "RETRYABLE_STATUS_CODES",
    "RequestTransport",
    "VIDEO_GENERATIONS_PATH",
    "WireFormat",
    "WireRequest",
    "build_request_for_model",
    "convert_anthropic_response",
    "extract_chat_content",
    "extract_embedding",
    "extract_image_url",
    "extract_status_code",
    "extract_thinking",
    "extract_usage",
    "extract_video_url",
    "get_default_breaker",
    "mask_api_key",
    "parse_image_payload",
    "resolve_endpoint",
    "sanitize",
    "split_system_messages",
]
