"""
请求传输层：所有发往 AI 网关的调用都从这里出去。

职责：
- 解析凭据以及目标路径 / wire format
- 每次调用都先经过熔断器
- 对可重试的失败按指数退避重试
- 所有错误在返回给调用方之前先脱敏

同一个 descriptor 的重试严格串行：第 N 次失败且退避等待结束后才会发起第 N+1 次。
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from gateway_node.errors import UpstreamHTTPError
from gateway_node.logging_config import logger
from gateway_node.schemas import Credentials, RequestDescriptor
from gateway_node.settings import settings

from .base import CredentialsProvider, HttpRequester
from .circuit_breaker import CircuitBreaker, CircuitBreakerState, get_default_breaker
from .endpoint_map import WireFormat, build_request_for_model, resolve_endpoint
from .error_sanitizer import extract_status_code, sanitize

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class WireRequest:
    method: str
    url: str
    path: str
    format: WireFormat
    headers: dict[str, str]
    body: dict[str, Any] | None
    params: dict[str, Any] | None
    timeout_ms: int


def is_retryable_status(status_code: int | None) -> bool:
    # 没有状态码说明请求没拿到响应（超时、连接被重置）
    if status_code is None:
        return True
    return status_code in RETRYABLE_STATUS_CODES


def is_client_error(status_code: int | None) -> bool:
    return status_code is not None and 400 <= status_code < 500 and status_code != 429


def _resolve_target(descriptor: RequestDescriptor) -> tuple[str, WireFormat, dict[str, Any] | None]:
    body = dict(descriptor.body) if descriptor.body is not None else None
    if descriptor.endpoint:
        return descriptor.endpoint, "openai", body

    model = descriptor.resolved_model() or ""
    messages = body.get("messages") if body is not None else None
    if not isinstance(messages, list):
        config = resolve_endpoint(model)
        if body is not None and model:
            body["model"] = model
        return config.path, config.format, body

    built = build_request_for_model(
        model,
        messages,
        {k: v for k, v in body.items() if k != "messages"},
    )
    return built.endpoint, built.format, built.body


class RequestTransport:
    """
    带重试与熔断的网关客户端。

    `sleep` 可注入（参数为秒，与 asyncio.sleep 一致），测试据此观察退避间隔；
    需要轮询的动作（视频任务）也通过同一个 callable 等待。
    """

    def __init__(
        self,
        *,
        http: HttpRequester,
        credentials: CredentialsProvider,
        breaker: CircuitBreaker | None = None,
        max_retries: int | None = None,
        retry_delay_base_ms: int | None = None,
        default_timeout_ms: int | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.http = http
        self._credentials = credentials
        self.breaker = breaker or get_default_breaker()
        self.max_retries = settings.max_retries if max_retries is None else int(max_retries)
        self.retry_delay_base_ms = (
            settings.retry_delay_base_ms if retry_delay_base_ms is None else int(retry_delay_base_ms)
        )
        self.default_timeout_ms = default_timeout_ms or settings.request_timeout_ms
        self.sleep = sleep

    # 熔断器状态读写，供测试使用
    def get_state(self) -> CircuitBreakerState:
        return self.breaker.get_state()

    def set_state(self, consecutive_failures: int, open_until: float) -> None:
        self.breaker.set_state(consecutive_failures, open_until)

    def reset(self) -> None:
        self.breaker.reset()

    def backoff_seconds(self, attempt: int) -> float:
        return self.retry_delay_base_ms * (2**attempt) / 1000

    def build_wire_request(self, descriptor: RequestDescriptor, credentials: Credentials) -> WireRequest:
        base_url = (credentials.base_url or settings.default_base_url).rstrip("/")
        path, wire_format, body = _resolve_target(descriptor)
        headers = {
            "Authorization": f"Bearer {credentials.api_key}",
            "Content-Type": "application/json",
        }
        if descriptor.headers:
            headers.update(descriptor.headers)
        return WireRequest(
            method=descriptor.method,
            url=f"{base_url}{path}",
            path=path,
            format=wire_format,
            headers=headers,
            body=body,
            params=dict(descriptor.query) if descriptor.query else None,
            timeout_ms=descriptor.timeout_ms or self.default_timeout_ms,
        )

    async def perform_request(self, descriptor: RequestDescriptor) -> Any:
        """
        执行 descriptor 并返回解码后的上游响应体。

        失败时抛出 GatewayAPIError（熔断打开时为 CircuitOpenError）。
        """
        credentials = await self._credentials()
        api_key = credentials.api_key or ""

        self.breaker.before_request()

        wire = self.build_wire_request(descriptor, credentials)
        total_attempts = 1 + self.max_retries
        last_error: BaseException | None = None

        for attempt in range(total_attempts):
            try:
                response = await self.http(
                    method=wire.method,
                    url=wire.url,
                    headers=wire.headers,
                    json_body=wire.body,
                    params=wire.params,
                    timeout_ms=wire.timeout_ms,
                )
            except Exception as exc:
                last_error = exc
                status_code = extract_status_code(exc)

                if is_client_error(status_code):
                    self.breaker.record_failure()
                    logger.warning(
                        "request_transport: %s %s rejected with status=%s, not retrying",
                        wire.method,
                        wire.path,
                        status_code,
                    )
                    raise sanitize(exc, api_key) from None

                if not is_retryable_status(status_code):
                    self.breaker.record_failure()
                    logger.warning(
                        "request_transport: %s %s failed with status=%s",
                        wire.method,
                        wire.path,
                        status_code,
                    )
                    raise sanitize(exc, api_key) from None

                if attempt < total_attempts - 1:
                    delay = self.backoff_seconds(attempt)
                    logger.info(
                        "request_transport: %s %s got status=%s, retry %d/%d in %.1fs",
                        wire.method,
                        wire.path,
                        status_code,
                        attempt + 1,
                        self.max_retries,
                        delay,
                    )
                    await self.sleep(delay)
                    continue

                self.breaker.record_failure()
                logger.warning(
                    "request_transport: %s %s failed after %d attempts (last status=%s)",
                    wire.method,
                    wire.path,
                    total_attempts,
                    status_code,
                )
                raise sanitize(exc, api_key) from None
            self.breaker.record_success()
            logger.debug(
                "request_transport: %s %s succeeded on attempt %d",
                wire.method,
                wire.path,
                attempt + 1,
            )
            return response

        # 仅在重试次数为负数时可达
        raise sanitize(last_error or UpstreamHTTPError("Unknown error"), api_key)


__all__ = [
    "RETRYABLE_STATUS_CODES",
    "RequestTransport",
    "WireRequest",
    "is_client_error",
    "is_retryable_status",
]
