"""
传输层协作者接口：HTTP 调用与凭据获取。

The transport only depends on these protocols; the host (or the local
execution context) provides the implementations. ``HttpxRequester`` is the
default HTTP helper built on ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

import httpx

from gateway_node.errors import UpstreamHTTPError
from gateway_node.logging_config import payload_debug_logger
from gateway_node.schemas import Credentials

CredentialsProvider = Callable[[], Awaitable[Credentials]]

_ERROR_BODY_PREVIEW = 2000


class HttpRequester(Protocol):
    async def __call__(
        self,
        *,
        method: str,
        url: str,
        headers: Mapping[str, str],
        json_body: Any = None,
        params: Mapping[str, Any] | None = None,
        timeout_ms: int,
    ) -> Any:
        """
        Perform one HTTP call and return the decoded body.

        Must raise :class:`UpstreamHTTPError` on failure, with ``status_code``
        set for HTTP error responses and ``None`` for network-level errors.
        """
        ...


def _error_message_from_body(data: Any, fallback: str) -> str:
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and isinstance(err.get("message"), str) and err["message"]:
            return err["message"]
        if isinstance(err, str) and err:
            return err
        if isinstance(data.get("message"), str) and data["message"]:
            return data["message"]
    return fallback


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpxRequester:
    """
    ``HttpRequester`` implementation over ``httpx.AsyncClient``.

    A shared client can be injected (connection pooling, ``MockTransport`` in
    tests); otherwise a short-lived client is opened per call.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def __call__(
        self,
        *,
        method: str,
        url: str,
        headers: Mapping[str, str],
        json_body: Any = None,
        params: Mapping[str, Any] | None = None,
        timeout_ms: int,
    ) -> Any:
        timeout = timeout_ms / 1000
        if self._client is not None:
            return await self._send(self._client, method, url, headers, json_body, params, timeout)
        async with httpx.AsyncClient() as client:
            return await self._send(client, method, url, headers, json_body, params, timeout)

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        headers: Mapping[str, str],
        json_body: Any,
        params: Mapping[str, Any] | None,
        timeout: float,
    ) -> Any:
        try:
            response = await client.request(
                method,
                url,
                headers=dict(headers),
                json=json_body,
                params=dict(params) if params else None,
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamHTTPError(f"Request timed out after {timeout:g}s", description=str(exc)) from exc
        except httpx.HTTPError as exc:
            raise UpstreamHTTPError(str(exc) or exc.__class__.__name__) from exc

        data = _decode_body(response)
        if payload_debug_logger.isEnabledFor(logging.DEBUG):
            payload_debug_logger.debug(
                "http_requester: %s %s -> %s body=%s",
                method,
                url,
                response.status_code,
                str(data)[:_ERROR_BODY_PREVIEW],
            )

        if response.status_code >= 400:
            text = response.text or ""
            raise UpstreamHTTPError(
                _error_message_from_body(data, f"Request failed with status code {response.status_code}"),
                status_code=response.status_code,
                description=text[:_ERROR_BODY_PREVIEW],
                body=data,
            )
        return data

    async def download(self, url: str, *, timeout_ms: int) -> bytes:
        """GET ``url`` and return the raw bytes (image / video materialization)."""
        timeout = timeout_ms / 1000
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=timeout, follow_redirects=True)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(url, timeout=timeout, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise UpstreamHTTPError(str(exc) or exc.__class__.__name__) from exc
        if response.status_code >= 400:
            raise UpstreamHTTPError(
                f"Download failed with status code {response.status_code}",
                status_code=response.status_code,
            )
        return response.content


__all__ = ["CredentialsProvider", "HttpRequester", "HttpxRequester"]
