from __future__ import annotations

from typing import Any


class GatewayNodeError(Exception):
    """Base class for every error raised by this package."""


class UpstreamHTTPError(GatewayNodeError):
    """
    Raw failure reported by the HTTP requester.

    ``status_code`` is ``None`` for transport-level failures (timeouts,
    connection errors). Instances never leave the request transport without
    going through ``sanitize``.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        http_code: str | None = None,
        description: str = "",
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.http_code = http_code
        self.description = description
        self.body = body


class GatewayAPIError(GatewayNodeError):
    """User-facing error: credentials redacted, message taken from the fixed table when known."""

    def __init__(self, message: str, *, description: str = "", code: str = "0") -> None:
        super().__init__(message)
        self.message = message
        self.description = description
        self.code = code

    @property
    def status_code(self) -> int | None:
        try:
            value = int(self.code)
        except (TypeError, ValueError):
            return None
        return value or None

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "description": self.description, "code": self.code}


class CircuitOpenError(GatewayAPIError):
    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__(
            "Circuit breaker is open. Too many consecutive failures.",
            description=f"Service will retry after {retry_after_seconds}s",
        )
        self.retry_after_seconds = retry_after_seconds


class ActionError(GatewayNodeError):
    """Action-level failure (bad parameters, failed video task, ...)."""


__all__ = [
    "ActionError",
    "CircuitOpenError",
    "GatewayAPIError",
    "GatewayNodeError",
    "UpstreamHTTPError",
]
