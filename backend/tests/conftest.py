from __future__ import annotations

"""
Shared pytest configuration.

This file ensures the backend directory is on sys.path so that
`import gateway_node` works consistently in all tests, and provides
reusable test doubles for the HTTP helper, the transport and the host.
"""

import sys
from pathlib import Path
from typing import Any

# Ensure backend root is importable for test modules.
# This MUST be done before importing gateway_node modules.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest

from gateway_node.errors import UpstreamHTTPError
from gateway_node.host import LocalExecutionContext, NodeItem
from gateway_node.schemas import Credentials
from gateway_node.transport import CircuitBreaker, RequestTransport, get_default_breaker

TEST_API_KEY = "sk-test-1234567890"
TEST_BASE_URL = "https://gateway.example.com"


class ScriptedRequester:
    """
    HTTP helper double: replays ``responses`` in order and records every call.

    An entry that is an exception is raised; anything else is returned. The
    last entry repeats once the script is exhausted.
    """

    def __init__(self, responses: list[Any] | None = None, downloads: dict[str, bytes] | None = None):
        self.responses = list(responses or [{}])
        self.downloads = dict(downloads or {})
        self.calls: list[dict[str, Any]] = []
        self.download_calls: list[str] = []

    async def __call__(self, *, method, url, headers, json_body=None, params=None, timeout_ms):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": dict(headers),
                "json_body": json_body,
                "params": params,
                "timeout_ms": timeout_ms,
            }
        )
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        outcome = self.responses[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def download(self, url: str, *, timeout_ms: int) -> bytes:
        self.download_calls.append(url)
        if url not in self.downloads:
            raise UpstreamHTTPError("Download failed with status code 404", status_code=404)
        return self.downloads[url]


class ManualClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def chat_response(content: str, **extra_message: Any) -> dict[str, Any]:
    return {
        "choices": [{"message": {"role": "assistant", "content": content, **extra_message}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 5, "total_tokens": 8},
    }


@pytest.fixture(autouse=True)
def reset_default_breaker():
    get_default_breaker().reset()
    yield
    get_default_breaker().reset()


@pytest.fixture()
def credentials() -> Credentials:
    return Credentials(api_key=TEST_API_KEY, base_url=TEST_BASE_URL)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def make_transport(credentials, clock, sleep):
    """Build a transport over a ScriptedRequester with an isolated breaker."""

    def _make(requester: ScriptedRequester, **kwargs: Any) -> RequestTransport:
        async def _credentials() -> Credentials:
            return credentials

        breaker = kwargs.pop("breaker", None) or CircuitBreaker(threshold=5, reset_seconds=30, clock=clock)
        return RequestTransport(
            http=requester,
            credentials=_credentials,
            breaker=breaker,
            max_retries=kwargs.pop("max_retries", 3),
            retry_delay_base_ms=kwargs.pop("retry_delay_base_ms", 1000),
            sleep=sleep,
            **kwargs,
        )

    return _make


@pytest.fixture()
def make_context(credentials):
    """Build a LocalExecutionContext whose HTTP helper is the given requester."""

    def _make(
        requester: ScriptedRequester,
        parameters: dict[str, Any],
        *,
        items: list[NodeItem] | None = None,
        continue_on_fail: bool = False,
        item_parameters: dict[int, dict[str, Any]] | None = None,
    ) -> LocalExecutionContext:
        return LocalExecutionContext(
            parameters=parameters,
            credentials=credentials,
            items=items,
            item_parameters=item_parameters,
            continue_on_fail=continue_on_fail,
            requester=requester,  # type: ignore[arg-type]
        )

    return _make


@pytest.fixture()
def scripted():
    """The ScriptedRequester class, so tests can script responses without importing conftest."""
    return ScriptedRequester


@pytest.fixture()
def chat_reply():
    return chat_response
