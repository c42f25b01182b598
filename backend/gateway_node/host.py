"""
面向宿主的协作者接口。

工作流宿主负责 item 循环、参数取值、凭据存储和二进制附件；动作只通过 ExecutionContext 与之交互。
LocalExecutionContext 是进程内实现，供 CLI 脚本和测试使用。
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from gateway_node.errors import ActionError
from gateway_node.schemas import Credentials
from gateway_node.transport.base import HttpRequester, HttpxRequester

_MISSING: Any = object()


@dataclass(frozen=True)
class BinaryData:
    data: bytes
    file_name: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class NodeItem:
    """One item flowing between workflow nodes."""

    json: dict[str, Any] = field(default_factory=dict)
    binary: Optional[dict[str, BinaryData]] = None
    paired_item: Optional[int] = None


class ExecutionContext(Protocol):
    @property
    def http_request(self) -> HttpRequester: ...

    def get_input_items(self) -> list[NodeItem]: ...

    def get_parameter(self, name: str, index: int, default: Any = _MISSING) -> Any:
        """Return the value of ``name`` for item ``index``; raise when missing and no default."""
        ...

    async def get_credentials(self) -> Credentials: ...

    def continue_on_fail(self) -> bool: ...

    def get_binary_data(self, index: int, property_name: str) -> BinaryData: ...

    async def prepare_binary_data(self, data: bytes, file_name: str, mime_type: str) -> BinaryData: ...

    async def download(self, url: str, *, timeout_ms: int) -> bytes: ...


class LocalExecutionContext:
    """
    In-process execution context.

    ``parameters`` apply to every item; ``item_parameters`` (keyed by item
    index) override them per item, mirroring expressions evaluated by a host.
    """

    def __init__(
        self,
        *,
        parameters: Mapping[str, Any],
        credentials: Credentials,
        items: Sequence[NodeItem] | None = None,
        item_parameters: Mapping[int, Mapping[str, Any]] | None = None,
        continue_on_fail: bool = False,
        requester: HttpxRequester | None = None,
    ) -> None:
        self._parameters = dict(parameters)
        self._item_parameters = {int(k): dict(v) for k, v in (item_parameters or {}).items()}
        self._credentials = credentials
        self._items = list(items) if items else [NodeItem()]
        self._continue_on_fail = continue_on_fail
        self._requester = requester or HttpxRequester()

    @property
    def http_request(self) -> HttpRequester:
        return self._requester

    def get_input_items(self) -> list[NodeItem]:
        return list(self._items)

    def get_parameter(self, name: str, index: int, default: Any = _MISSING) -> Any:
        overrides = self._item_parameters.get(index, {})
        if name in overrides:
            return overrides[name]
        if name in self._parameters:
            return self._parameters[name]
        if default is _MISSING:
            raise ActionError(f'Missing required parameter "{name}"')
        return default

    async def get_credentials(self) -> Credentials:
        return self._credentials

    def continue_on_fail(self) -> bool:
        return self._continue_on_fail

    def get_binary_data(self, index: int, property_name: str) -> BinaryData:
        if index >= len(self._items):
            raise ActionError(f"No input item at index {index}")
        binary = self._items[index].binary or {}
        if property_name not in binary:
            raise ActionError(f'Input item {index} has no binary property "{property_name}"')
        return binary[property_name]

    async def prepare_binary_data(self, data: bytes, file_name: str, mime_type: str) -> BinaryData:
        return BinaryData(data=bytes(data), file_name=file_name, mime_type=mime_type)

    async def download(self, url: str, *, timeout_ms: int) -> bytes:
        return await self._requester.download(url, timeout_ms=timeout_ms)


__all__ = ["BinaryData", "ExecutionContext", "LocalExecutionContext", "NodeItem"]
