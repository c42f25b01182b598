"""
模型 -> 上游端点映射，以及按 wire format 重塑请求体。

规则按顺序匹配，第一条命中即返回；新增模型家族只需追加一条规则。
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

WireFormat = Literal["openai", "anthropic", "gemini"]

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
MESSAGES_PATH = "/v1/messages"
EMBEDDINGS_PATH = "/v1/embeddings"
VIDEO_GENERATIONS_PATH = "/v1/videos/generations"
IMAGE_GENERATIONS_PATH = "/v1/images/generations"
MODELS_PATH = "/v1/models"


@dataclass(frozen=True)
class EndpointConfig:
    path: str
    format: WireFormat


@dataclass(frozen=True)
class BuiltRequest:
    endpoint: str
    format: WireFormat
    body: dict[str, Any]


def _prefix(*prefixes: str) -> Callable[[str], bool]:
    pattern = re.compile(r"^(?:" + "|".join(re.escape(p) for p in prefixes) + ")")
    return lambda model_id: bool(pattern.match(model_id))


ENDPOINT_RULES: tuple[tuple[Callable[[str], bool], EndpointConfig], ...] = (
    (_prefix("text-embedding-"), EndpointConfig(EMBEDDINGS_PATH, "openai")),
    (_prefix("sora-", "veo-", "luma-"), EndpointConfig(VIDEO_GENERATIONS_PATH, "openai")),
    (_prefix("claude-"), EndpointConfig(MESSAGES_PATH, "anthropic")),
    (_prefix("doubao-"), EndpointConfig(IMAGE_GENERATIONS_PATH, "openai")),
)

DEFAULT_ENDPOINT = EndpointConfig(CHAT_COMPLETIONS_PATH, "openai")


def resolve_endpoint(model_id: str) -> EndpointConfig:
    """
    Map a model identifier to its upstream path and wire format.

    Unknown or empty identifiers resolve to OpenAI-style chat completions.
    """
    if not isinstance(model_id, str) or not model_id:
        return DEFAULT_ENDPOINT
    for matches, config in ENDPOINT_RULES:
        if matches(model_id):
            return config
    return DEFAULT_ENDPOINT


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text" and isinstance(part.get("text"), str)
        ]
        return "".join(parts)
    return ""


def split_system_messages(
    messages: Iterable[Any],
) -> tuple[str | None, list[dict[str, Any]]]:
    """
    Pull every ``system`` message out of ``messages``.

    Returns the system texts joined with ``\\n`` (``None`` when there were no
    system messages) and the remaining messages, in their original order.
    """
    system_parts: list[str] = []
    rest: list[dict[str, Any]] = []
    for msg in messages:
        if not isinstance(msg, Mapping):
            continue
        if msg.get("role") == "system":
            system_parts.append(_message_text(msg.get("content")))
            continue
        rest.append(dict(msg))
    if not system_parts:
        return None, rest
    return "\n".join(system_parts), rest


def build_request_for_model(
    model: str,
    messages: Iterable[Any] | None = None,
    extra_fields: Mapping[str, Any] | None = None,
) -> BuiltRequest:
    """
    Build path + body for ``model`` in the wire format it resolves to.

    OpenAI format keeps system messages inline. Anthropic format moves them
    into a top-level ``system`` field. Other fields (temperature, max_tokens,
    thinking budget, ...) pass through untouched. Inputs are not mutated.
    """
    config = resolve_endpoint(model)

    body: dict[str, Any] = {"model": model}
    if extra_fields:
        body.update({k: v for k, v in extra_fields.items() if k not in ("model", "messages")})

    if messages is None:
        return BuiltRequest(endpoint=config.path, format=config.format, body=body)

    if config.format == "anthropic":
        system, rest = split_system_messages(messages)
        if system is not None:
            body["system"] = system
        body["messages"] = rest
    else:
        body["messages"] = [dict(m) if isinstance(m, Mapping) else m for m in messages]

    return BuiltRequest(endpoint=config.path, format=config.format, body=body)


__all__ = [
    "BuiltRequest",
    "CHAT_COMPLETIONS_PATH",
    "DEFAULT_ENDPOINT",
    "EMBEDDINGS_PATH",
    "ENDPOINT_RULES",
    "EndpointConfig",
    "IMAGE_GENERATIONS_PATH",
    "MESSAGES_PATH",
    "MODELS_PATH",
    "VIDEO_GENERATIONS_PATH",
    "WireFormat",
    "build_request_for_model",
    "resolve_endpoint",
    "split_system_messages",
]
