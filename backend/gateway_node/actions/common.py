"""
各动作共用的辅助函数：模型选择、选项解析、extra body 合并、尽力而为的提示词改写以及二进制下载。
"""

from __future__ import annotations

import json
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Optional

from gateway_node.errors import ActionError, GatewayNodeError
from gateway_node.host import BinaryData, ExecutionContext, NodeItem
from gateway_node.logging_config import logger
from gateway_node.model_catalog import CUSTOM_MODEL_VALUE, resolve_model_from_mode
from gateway_node.schemas import ModelCapability, RequestDescriptor
from gateway_node.settings import settings
from gateway_node.transport import CHAT_COMPLETIONS_PATH, RequestTransport, extract_chat_content

ActionHandler = Callable[[ExecutionContext, RequestTransport, int], Awaitable[list[NodeItem]]]

# 文本类端点上 extra body 不允许覆盖的字段
PROTECTED_EXTRA_KEYS = frozenset(
    {"model", "messages", "stream", "tools", "tool_choice", "function_call", "functions"}
)
VISION_PROTECTED_EXTRA_KEYS = frozenset({"model", "messages"})

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_ENHANCEMENT_MODEL = "gemini-2.5-flash"


def resolve_model(
    ctx: ExecutionContext,
    index: int,
    capability: ModelCapability,
    default: str,
) -> str:
    """
    ``model`` parameter, with ``__custom`` redirected to ``customModel``.

    Without a ``model`` parameter the ``mode`` parameter picks the model
    through the mode defaults; ``default`` is used when neither is set.
    """
    model = ctx.get_parameter("model", index, None)
    if model == CUSTOM_MODEL_VALUE:
        custom = str(ctx.get_parameter("customModel", index, "") or "").strip()
        if not custom:
            raise ActionError("Custom model name is required when model is set to custom")
        return custom
    if model:
        return str(model)

    mode = ctx.get_parameter("mode", index, None)
    if mode:
        from_mode = resolve_model_from_mode(str(mode), capability)
        if from_mode:
            return from_mode
        custom = str(ctx.get_parameter("customModel", index, "") or "").strip()
        if custom:
            return custom
        raise ActionError(f'No model available for mode "{mode}"')
    return default


def get_options(ctx: ExecutionContext, index: int) -> dict[str, Any]:
    options = ctx.get_parameter("additionalOptions", index, None)
    return dict(options) if isinstance(options, dict) else {}


def is_simplified(options: dict[str, Any]) -> bool:
    return options.get("simplify") is not False


def option_or(options: dict[str, Any], name: str, default: Any) -> Any:
    """Nullish fallback: ``0`` and ``False`` are kept, ``None`` is replaced."""
    value = options.get(name)
    return default if value is None else value


def merge_extra_body(
    body: dict[str, Any],
    raw: Any,
    protected: Iterable[str] = PROTECTED_EXTRA_KEYS,
) -> dict[str, Any]:
    """Merge a JSON object string into ``body`` in place, skipping protected keys."""
    if not raw or not isinstance(raw, str):
        return body
    try:
        extra = json.loads(raw)
    except ValueError:
        logger.warning("actions: ignoring extraBodyFields that is not valid JSON")
        return body
    if not isinstance(extra, dict):
        logger.warning("actions: ignoring extraBodyFields that is not a JSON object")
        return body
    blocked = frozenset(protected)
    body.update({k: v for k, v in extra.items() if k not in blocked})
    return body


def elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


async def rewrite_prompt(
    transport: RequestTransport,
    *,
    prompt: str,
    system_prompt: str,
    options: dict[str, Any],
) -> str:
    """
    Ask a chat model to rewrite ``prompt``; on any gateway failure keep the original.
    """
    model = options.get("enhancementModel") or DEFAULT_ENHANCEMENT_MODEL
    descriptor = RequestDescriptor(
        endpoint=CHAT_COMPLETIONS_PATH,
        body={
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": option_or(options, "maxTokens", 2048),
            "temperature": option_or(options, "temperature", 0.7),
        },
    )
    try:
        response = await transport.perform_request(descriptor)
    except GatewayNodeError as exc:
        logger.warning("actions: prompt enhancement failed, keeping original prompt (%s)", exc)
        return prompt
    enhanced = extract_chat_content(response).content
    return enhanced or prompt


async def download_binary(
    ctx: ExecutionContext,
    url: str,
    *,
    file_name: str,
    mime_type: str,
    timeout_ms: Optional[int] = None,
) -> BinaryData:
    data = await ctx.download(url, timeout_ms=timeout_ms or settings.request_timeout_ms)
    return await ctx.prepare_binary_data(data, file_name, mime_type)


__all__ = [
    "ActionHandler",
    "DEFAULT_ENHANCEMENT_MODEL",
    "DEFAULT_SYSTEM_PROMPT",
    "PROTECTED_EXTRA_KEYS",
    "VISION_PROTECTED_EXTRA_KEYS",
    "download_binary",
    "elapsed_ms",
    "get_options",
    "is_simplified",
    "merge_extra_body",
    "option_or",
    "resolve_model",
    "rewrite_prompt",
]
