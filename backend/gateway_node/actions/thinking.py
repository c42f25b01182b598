from __future__ import annotations

import time

from gateway_node.host import ExecutionContext, NodeItem
from gateway_node.logging_config import logger
from gateway_node.schemas import RequestDescriptor
from gateway_node.settings import settings
from gateway_node.transport import (
    RequestTransport,
    build_request_for_model,
    convert_anthropic_response,
    extract_chat_content,
    extract_thinking,
)

from .common import (
    DEFAULT_SYSTEM_PROMPT,
    elapsed_ms,
    get_options,
    is_simplified,
    merge_extra_body,
    option_or,
    resolve_model,
)

DEFAULT_THINKING_MODEL = "gemini-3-flash-preview-thinking"
DEFAULT_BUDGET_TOKENS = 5000


async def execute_thinking(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    """
    Reasoning-mode generation.

    The body is shaped for the model's wire format, so ``claude-*`` models go
    to the messages endpoint with a top-level ``system``; their response is
    converted back to the chat-completion shape before extraction.
    """
    model = resolve_model(ctx, index, "thinking", DEFAULT_THINKING_MODEL)
    user_prompt = ctx.get_parameter("userPrompt", index)
    budget_tokens = ctx.get_parameter("budgetTokens", index, DEFAULT_BUDGET_TOKENS)
    options = get_options(ctx, index)

    built = build_request_for_model(
        model,
        [
            {"role": "system", "content": options.get("systemPrompt") or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ],
        {
            "max_tokens": option_or(options, "maxTokens", 8192),
            "temperature": 1,
            "thinking": {"type": "enabled", "budget_tokens": budget_tokens},
        },
    )
    body = merge_extra_body(built.body, options.get("extraBodyFields"))

    started = time.monotonic()
    response = await transport.perform_request(
        RequestDescriptor(endpoint=built.endpoint, body=body, timeout_ms=settings.thinking_timeout_ms)
    )
    processing_time = elapsed_ms(started)

    if built.format == "anthropic":
        logger.debug("thinking: converting anthropic response for model=%s", model)
        response = convert_anthropic_response(response, model)

    result = extract_chat_content(response)
    data = {
        "success": True,
        "operation": "thinking",
        "model": model,
        "content": result.content,
        "thinking": extract_thinking(response),
        "budget_tokens": budget_tokens,
        "processing_time_ms": processing_time,
    }
    if not is_simplified(options):
        data.update(finish_reason=result.finish_reason, usage=result.usage, raw_response=response)
    return [NodeItem(json=data, paired_item=index)]
