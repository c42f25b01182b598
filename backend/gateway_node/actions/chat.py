from __future__ import annotations

import time

from gateway_node.host import ExecutionContext, NodeItem
from gateway_node.schemas import RequestDescriptor
from gateway_node.transport import CHAT_COMPLETIONS_PATH, RequestTransport, extract_chat_content

from .common import (
    DEFAULT_SYSTEM_PROMPT,
    elapsed_ms,
    get_options,
    is_simplified,
    merge_extra_body,
    option_or,
    resolve_model,
)

DEFAULT_CHAT_MODEL = "gemini-2.5-flash"


async def execute_chat(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    model = resolve_model(ctx, index, "text", DEFAULT_CHAT_MODEL)
    user_prompt = ctx.get_parameter("userPrompt", index)
    options = get_options(ctx, index)

    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": options.get("systemPrompt") or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ],
        "max_tokens": option_or(options, "maxTokens", 2048),
        "temperature": option_or(options, "temperature", 0.7),
    }
    merge_extra_body(body, options.get("extraBodyFields"))

    started = time.monotonic()
    response = await transport.perform_request(
        RequestDescriptor(endpoint=CHAT_COMPLETIONS_PATH, body=body)
    )
    processing_time = elapsed_ms(started)

    result = extract_chat_content(response)
    data = {
        "success": True,
        "operation": "chat",
        "model": model,
        "content": result.content,
        "finish_reason": result.finish_reason,
        "processing_time_ms": processing_time,
    }
    if not is_simplified(options):
        data.update(usage=result.usage, raw_response=response)
    return [NodeItem(json=data, paired_item=index)]
