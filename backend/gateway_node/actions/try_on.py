from __future__ import annotations

import time
from typing import Any

from gateway_node.host import ExecutionContext, NodeItem
from gateway_node.schemas import RequestDescriptor
from gateway_node.transport import CHAT_COMPLETIONS_PATH, RequestTransport, extract_chat_content, extract_image_url

from .common import (
    VISION_PROTECTED_EXTRA_KEYS,
    download_binary,
    elapsed_ms,
    get_options,
    is_simplified,
    merge_extra_body,
    resolve_model,
    rewrite_prompt,
)

DEFAULT_TRY_ON_MODEL = "gemini-2.5-flash-image"

TRY_ON_ENHANCE_SYSTEM_PROMPT = (
    "You are a virtual try-on prompt expert. Enhance the given try-on instruction to produce more "
    "realistic and natural-looking results. Focus on: natural garment draping, proper body proportions, "
    "realistic shadows and wrinkles, maintaining the person's original pose and features. "
    "Output only the enhanced prompt."
)


def build_try_on_prompt(category: str) -> str:
    return (
        "Virtual try-on: Place the garment from the second image onto the person in the first image. "
        f"Category: {category} body. Maintain the person's pose, body shape, and facial features. "
        "The garment should fit naturally with proper wrinkles and shadows."
    )


async def execute_virtual_try_on(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    model = resolve_model(ctx, index, "image", DEFAULT_TRY_ON_MODEL)
    person_image_url = ctx.get_parameter("personImageUrl", index)
    garment_image_url = ctx.get_parameter("garmentImageUrl", index)
    category = ctx.get_parameter("category", index, "upper")
    enhance = bool(ctx.get_parameter("enhancePrompt", index, True))
    options = get_options(ctx, index)

    prompt = build_try_on_prompt(category)
    if enhance:
        prompt = await rewrite_prompt(
            transport,
            prompt=prompt,
            system_prompt=options.get("systemPromptOverride") or TRY_ON_ENHANCE_SYSTEM_PROMPT,
            options=options,
        )

    body: dict[str, Any] = {
        "model": model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": person_image_url}},
                    {"type": "image_url", "image_url": {"url": garment_image_url}},
                ],
            }
        ],
    }
    merge_extra_body(body, options.get("extraBodyFields"), VISION_PROTECTED_EXTRA_KEYS)

    started = time.monotonic()
    response = await transport.perform_request(RequestDescriptor(endpoint=CHAT_COMPLETIONS_PATH, body=body))
    processing_time = elapsed_ms(started)

    raw_content = extract_chat_content(response).content
    result_image_url = extract_image_url(raw_content)
    data: dict[str, Any] = {
        "success": True,
        "operation": "generate",
        "model": model,
        "person_image_url": person_image_url,
        "garment_image_url": garment_image_url,
        "category": category,
        "result_image_url": result_image_url,
        "processing_time_ms": processing_time,
    }
    if not is_simplified(options):
        data["raw_content"] = raw_content

    item = NodeItem(json=data, paired_item=index)
    if options.get("outputType") == "binary" and result_image_url:
        item.binary = {
            "data": await download_binary(ctx, result_image_url, file_name="output.png", mime_type="image/png")
        }
    return [item]
