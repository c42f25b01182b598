"""
图片类动作：文生图与去背景。

文生图有两条通道：
- chat 通道：模型走 ``/v1/chat/completions``，图片 URL 从回复文本中提取；
- images 通道：模型解析到 ``/v1/images/generations``（如 doubao-*），
  结果通过 ``parse_image_payload`` 解析（URL 优先于 base64）。
"""

from __future__ import annotations

import base64
import time
from typing import Any, Optional

from gateway_node.host import BinaryData, ExecutionContext, NodeItem
from gateway_node.schemas import RequestDescriptor
from gateway_node.transport import (
    CHAT_COMPLETIONS_PATH,
    IMAGE_GENERATIONS_PATH,
    RequestTransport,
    extract_chat_content,
    extract_image_url,
    parse_image_payload,
    resolve_endpoint,
)

from .common import (
    VISION_PROTECTED_EXTRA_KEYS,
    download_binary,
    elapsed_ms,
    get_options,
    is_simplified,
    merge_extra_body,
    option_or,
    resolve_model,
    rewrite_prompt,
)

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
OUTPUT_FILE_NAME = "output.png"
OUTPUT_MIME_TYPE = "image/png"

IMAGE_ENHANCE_SYSTEM_PROMPT = (
    "You are an expert e-commerce product image prompt engineer. Enhance the user's prompt "
    "to be more detailed and specific for AI image generation. Focus on: lighting, composition, "
    "background, product placement, and commercial appeal. Output only the enhanced prompt, nothing else."
)

BG_REMOVAL_BASE_PROMPT = "Remove the background from this image."


def build_background_prompt(background_color: Optional[str], custom_color: Optional[str] = None) -> str:
    color = background_color or "transparent"
    if color == "white":
        instruction = "Replace the background with solid white (#FFFFFF)."
    elif color == "custom" and custom_color:
        instruction = f"Replace the background with solid color {custom_color}."
    else:
        instruction = "Make the background transparent."
    return f"{BG_REMOVAL_BASE_PROMPT} {instruction} Return only the processed image."


async def _generate_via_chat(
    transport: RequestTransport,
    model: str,
    prompt: str,
    options: dict[str, Any],
) -> tuple[Optional[str], Optional[bytes], dict[str, Any]]:
    body = {
        "model": model,
        "messages": [{"role": "user", "content": f"Generate an image: {prompt}"}],
    }
    merge_extra_body(body, options.get("extraBodyFields"))
    response = await transport.perform_request(RequestDescriptor(endpoint=CHAT_COMPLETIONS_PATH, body=body))
    content = extract_chat_content(response).content
    return extract_image_url(content), None, {"raw_content": content}


async def _generate_via_images(
    transport: RequestTransport,
    model: str,
    prompt: str,
    options: dict[str, Any],
) -> tuple[Optional[str], Optional[bytes], dict[str, Any]]:
    body = {
        "model": model,
        "prompt": prompt,
        "n": option_or(options, "numberOfImages", 1),
        "size": f"{option_or(options, 'width', 1024)}x{option_or(options, 'height', 1024)}",
    }
    merge_extra_body(body, options.get("extraBodyFields"))
    response = await transport.perform_request(RequestDescriptor(endpoint=IMAGE_GENERATIONS_PATH, body=body))
    payload = parse_image_payload(response)
    return payload.image_url, payload.image_bytes, {"raw_response": response}


async def execute_generate_image(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    model = resolve_model(ctx, index, "image", DEFAULT_IMAGE_MODEL)
    prompt = ctx.get_parameter("prompt", index)
    enhance = bool(ctx.get_parameter("enhancePrompt", index, True))
    options = get_options(ctx, index)

    final_prompt = prompt
    if enhance:
        final_prompt = await rewrite_prompt(
            transport,
            prompt=prompt,
            system_prompt=options.get("systemPromptOverride") or IMAGE_ENHANCE_SYSTEM_PROMPT,
            options=options,
        )

    started = time.monotonic()
    if resolve_endpoint(model).path == IMAGE_GENERATIONS_PATH:
        image_url, image_bytes, raw = await _generate_via_images(transport, model, final_prompt, options)
    else:
        image_url, image_bytes, raw = await _generate_via_chat(transport, model, final_prompt, options)
    processing_time = elapsed_ms(started)

    data: dict[str, Any] = {
        "success": True,
        "operation": "generate",
        "model": model,
        "original_prompt": prompt,
    }
    if enhance and final_prompt != prompt:
        data["enhanced_prompt"] = final_prompt
    data["image_url"] = image_url
    data["processing_time_ms"] = processing_time
    if not is_simplified(options):
        data.update(raw)

    item = NodeItem(json=data, paired_item=index)
    binary: Optional[BinaryData] = None
    # 只有内联数据、没有 URL 时始终以二进制附件返回
    if image_bytes and (options.get("outputType") == "binary" or not image_url):
        binary = await ctx.prepare_binary_data(image_bytes, OUTPUT_FILE_NAME, OUTPUT_MIME_TYPE)
    elif options.get("outputType") == "binary" and image_url:
        binary = await download_binary(ctx, image_url, file_name=OUTPUT_FILE_NAME, mime_type=OUTPUT_MIME_TYPE)
    if binary is not None:
        item.binary = {"data": binary}
    return [item]


def _image_reference(ctx: ExecutionContext, index: int, input_method: str) -> str:
    if input_method == "url":
        return str(ctx.get_parameter("imageUrl", index))
    property_name = ctx.get_parameter("binaryProperty", index, "data")
    binary = ctx.get_binary_data(index, property_name)
    encoded = base64.b64encode(binary.data).decode("ascii")
    return f"data:{binary.mime_type or OUTPUT_MIME_TYPE};base64,{encoded}"


async def execute_remove_background(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    model = resolve_model(ctx, index, "image", DEFAULT_IMAGE_MODEL)
    input_method = ctx.get_parameter("inputMethod", index, "url")
    options = get_options(ctx, index)

    content = [
        {
            "type": "text",
            "text": build_background_prompt(options.get("backgroundColor"), options.get("customBackgroundColor")),
        },
        {"type": "image_url", "image_url": {"url": _image_reference(ctx, index, input_method)}},
    ]
    messages: list[dict[str, Any]] = [{"role": "user", "content": content}]
    if options.get("systemPromptOverride"):
        messages.insert(0, {"role": "system", "content": options["systemPromptOverride"]})

    body = merge_extra_body(
        {"model": model, "messages": messages},
        options.get("extraBodyFields"),
        VISION_PROTECTED_EXTRA_KEYS,
    )

    started = time.monotonic()
    response = await transport.perform_request(RequestDescriptor(endpoint=CHAT_COMPLETIONS_PATH, body=body))
    processing_time = elapsed_ms(started)

    raw_content = extract_chat_content(response).content
    image_url = extract_image_url(raw_content)
    data: dict[str, Any] = {
        "success": True,
        "operation": "removeBackground",
        "model": model,
        "input_method": input_method,
        "image_url": image_url,
        "processing_time_ms": processing_time,
    }
    if not is_simplified(options):
        data["raw_content"] = raw_content

    item = NodeItem(json=data, paired_item=index)
    if options.get("outputType") == "binary" and image_url:
        item.binary = {
            "data": await download_binary(ctx, image_url, file_name=OUTPUT_FILE_NAME, mime_type=OUTPUT_MIME_TYPE)
        }
    return [item]


__all__ = [
    "build_background_prompt",
    "execute_generate_image",
    "execute_remove_background",
]
