from __future__ import annotations

import json
import time
from typing import Any

from gateway_node.host import ExecutionContext, NodeItem
from gateway_node.logging_config import logger
from gateway_node.schemas import RequestDescriptor
from gateway_node.transport import CHAT_COMPLETIONS_PATH, RequestTransport, extract_chat_content

from .common import (
    elapsed_ms,
    get_options,
    is_simplified,
    merge_extra_body,
    option_or,
    resolve_model,
)

DEFAULT_ENHANCE_MODEL = "gemini-2.5-flash"
DEFAULT_CATEGORY = "product_photo"

ENHANCE_SYSTEM_PROMPT = """You are an expert e-commerce product image prompt engineer with deep knowledge of commercial photography, visual merchandising, and AI image generation.

Your task is to analyze the user's original prompt and enhance it into a professional, detailed prompt optimized for generating high-quality e-commerce product images.

When enhancing the prompt, consider and add details about:
1. Lighting: Specify lighting setup (soft diffused, studio strobe, natural window light, rim lighting, etc.)
2. Composition: Describe camera angle, framing, rule of thirds, focal length, depth of field
3. Background: Suggest appropriate backgrounds (seamless white, gradient, contextual lifestyle, textured surface, etc.)
4. Product Placement: Describe how the product should be positioned, any props or complementary items
5. Commercial Appeal: Add elements that increase conversion (hero shot perspective, aspirational context, brand-appropriate mood)
6. Technical Details: Resolution hints, aspect ratio suggestions, color palette guidance
7. Style References: Reference relevant photography styles or visual trends in e-commerce

Based on the target category, adjust your enhancement strategy accordingly.

Output your response as a structured JSON object with the following fields:
- "enhanced_prompt": A single detailed string containing the fully enhanced prompt ready for image generation
- "suggestions": An array of 3 to 5 actionable tips for further improving the image result
- "category": The determined or confirmed image category

Always respond with valid JSON only. Do not include any text outside the JSON object."""


def build_user_message(prompt: str, category: str, options: dict[str, Any]) -> str:
    lines = [f"Prompt: {prompt}", f"Category: {category}"]
    if options.get("style"):
        lines.append(f"Style: {options['style']}")
    if options.get("language"):
        lines.append(f"Output Language: {'Chinese' if options['language'] == 'zh' else 'English'}")
    return "\n".join(lines)


def parse_enhancement(raw_content: str, category: str) -> tuple[str, list[Any], str]:
    """Return ``(enhanced_prompt, suggestions, category)``; non-JSON replies become the prompt as-is."""
    try:
        parsed = json.loads(raw_content)
    except ValueError:
        logger.debug("prompt_enhance: reply is not JSON, using raw content")
        return raw_content, [], category
    if not isinstance(parsed, dict):
        return raw_content, [], category

    suggestions = parsed.get("suggestions")
    return (
        parsed.get("enhanced_prompt") or raw_content,
        suggestions if isinstance(suggestions, list) else [],
        parsed.get("category") or category,
    )


async def execute_enhance_prompt(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    model = resolve_model(ctx, index, "text", DEFAULT_ENHANCE_MODEL)
    prompt = ctx.get_parameter("prompt", index)
    category = ctx.get_parameter("category", index, DEFAULT_CATEGORY)
    options = get_options(ctx, index)

    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": options.get("systemPromptOverride") or ENHANCE_SYSTEM_PROMPT},
            {"role": "user", "content": build_user_message(prompt, category, options)},
        ],
        "max_tokens": option_or(options, "maxTokens", 2048),
        "temperature": option_or(options, "temperature", 0.7),
    }
    merge_extra_body(body, options.get("extraBodyFields"))

    started = time.monotonic()
    response = await transport.perform_request(RequestDescriptor(endpoint=CHAT_COMPLETIONS_PATH, body=body))
    processing_time = elapsed_ms(started)

    raw_content = extract_chat_content(response).content
    enhanced, suggestions, detected_category = parse_enhancement(raw_content, category)
    data = {
        "success": True,
        "operation": "enhance",
        "model": model,
        "original_prompt": prompt,
        "enhanced_prompt": enhanced,
        "suggestions": suggestions,
        "category": detected_category,
        "processing_time_ms": processing_time,
    }
    if not is_simplified(options):
        data["raw_content"] = raw_content
    return [NodeItem(json=data, paired_item=index)]
