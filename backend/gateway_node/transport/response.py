"""
从结构松散的上游响应中抽取字段。

本模块对畸形输入一律不抛异常：缺失或类型不符的字段退化为空字符串、空 dict 或 None。
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from gateway_node.logging_config import logger

# 遇到 Markdown / HTML 分隔符即停止，"![x](https://a/b.png)" 只取出裸 URL
IMAGE_URL_RE = re.compile(
    r"""https?://[^\s"'<>\])]+\.(?:png|jpg|jpeg|webp|gif)(?:\?[^\s"'<>\])]*)?""",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class NormalizedChatResult:
    content: str = ""
    finish_reason: str = ""
    usage: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ImagePayload:
    json: Any = None
    image_url: str | None = None
    image_bytes: bytes | None = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_url or self.image_bytes)


def _first_choice(raw: Any) -> Mapping[str, Any] | None:
    if not isinstance(raw, Mapping):
        return None
    choices = raw.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    return first if isinstance(first, Mapping) else None


def _first_message(raw: Any) -> Mapping[str, Any] | None:
    choice = _first_choice(raw)
    if choice is None:
        return None
    message = choice.get("message")
    return message if isinstance(message, Mapping) else None


def extract_chat_content(raw: Any) -> NormalizedChatResult:
    """从 OpenAI 风格的 chat completion 中取出 content、finish_reason 和 usage。"""
    choice = _first_choice(raw)
    if choice is None:
        return NormalizedChatResult()

    message = choice.get("message")
    content = message.get("content") if isinstance(message, Mapping) else None
    finish_reason = choice.get("finish_reason")
    usage = raw.get("usage")

    return NormalizedChatResult(
        content=content if isinstance(content, str) else "",
        finish_reason=finish_reason if isinstance(finish_reason, str) else "",
        usage=dict(usage) if isinstance(usage, Mapping) else {},
    )


def extract_image_url(text: Any) -> str | None:
    if not isinstance(text, str) or not text:
        return None
    match = IMAGE_URL_RE.search(text)
    return match.group(0) if match else None


def extract_thinking(raw: Any) -> str:
    message = _first_message(raw)
    if message is None:
        return ""
    thinking = message.get("thinking")
    if isinstance(thinking, str):
        return thinking
    reasoning = message.get("reasoning_content")
    if isinstance(reasoning, str):
        return reasoning
    return ""


def extract_embedding(raw: Any) -> list[Any]:
    if not isinstance(raw, Mapping):
        return []
    data = raw.get("data")
    if not isinstance(data, list) or not data or not isinstance(data[0], Mapping):
        return []
    embedding = data[0].get("embedding")
    return list(embedding) if isinstance(embedding, list) else []


def extract_usage(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        return {}
    usage = raw.get("usage")
    return dict(usage) if isinstance(usage, Mapping) else {}


def extract_video_url(raw: Any) -> str:
    """优先取顶层 video_url，其次取 data.video_url。"""
    if not isinstance(raw, Mapping):
        return ""
    url = raw.get("video_url")
    if isinstance(url, str) and url:
        return url
    data = raw.get("data")
    if isinstance(data, Mapping):
        url = data.get("video_url")
        if isinstance(url, str) and url:
            return url
    return ""


def _decode_base64(value: str) -> bytes | None:
    raw = value.strip()
    if raw.startswith("data:") and ";base64," in raw:
        raw = raw.split(";base64,", 1)[1]
    # MIME 风格的 base64 每 76 个字符换行
    raw = "".join(raw.split())
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("response_extractor: ignoring undecodable base64 image payload")
        return None


def parse_image_payload(raw: Any) -> ImagePayload:
    """
    识别图片生成响应中的直接图片引用。

    支持 data.image_url / data.image_base64，以及 OpenAI images 格式
    data: [{"url": ...} | {"b64_json": ...}]。URL 优先于内联 base64；
    URL 的下载交给宿主的 I/O helper。
    """
    if not isinstance(raw, Mapping):
        return ImagePayload(json=raw)

    data = raw.get("data")
    if isinstance(data, Mapping):
        url_key, b64_key, json_value = "image_url", "image_base64", data
        entry: Mapping[str, Any] = data
    elif isinstance(data, list) and data and isinstance(data[0], Mapping):
        url_key, b64_key, json_value = "url", "b64_json", raw
        entry = data[0]
    else:
        return ImagePayload(json=data if data else raw)

    url = entry.get(url_key)
    if isinstance(url, str) and url:
        return ImagePayload(json=json_value, image_url=url)

    b64 = entry.get(b64_key)
    if isinstance(b64, str) and b64:
        return ImagePayload(json=json_value, image_bytes=_decode_base64(b64))

    return ImagePayload(json=json_value)


def _token_count(value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def convert_anthropic_response(raw: Any, original_model: str = "") -> Any:
    """
    把 Anthropic Messages 响应转换为 OpenAI chat completion 格式。

    thinking 块映射到 message.thinking；已经带 choices（或不是 Anthropic 格式）的响应原样返回。
    """
    if not isinstance(raw, Mapping) or "choices" in raw:
        return raw
    blocks = raw.get("content")
    if not isinstance(blocks, list):
        return raw

    text_parts: list[str] = []
    thinking_parts: list[str] = []
    for block in blocks:
        if not isinstance(block, Mapping):
            continue
        block_type = block.get("type")
        if block_type == "text" and isinstance(block.get("text"), str):
            text_parts.append(block["text"])
        elif block_type == "thinking" and isinstance(block.get("thinking"), str):
            thinking_parts.append(block["thinking"])

    message: dict[str, Any] = {"role": "assistant", "content": "".join(text_parts)}
    if thinking_parts:
        message["thinking"] = "\n".join(thinking_parts)

    stop_reason = raw.get("stop_reason")
    converted: dict[str, Any] = {
        "id": raw.get("id", ""),
        "object": "chat.completion",
        "model": raw.get("model") or original_model,
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": stop_reason if isinstance(stop_reason, str) else "stop",
            }
        ],
        "usage": {},
    }

    usage = raw.get("usage")
    if isinstance(usage, Mapping):
        prompt_tokens = _token_count(usage.get("input_tokens"))
        completion_tokens = _token_count(usage.get("output_tokens"))
        converted["usage"] = {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        }
    return converted


__all__ = [
    "IMAGE_URL_RE",
    "ImagePayload",
    "NormalizedChatResult",
    "convert_anthropic_response",
    "extract_chat_content",
    "extract_embedding",
    "extract_image_url",
    "extract_thinking",
    "extract_usage",
    "extract_video_url",
    "parse_image_payload",
]
