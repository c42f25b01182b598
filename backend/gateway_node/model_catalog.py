"""
已知模型目录、模式默认值，以及下拉选项加载。

``fetch_model_options`` 先查询网关的 ``/v1/models``，失败或无结果时回退到本地
``FALLBACK_MODELS``，保证节点在离线时仍然可配置。
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from gateway_node.logging_config import logger
from gateway_node.schemas import Credentials, ModelCapability, ModelInfo, ModelOption
from gateway_node.settings import settings
from gateway_node.transport.base import HttpRequester
from gateway_node.transport.endpoint_map import MODELS_PATH

CUSTOM_MODEL_VALUE = "__custom"

_COST_ICONS = {"low": "💰", "medium": "💰💰", "high": "💰💰💰"}
_SPEED_ICONS = {"fast": "⚡⚡⚡", "medium": "⚡⚡", "slow": "⚡"}


def _model(model_id: str, name: str, capability: ModelCapability, cost: str, speed: str) -> ModelInfo:
    return ModelInfo(id=model_id, name=name, capabilities=(capability,), cost_tier=cost, speed_tier=speed)


FALLBACK_MODELS: tuple[ModelInfo, ...] = (
    # text
    _model("gemini-2.5-flash", "Gemini 2.5 Flash", "text", "low", "fast"),
    _model("gemini-3.1-pro-preview", "Gemini 3.1 Pro Preview", "text", "medium", "medium"),
    _model("gemini-3-pro-preview", "Gemini 3 Pro Preview", "text", "medium", "medium"),
    _model("gpt-4o", "GPT-4o", "text", "high", "slow"),
    _model("gpt-4o-mini", "GPT-4o Mini", "text", "low", "fast"),
    _model("deepseek-v3.1", "DeepSeek V3.1", "text", "low", "fast"),
    _model("deepseek-v3", "DeepSeek V3", "text", "low", "fast"),
    _model("deepseek-chat", "DeepSeek Chat", "text", "low", "fast"),
    _model("claude-opus-4-5", "Claude Opus 4.5", "text", "high", "slow"),
    _model("claude-sonnet-4-5", "Claude Sonnet 4.5", "text", "medium", "medium"),
    # image
    _model("gemini-2.5-flash-image", "Gemini 2.5 Flash Image", "image", "low", "fast"),
    _model("gemini-3-pro-image-preview", "Gemini 3 Pro Image Preview", "image", "high", "slow"),
    _model("doubao-seedream-4-5-251128", "Doubao Seedream 4.5", "image", "medium", "fast"),
    # video
    _model("sora-2-all", "Sora 2", "video", "high", "slow"),
    _model("sora-2-pro-all", "Sora 2 Pro", "video", "high", "slow"),
    _model("veo-3", "Veo 3", "video", "high", "slow"),
    _model("veo-3-fast", "Veo 3 Fast", "video", "medium", "fast"),
    # embedding
    _model("text-embedding-3-small", "Text Embedding 3 Small", "embedding", "low", "fast"),
    _model("text-embedding-3-large", "Text Embedding 3 Large", "embedding", "medium", "medium"),
    # thinking
    _model("claude-opus-4-5-thinking", "Claude Opus 4.5 Thinking", "thinking", "high", "slow"),
    _model("gemini-3-flash-preview-thinking", "Gemini 3 Flash Thinking", "thinking", "medium", "fast"),
    _model("gemini-3-pro-preview-thinking", "Gemini 3 Pro Thinking", "thinking", "high", "medium"),
)

MODE_DEFAULTS: dict[str, dict[str, str]] = {
    "recommended": {
        "text": "gemini-2.5-flash",
        "image": "gemini-2.5-flash-image",
        "video": "sora-2-all",
        "embedding": "text-embedding-3-small",
        "thinking": "gemini-3-flash-preview-thinking",
    },
    "fast": {
        "text": "gemini-2.5-flash",
        "image": "gemini-2.5-flash-image",
        "video": "veo-3-fast",
        "embedding": "text-embedding-3-small",
        "thinking": "gemini-3-flash-preview-thinking",
    },
    "quality": {
        "text": "claude-opus-4-5",
        "image": "gemini-3-pro-image-preview",
        "video": "sora-2-pro-all",
        "embedding": "text-embedding-3-large",
        "thinking": "claude-opus-4-5-thinking",
    },
    "budget": {
        "text": "deepseek-chat",
        "image": "gemini-2.5-flash-image",
        "video": "veo-3-fast",
        "embedding": "text-embedding-3-small",
        "thinking": "gemini-3-flash-preview-thinking",
    },
}

_KNOWN_MODELS: dict[str, ModelInfo] = {m.id: m for m in FALLBACK_MODELS}


def get_model_info(model_id: str) -> Optional[ModelInfo]:
    return _KNOWN_MODELS.get(model_id)


def resolve_model_from_mode(mode: str, capability: ModelCapability) -> Optional[str]:
    """``custom`` (or an unknown mode) returns ``None``: the user picks the model."""
    if mode == "custom":
        return None
    return MODE_DEFAULTS.get(mode, {}).get(capability)


def _custom_option() -> ModelOption:
    return ModelOption(name="── Custom Model ──", value=CUSTOM_MODEL_VALUE, description="Enter a custom model ID")


def _known_option(info: ModelInfo) -> ModelOption:
    return ModelOption(
        name=f"{info.name} {_SPEED_ICONS[info.speed_tier]} {_COST_ICONS[info.cost_tier]}",
        value=info.id,
        description=f"Speed: {info.speed_tier}, Cost: {info.cost_tier}",
    )


def fallback_model_options(capability: ModelCapability) -> list[ModelOption]:
    options = [_known_option(m) for m in FALLBACK_MODELS if capability in m.capabilities]
    options.append(_custom_option())
    return options


def _api_model_ids(payload: Any) -> list[str]:
    if not isinstance(payload, Mapping):
        return []
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    return [
        entry["id"]
        for entry in data
        if isinstance(entry, Mapping) and isinstance(entry.get("id"), str) and entry["id"]
    ]


async def fetch_model_options(
    http: HttpRequester,
    credentials: Credentials,
    capability: ModelCapability,
) -> list[ModelOption]:
    """
    Build the model drop-down for ``capability``.

    Known models advertised by the gateway come first, then (text only)
    models the catalog does not know yet, then the custom-model entry.
    """
    base_url = (credentials.base_url or settings.default_base_url).rstrip("/")
    try:
        payload = await http(
            method="GET",
            url=f"{base_url}{MODELS_PATH}",
            headers={"Authorization": f"Bearer {credentials.api_key}"},
            timeout_ms=settings.models_timeout_ms,
        )
    except Exception as exc:
        logger.warning(
            "model_catalog: listing models failed, using fallback list (capability=%s, error=%s)",
            capability,
            exc.__class__.__name__,
        )
        return fallback_model_options(capability)

    model_ids = _api_model_ids(payload)
    options: list[ModelOption] = []
    for model_id in model_ids:
        info = _KNOWN_MODELS.get(model_id)
        if info is not None and capability in info.capabilities:
            options.append(_known_option(info))

    if capability == "text":
        for model_id in model_ids:
            if model_id not in _KNOWN_MODELS:
                options.append(
                    ModelOption(name=model_id, value=model_id, description="Dynamically discovered model")
                )

    if not options:
        logger.info("model_catalog: gateway listed no %s models, using fallback list", capability)
        return fallback_model_options(capability)

    options.append(_custom_option())
    return options


__all__ = [
    "CUSTOM_MODEL_VALUE",
    "FALLBACK_MODELS",
    "MODE_DEFAULTS",
    "fallback_model_options",
    "fetch_model_options",
    "get_model_info",
    "resolve_model_from_mode",
]
