"""
节点入口：静态描述、模型选项加载器以及 execute。
"""

from __future__ import annotations

from typing import Any, Optional

from gateway_node.actions import ACTION_HANDLERS, route
from gateway_node.errors import ActionError
from gateway_node.host import ExecutionContext, NodeItem
from gateway_node.model_catalog import fetch_model_options
from gateway_node.schemas import ModelCapability, ModelOption
from gateway_node.transport import RequestTransport

RESOURCES: dict[str, str] = {
    "chat": "Chat completions",
    "thinking": "Reasoning with a thinking budget",
    "embeddings": "Text embeddings",
    "image": "Generate or process images",
    "prompt": "Enhance prompts for image generation",
    "virtualTryOn": "AI virtual clothing try-on",
    "video": "Generate and manage video tasks",
}

LOAD_OPTIONS_METHODS: dict[str, ModelCapability] = {
    "getTextModels": "text",
    "getImageModels": "image",
    "getVideoModels": "video",
    "getEmbeddingModels": "embedding",
    "getThinkingModels": "thinking",
}


class GatewayNode:
    name = "aiGateway"
    display_name = "AI Gateway"
    version = 1

    def __init__(self, transport: Optional[RequestTransport] = None) -> None:
        # 为 None 时每次执行都基于宿主的 HTTP helper 新建传输层
        self._transport = transport

    def describe(self) -> dict[str, Any]:
        operations: dict[str, list[str]] = {}
        for resource, operation in ACTION_HANDLERS:
            operations.setdefault(resource, []).append(operation)
        return {
            "name": self.name,
            "display_name": self.display_name,
            "version": self.version,
            "resources": [
                {"value": value, "description": description, "operations": operations.get(value, [])}
                for value, description in RESOURCES.items()
            ],
            "load_options": sorted(LOAD_OPTIONS_METHODS),
        }

    async def load_options(self, ctx: ExecutionContext, method: str) -> list[ModelOption]:
        capability = LOAD_OPTIONS_METHODS.get(method)
        if capability is None:
            raise ActionError(f"Unknown load-options method: {method}")
        credentials = await ctx.get_credentials()
        return await fetch_model_options(ctx.http_request, credentials, capability)

    async def execute(self, ctx: ExecutionContext) -> list[NodeItem]:
        return await route(ctx, self._transport)


__all__ = ["GatewayNode", "LOAD_OPTIONS_METHODS", "RESOURCES"]
