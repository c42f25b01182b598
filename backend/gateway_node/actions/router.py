"""
按 (resource, operation) 把输入 item 分发给对应的动作处理函数。

item 串行执行。开启 continue-on-fail 时，失败的 item 变成与其下标配对的 {"error": message}；
否则第一个错误直接抛给宿主。
"""

from __future__ import annotations

from typing import Optional

from gateway_node.errors import ActionError
from gateway_node.host import ExecutionContext, NodeItem
from gateway_node.logging_config import logger
from gateway_node.transport import RequestTransport

from .chat import execute_chat
from .common import ActionHandler
from .embeddings import execute_embeddings
from .images import execute_generate_image, execute_remove_background
from .prompt import execute_enhance_prompt
from .thinking import execute_thinking
from .try_on import execute_virtual_try_on
from .video import execute_video_create, execute_video_download, execute_video_list, execute_video_retrieve

ACTION_HANDLERS: dict[tuple[str, str], ActionHandler] = {
    ("chat", "generate"): execute_chat,
    ("thinking", "generate"): execute_thinking,
    ("embeddings", "generate"): execute_embeddings,
    ("image", "generate"): execute_generate_image,
    ("image", "removeBackground"): execute_remove_background,
    ("prompt", "enhance"): execute_enhance_prompt,
    ("virtualTryOn", "generate"): execute_virtual_try_on,
    ("video", "create"): execute_video_create,
    ("video", "retrieve"): execute_video_retrieve,
    ("video", "download"): execute_video_download,
    ("video", "list"): execute_video_list,
}


def build_transport(ctx: ExecutionContext) -> RequestTransport:
    return RequestTransport(http=ctx.http_request, credentials=ctx.get_credentials)


async def route(ctx: ExecutionContext, transport: Optional[RequestTransport] = None) -> list[NodeItem]:
    items = ctx.get_input_items()
    resource = ctx.get_parameter("resource", 0)
    operation = ctx.get_parameter("operation", 0)
    handler = ACTION_HANDLERS.get((resource, operation))
    transport = transport or build_transport(ctx)

    results: list[NodeItem] = []
    for index in range(len(items)):
        try:
            if handler is None:
                raise ActionError(f"Unknown resource/operation: {resource}/{operation}")
            results.extend(await handler(ctx, transport, index))
        except Exception as exc:
            if not ctx.continue_on_fail():
                raise
            message = getattr(exc, "message", None) or str(exc)
            logger.warning("router: %s/%s item=%d failed: %s", resource, operation, index, message)
            results.append(NodeItem(json={"error": message}, paired_item=index))
    return results


__all__ = ["ACTION_HANDLERS", "build_transport", "route"]
