from __future__ import annotations

import time

from gateway_node.host import ExecutionContext, NodeItem
from gateway_node.schemas import RequestDescriptor
from gateway_node.transport import EMBEDDINGS_PATH, RequestTransport, extract_embedding, extract_usage

from .common import elapsed_ms, get_options, is_simplified, merge_extra_body, resolve_model

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


async def execute_embeddings(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    model = resolve_model(ctx, index, "embedding", DEFAULT_EMBEDDING_MODEL)
    text = ctx.get_parameter("input", index)
    options = get_options(ctx, index)

    body = merge_extra_body({"model": model, "input": text}, options.get("extraBodyFields"))

    started = time.monotonic()
    response = await transport.perform_request(RequestDescriptor(endpoint=EMBEDDINGS_PATH, body=body))
    processing_time = elapsed_ms(started)

    embedding = extract_embedding(response)
    data = {
        "success": True,
        "operation": "embeddings",
        "model": model,
        "embedding": embedding,
        "dimensions": len(embedding),
        "processing_time_ms": processing_time,
    }
    if not is_simplified(options):
        data.update(usage=extract_usage(response), raw_response=response)
    return [NodeItem(json=data, paired_item=index)]
