"""
视频生成任务：提交 + 轮询、查询、下载、列表。

轮询通过 transport.sleep 等待，测试中可以不真正等待就跑完整个 create 流程。
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from gateway_node.errors import ActionError
from gateway_node.host import ExecutionContext, NodeItem
from gateway_node.logging_config import logger
from gateway_node.schemas import RequestDescriptor
from gateway_node.settings import settings
from gateway_node.transport import VIDEO_GENERATIONS_PATH, RequestTransport, extract_video_url

from .common import download_binary, elapsed_ms, get_options, is_simplified, resolve_model

DEFAULT_VIDEO_MODEL = "sora-2-all"
DEFAULT_VIDEO_SIZE = "720x1280"
TERMINAL_STATUSES = frozenset({"completed", "failed"})


def task_path(task_id: str) -> str:
    return f"{VIDEO_GENERATIONS_PATH}/{task_id}"


def _status(payload: Any, default: str) -> str:
    if isinstance(payload, Mapping):
        status = payload.get("status")
        if isinstance(status, str) and status:
            return status
    return default


def _task_id(payload: Any) -> str:
    if not isinstance(payload, Mapping):
        return ""
    task_id = payload.get("id")
    if not task_id and isinstance(payload.get("data"), Mapping):
        task_id = payload["data"].get("id")
    return str(task_id) if task_id else ""


def _failure_message(payload: Any) -> str:
    if isinstance(payload, Mapping):
        error = payload.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("message"), str) and error["message"]:
            return error["message"]
    return "Unknown error"


def build_create_body(model: str, prompt: str, options: dict[str, Any]) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": model,
        "prompt": prompt,
        "size": options.get("videoSize") or DEFAULT_VIDEO_SIZE,
    }
    if options.get("storyboardMode"):
        body["storyboard"] = True
        shots = (options.get("storyboardShots") or {}).get("shot") or []
        if shots:
            body["storyboard_shots"] = [
                {"prompt": shot.get("shotPrompt", ""), "duration": shot.get("duration", 5)} for shot in shots
            ]
    return body


async def execute_video_create(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    model = resolve_model(ctx, index, "video", DEFAULT_VIDEO_MODEL)
    prompt = ctx.get_parameter("prompt", index)
    options = get_options(ctx, index)

    started = time.monotonic()
    submitted = await transport.perform_request(
        RequestDescriptor(
            endpoint=VIDEO_GENERATIONS_PATH,
            body=build_create_body(model, prompt, options),
            timeout_ms=settings.video_submit_timeout_ms,
        )
    )
    task_id = _task_id(submitted)
    if not task_id:
        raise ActionError("Video generation API did not return a task ID")

    status = _status(submitted, "pending")
    latest = submitted
    interval = settings.video_poll_interval_ms / 1000
    max_attempts = settings.video_max_poll_attempts
    attempt = 0
    while attempt < max_attempts and status not in TERMINAL_STATUSES:
        await transport.sleep(interval)
        latest = await transport.perform_request(
            RequestDescriptor(method="GET", endpoint=task_path(task_id), timeout_ms=settings.video_poll_timeout_ms)
        )
        status = _status(latest, "pending")
        attempt += 1
        logger.debug("video: task=%s poll=%d status=%s", task_id, attempt, status)
    processing_time = elapsed_ms(started)

    if status == "failed":
        raise ActionError(f"Video generation failed: {_failure_message(latest)}")
    if status != "completed":
        raise ActionError(
            f"Video generation timed out after {max_attempts * interval:g}s (status: {status})"
        )

    data: dict[str, Any] = {
        "success": True,
        "operation": "video.create",
        "id": task_id,
        "status": status,
        "model": model,
        "video_url": extract_video_url(latest),
        "processing_time_ms": processing_time,
    }
    if not is_simplified(options):
        data.update(prompt=prompt, raw_response=latest)
    return [NodeItem(json=data, paired_item=index)]


async def execute_video_retrieve(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    task_id = ctx.get_parameter("taskId", index)
    options = get_options(ctx, index)

    response = await transport.perform_request(RequestDescriptor(method="GET", endpoint=task_path(task_id)))
    data: dict[str, Any] = {
        "success": True,
        "operation": "video.retrieve",
        "id": task_id,
        "status": _status(response, "unknown"),
        "video_url": extract_video_url(response),
    }
    if not is_simplified(options):
        data["raw_response"] = response
    return [NodeItem(json=data, paired_item=index)]


async def execute_video_download(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    task_id = ctx.get_parameter("taskId", index)

    response = await transport.perform_request(RequestDescriptor(method="GET", endpoint=task_path(task_id)))
    status = _status(response, "unknown")
    if status != "completed":
        raise ActionError(f'Cannot download: video task "{task_id}" status is "{status}" (expected "completed")')
    video_url = extract_video_url(response)
    if not video_url:
        raise ActionError(f'No video URL found for task "{task_id}"')

    binary = await download_binary(ctx, video_url, file_name="output.mp4", mime_type="video/mp4")
    return [
        NodeItem(
            json={"success": True, "operation": "video.download", "id": task_id, "video_url": video_url},
            binary={"data": binary},
            paired_item=index,
        )
    ]


async def execute_video_list(ctx: ExecutionContext, transport: RequestTransport, index: int) -> list[NodeItem]:
    options = get_options(ctx, index)
    query = {"limit": options["limit"]} if options.get("limit") else None

    response = await transport.perform_request(
        RequestDescriptor(method="GET", endpoint=VIDEO_GENERATIONS_PATH, query=query)
    )
    tasks = response.get("data") if isinstance(response, Mapping) else None
    if not isinstance(tasks, list):
        return []

    simplify = is_simplified(options)
    items: list[NodeItem] = []
    for task in tasks:
        if not isinstance(task, Mapping):
            continue
        if simplify:
            data = {
                "id": task.get("id"),
                "status": task.get("status"),
                "model": task.get("model"),
                "video_url": task.get("video_url") or "",
                "created_at": task.get("created_at"),
            }
        else:
            data = dict(task)
        items.append(NodeItem(json=data, paired_item=index))
    return items


__all__ = [
    "build_create_body",
    "execute_video_create",
    "execute_video_download",
    "execute_video_list",
    "execute_video_retrieve",
    "task_path",
]
