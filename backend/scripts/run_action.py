#!/usr/bin/env python
"""
实用脚本：在本地对网关执行单个节点动作。

凭据默认来自 .env（GATEWAY_NODE_API_KEY / GATEWAY_NODE_DEFAULT_BASE_URL），
也可以用 --api-key / --base-url 覆盖。参数以 JSON 形式传入，与宿主中的节点参数同名。

示例：
  python backend/scripts/run_action.py chat generate --params '{"userPrompt": "Hello"}'
  python backend/scripts/run_action.py embeddings generate --params '{"input": "hi"}'
  python backend/scripts/run_action.py video list --params '{"additionalOptions": {"limit": 5}}'
  python backend/scripts/run_action.py --list-models image
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

# 允许从仓库根目录直接运行：python backend/scripts/run_action.py
_backend_root = Path(__file__).resolve().parents[1]
if str(_backend_root) not in sys.path:
    sys.path.insert(0, str(_backend_root))

from gateway_node.errors import GatewayAPIError, GatewayNodeError  # noqa: E402
from gateway_node.host import LocalExecutionContext, NodeItem  # noqa: E402
from gateway_node.logging_config import setup_logging  # noqa: E402
from gateway_node.node import LOAD_OPTIONS_METHODS, GatewayNode  # noqa: E402
from gateway_node.schemas import Credentials  # noqa: E402
from gateway_node.settings import settings  # noqa: E402

_CAPABILITY_METHODS = {capability: method for method, capability in LOAD_OPTIONS_METHODS.items()}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="在本地执行一个网关节点动作")
    parser.add_argument("resource", nargs="?", default="", help="资源，例如 chat / image / video。")
    parser.add_argument("operation", nargs="?", default="", help="操作，例如 generate / create / list。")
    parser.add_argument(
        "--params",
        default="{}",
        help="节点参数（JSON 对象），例如 '{\"userPrompt\": \"Hello\"}'。",
    )
    parser.add_argument("--api-key", default="", help="覆盖 .env 中的 API key。")
    parser.add_argument("--base-url", default="", help="覆盖默认网关地址。")
    parser.add_argument(
        "--list-models",
        default="",
        choices=["", *sorted(_CAPABILITY_METHODS)],
        help="只列出某个能力的可选模型，不执行动作。",
    )
    parser.add_argument(
        "--continue-on-fail",
        action="store_true",
        help="失败时输出 error 项而不是直接退出。",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="日志级别，默认读取配置。")
    return parser.parse_args()


def _item_to_dict(item: NodeItem) -> dict[str, Any]:
    out: dict[str, Any] = {"json": item.json, "paired_item": item.paired_item}
    if item.binary:
        out["binary"] = {
            key: {"file_name": value.file_name, "mime_type": value.mime_type, "size": value.size}
            for key, value in item.binary.items()
        }
    return out


async def main() -> int:
    args = parse_args()
    setup_logging(args.log_level)

    try:
        params = json.loads(args.params)
    except json.JSONDecodeError as exc:
        print(f"--params 不是合法的 JSON：{exc}")
        return 2
    if not isinstance(params, dict):
        print("--params 必须是 JSON 对象")
        return 2

    credentials = Credentials(
        api_key=args.api_key or settings.api_key,
        base_url=args.base_url or settings.default_base_url,
    )
    if not credentials.api_key:
        print("未配置 API key，请设置 GATEWAY_NODE_API_KEY 或使用 --api-key。")
        return 2

    node = GatewayNode()

    if args.list_models:
        ctx = LocalExecutionContext(parameters={}, credentials=credentials)
        options = await node.load_options(ctx, _CAPABILITY_METHODS[args.list_models])
        for option in options:
            print(f"{option.value:<40} {option.name}")
        return 0

    if not args.resource or not args.operation:
        print("需要同时提供 resource 与 operation。")
        return 2

    ctx = LocalExecutionContext(
        parameters={**params, "resource": args.resource, "operation": args.operation},
        credentials=credentials,
        continue_on_fail=args.continue_on_fail,
    )
    try:
        items = await node.execute(ctx)
    except GatewayAPIError as exc:
        print(json.dumps({"error": exc.to_dict()}, ensure_ascii=False, indent=2))
        return 1
    except GatewayNodeError as exc:
        print(json.dumps({"error": {"message": str(exc)}}, ensure_ascii=False, indent=2))
        return 1

    print(json.dumps([_item_to_dict(i) for i in items], ensure_ascii=False, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
