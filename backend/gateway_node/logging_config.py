from __future__ import annotations

import logging
import sys

LOGGER_NAME = "gateway_node"

logger = logging.getLogger(LOGGER_NAME)

# 原始 payload 片段只在 DEBUG 下输出，避免正常日志里出现大段响应体。
payload_debug_logger = logging.getLogger(f"{LOGGER_NAME}.payload_debug")

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """
    Attach a single stderr handler to the package logger.

    Safe to call repeatedly: an existing handler installed by this function is
    reused and only the level is updated.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if not any(getattr(h, "_gateway_node_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._gateway_node_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


__all__ = ["LOGGER_NAME", "logger", "payload_debug_logger", "setup_logging"]
