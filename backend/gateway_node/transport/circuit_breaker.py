"""
进程级熔断器，保护所有网关调用。

状态：
- closed：连续失败次数低于 threshold
- open：达到 threshold 且 open_until 尚未到期；请求直接拒绝，不访问网络
- half_open：达到 threshold 但冷却期已过；下一个请求清零计数并作为探测放行

状态迁移：record_failure 累加计数，达到阈值后打开 reset_seconds 秒；
record_success 关闭熔断；before_request 把 half_open 转回 closed。

不加锁。asyncio 下状态只会在 await 点交错，两个并发请求可能在计数未达阈值时同时放行。
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from gateway_node.errors import CircuitOpenError
from gateway_node.logging_config import logger
from gateway_node.settings import settings


class BreakerStatus(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerState:
    consecutive_failures: int = 0
    open_until: float = 0.0


class CircuitBreaker:
    def __init__(
        self,
        *,
        threshold: int | None = None,
        reset_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.threshold = int(threshold if threshold is not None else settings.circuit_breaker_threshold)
        self.reset_seconds = float(
            reset_seconds if reset_seconds is not None else settings.circuit_breaker_reset_ms / 1000
        )
        self._clock = clock
        self._failures = 0
        self._open_until = 0.0

    @property
    def status(self) -> BreakerStatus:
        if self._failures < self.threshold:
            return BreakerStatus.CLOSED
        if self._clock() < self._open_until:
            return BreakerStatus.OPEN
        return BreakerStatus.HALF_OPEN

    def before_request(self) -> None:
        """请求放行检查；熔断打开时抛出 CircuitOpenError。"""
        status = self.status
        if status is BreakerStatus.OPEN:
            remaining = max(0.0, self._open_until - self._clock())
            raise CircuitOpenError(retry_after_seconds=math.ceil(remaining))
        if status is BreakerStatus.HALF_OPEN:
            logger.info("circuit_breaker: cooldown elapsed, letting a probe request through")
            self._failures = 0

    def record_success(self) -> None:
        self._failures = 0

    def record_failure(self) -> None:
        self._failures += 1
        if self._failures >= self.threshold:
            self._open_until = self._clock() + self.reset_seconds
            logger.warning(
                "circuit_breaker: opened after %d consecutive failures (cooldown=%.0fs)",
                self._failures,
                self.reset_seconds,
            )

    def get_state(self) -> CircuitBreakerState:
        return CircuitBreakerState(consecutive_failures=self._failures, open_until=self._open_until)

    def set_state(self, consecutive_failures: int, open_until: float) -> None:
        self._failures = max(0, int(consecutive_failures))
        self._open_until = float(open_until)

    def reset(self) -> None:
        self._failures = 0
        self._open_until = 0.0


_default_breaker: CircuitBreaker | None = None


def get_default_breaker() -> CircuitBreaker:
    """获取全局共享的熔断器（未显式传入 breaker 的传输层共用）。"""
    global _default_breaker
    if _default_breaker is None:
        _default_breaker = CircuitBreaker()
    return _default_breaker


__all__ = [
    "BreakerStatus",
    "CircuitBreaker",
    "CircuitBreakerState",
    "get_default_breaker",
]
