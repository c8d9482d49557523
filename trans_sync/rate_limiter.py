# trans_sync/rate_limiter.py
"""
文本生成引擎的请求限流器。

以"每分钟请求数"为单位的令牌桶：每次生成请求占用一个名额，
名额按 60/rpm 秒一个的速度恢复，最多累积 `burst` 个。
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Optional

import structlog

from trans_sync.config import EngineSettings

logger = structlog.get_logger(__name__)


class RateLimiter:
    """按 rpm 限制生成请求的异步令牌桶，可注入时钟以便测试。"""

    def __init__(
        self,
        rpm: int,
        burst: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        burst = rpm if burst is None else burst
        if rpm <= 0 or burst <= 0:
            raise ValueError("rpm 和 burst 必须为正数")
        self.rpm = rpm
        self.burst = burst
        self.total_wait = 0.0
        self._interval = 60.0 / rpm
        self._clock = clock
        self._available = float(burst)
        self._updated = clock()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> Optional[RateLimiter]:
        """引擎配置未设置 rpm 时不限流。"""
        if not settings.rpm:
            return None
        return cls(settings.rpm, settings.burst)

    @property
    def available(self) -> float:
        self._settle()
        return self._available

    def _settle(self) -> None:
        now = self._clock()
        recovered = (now - self._updated) / self._interval
        if recovered > 0:
            self._available = min(float(self.burst), self._available + recovered)
            self._updated = now

    def delay(self) -> float:
        """下一次请求还需等待的秒数，不占用名额。"""
        self._settle()
        if self._available >= 1:
            return 0.0
        return (1 - self._available) * self._interval

    async def acquire(self) -> float:
        """占用一个请求名额，名额不足时等待；返回实际等待的秒数。"""
        waited = 0.0
        while True:
            async with self._lock:
                wait = self.delay()
                if wait == 0.0:
                    self._available -= 1
                    break
            # 在锁外等待，其他协程仍可读取剩余名额
            logger.debug("触发请求限流，等待名额恢复。", wait=round(wait, 3), rpm=self.rpm)
            await asyncio.sleep(wait)
            waited += wait
        self.total_wait += waited
        return waited
