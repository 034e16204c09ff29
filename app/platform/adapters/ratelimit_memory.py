import asyncio
import time
from collections import deque
from app.platform.ports.rate_limiter import RateLimiterPort

class MemoryRateLimiter(RateLimiterPort):
    """Sliding-window counter held in process memory (single worker only)."""

    def __init__(self, clock=time.monotonic):
        self.clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        async with self._lock:
            now = self.clock()
            self._drop_idle(now, window_seconds)
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._hits.pop(key, None)

    def _drop_idle(self, now: float, window_seconds: int):
        # at most one sweep per window; keys whose newest hit has expired go
        if now - self._last_sweep < window_seconds:
            return
        self._last_sweep = now
        idle = [k for k, hits in self._hits.items() if not hits or hits[-1] <= now - window_seconds]
        for k in idle:
            del self._hits[k]
