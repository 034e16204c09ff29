from typing import Protocol, runtime_checkable

@runtime_checkable
class RateLimiterPort(Protocol):
    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Count one attempt; False once ``limit`` attempts fall inside the window."""
        ...

    async def reset(self, key: str) -> None: ...
