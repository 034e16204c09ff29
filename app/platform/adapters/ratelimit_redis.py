import logging
from redis.asyncio import from_url as redis_from_url
from app.platform.ports.rate_limiter import RateLimiterPort

log = logging.getLogger("ratelimit.redis")

class RedisRateLimiter(RateLimiterPort):
    """Fixed-window counter shared by every worker: INCR + EXPIRE per key."""

    def __init__(self, url: str | None, prefix: str = "ratelimit"):
        if not url:
            raise RuntimeError("REDIS_URL not configured")
        self.redis = redis_from_url(url, encoding="utf-8", decode_responses=True)
        self.prefix = prefix

    async def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        k = f"{self.prefix}:{key}"
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(k)
            pipe.expire(k, window_seconds, nx=True)
            count, _ = await pipe.execute()
        if count > limit:
            log.debug(f"[REDIS RATELIMIT] key={k} count={count} limit={limit}")
            return False
        return True

    async def reset(self, key: str) -> None:
        await self.redis.delete(f"{self.prefix}:{key}")

    async def close(self):
        await self.redis.aclose()
