from app.core.config import Settings
from app.platform.ports.rate_limiter import RateLimiterPort
from app.platform.adapters.ratelimit_memory import MemoryRateLimiter
from app.platform.adapters.ratelimit_redis import RedisRateLimiter
from app.platform.ports.notifier import NotifierPort
from app.platform.adapters.notifier_log import LoggingNotifier

class ProviderRegistry:
    """Lazily builds the configured adapter for each port, once per app."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._rate_limiter: RateLimiterPort | None = None
        self._notifier: NotifierPort | None = None

    def rate_limiter(self) -> RateLimiterPort:
        if self._rate_limiter is None:
            prov = (self.settings.RATE_LIMIT_PROVIDER or "memory").lower()
            if prov == "redis":
                self._rate_limiter = RedisRateLimiter(self.settings.REDIS_URL)
            else:
                self._rate_limiter = MemoryRateLimiter()
        return self._rate_limiter

    def notifier(self) -> NotifierPort:
        if self._notifier is None:
            # only the logging adapter is shipped; mail/SMS delivery plugs in here
            self._notifier = LoggingNotifier()
        return self._notifier

    async def close(self):
        if isinstance(self._rate_limiter, RedisRateLimiter):
            await self._rate_limiter.close()
