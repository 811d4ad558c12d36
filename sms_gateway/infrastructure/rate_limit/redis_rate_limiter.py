import redis.asyncio as redis

from ...application.ports.rate_limiter import RateLimiter


class RedisRateLimiter(RateLimiter):
    def __init__(self, url: str, prefix: str = "rl:") -> None:
        self.client = redis.Redis.from_url(url)
        self.prefix = prefix

    async def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = f"{self.prefix}{key}:{window_seconds}"
        # Fixed window: the TTL is set once, by the request that opens the window
        count = await self.client.incr(rk, 1)
        if int(count) == 1:
            await self.client.expire(rk, window_seconds)
        return int(count) <= int(max_requests)

    async def close(self) -> None:
        await self.client.aclose()
