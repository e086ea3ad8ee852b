"""Redis fixed-window rate limiting.

Used as a route dependency rather than a global middleware: the limit is per
authenticated user, which is only known after token resolution.

    count = INCR ratelimit:{scope}:{user_id}:{window}
    first hit in the window sets EXPIRE
    count > limit -> RateLimitError (9001, HTTP 429)
"""

import logging
import time

import redis.asyncio as aioredis
from fastapi import Depends

from config.settings import settings
from src.pm_common.errors import RateLimitError
from src.pm_common.redis_client import get_redis
from src.pm_gateway.auth.dependencies import get_current_user
from src.pm_gateway.user.db_models import UserModel

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    def __init__(self, scope: str, limit: int, window_seconds: int = 60) -> None:
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds

    def _key(self, subject: str, now: float) -> str:
        window = int(now // self.window_seconds)
        return f"ratelimit:{self.scope}:{subject}:{window}"

    async def hit(self, redis: aioredis.Redis, subject: str, now: float | None = None) -> int:
        """Count one request for `subject`; raise RateLimitError past the limit."""
        key = self._key(subject, time.time() if now is None else now)
        count = int(await redis.incr(key))
        if count == 1:
            await redis.expire(key, self.window_seconds)
        if count > self.limit:
            logger.warning(
                "Rate limit exceeded: scope=%s subject=%s count=%d", self.scope, subject, count
            )
            raise RateLimitError()
        return count


payment_initiate_limiter = FixedWindowRateLimiter(
    scope="payment_initiate", limit=settings.PAYMENT_INITIATE_RATE_LIMIT
)


async def limit_payment_initiation(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    redis = await get_redis()
    await payment_initiate_limiter.hit(redis, str(current_user.id))
    return current_user
