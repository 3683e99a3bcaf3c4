"""Per-user throttle for auto-quote requests.

Each request increments a Redis counter keyed by user and window number, in
one pipelined round trip (INCR plus EXPIRE). The window number is derived
from the clock, so the retry delay is computed locally without a TTL lookup.
Redis errors let the request through: the quota ledger still bounds paid
vehicle lookups.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from redis.exceptions import RedisError

from scrapquote.config import settings
from scrapquote.db.engine import redis_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: int = 0
    count: int = 0


class RateLimiter:
    """Fixed-window counter: at most `limit` hits per `window` seconds per user."""

    def __init__(
        self,
        redis: Any,
        limit: int,
        window: int,
        *,
        prefix: str = "rate:auto_quote",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._limit = limit
        self._window = max(window, 1)
        self._prefix = prefix
        self._clock = clock

    def key_for(self, user_id: uuid.UUID, now: float) -> str:
        return f"{self._prefix}:{user_id}:{int(now // self._window)}"

    async def hit(self, user_id: uuid.UUID) -> RateDecision:
        """Count one request for `user_id` and decide whether it may proceed."""
        if self._limit <= 0:
            return RateDecision(allowed=True)

        now = self._clock()
        key = self.key_for(user_id, now)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, self._window)
                count, _ = await pipe.execute()
        except RedisError as exc:
            logger.warning("Rate limiter unavailable, allowing request (user=%s): %s", user_id, exc)
            return RateDecision(allowed=True)

        if count > self._limit:
            retry_after = max(int(self._window - now % self._window), 1)
            logger.info("Auto-quote rate limit hit (user=%s, %d/%d)", user_id, count, self._limit)
            return RateDecision(allowed=False, retry_after=retry_after, count=count)
        return RateDecision(allowed=True, count=count)


# Module-level singleton
rate_limiter = RateLimiter(
    redis_client,
    limit=settings.quotes.auto_quote_rate_limit,
    window=settings.quotes.auto_quote_rate_window,
)
