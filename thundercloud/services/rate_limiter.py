"""
Rate limiter for the weather provider.

Token bucket for the per-second limit plus a daily request budget. Both are
scaled down by a buffer factor so scheduled jobs never run the upstream
quota dry.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict

from thundercloud.core.logging import get_logger

logger = get_logger(__name__)


class RateLimitExceededError(Exception):
    """Raised when the daily request budget is exhausted."""
    pass


class ProviderRateLimiter:
    """
    Rate limiter for provider requests.

    Each call to ``wait_if_needed`` consumes one token, sleeping until a
    token is available, and counts towards the daily budget, which resets at
    midnight UTC.
    """

    def __init__(
        self,
        requests_per_second: int = 10,
        requests_per_day: int = 10000,
        buffer_factor: float = 0.8,
        name: str = "open-meteo"
    ):
        """
        Initialize the rate limiter.

        Args:
            requests_per_second: Provider per-second limit
            requests_per_day: Provider daily limit
            buffer_factor: Fraction of the limits actually used
            name: Provider name for log output
        """
        self.name = name
        self.requests_per_second = max(1, int(requests_per_second * buffer_factor))
        self.requests_per_day = max(1, int(requests_per_day * buffer_factor))

        self.tokens = float(self.requests_per_second)
        self.last_refill = time.monotonic()
        self.refill_rate = float(self.requests_per_second)
        self.bucket_lock = asyncio.Lock()

        self.daily_requests = 0
        self.last_reset_date = self._current_utc_date()

        logger.info(
            f"{self.name} rate limiter initialized: {self.requests_per_second} req/sec, "
            f"{self.requests_per_day} req/day (buffer: {buffer_factor})"
        )

    def _current_utc_date(self) -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d")

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        if elapsed > 0:
            self.tokens = min(float(self.requests_per_second), self.tokens + elapsed * self.refill_rate)
            self.last_refill = now

    def _reset_daily_counter_if_needed(self) -> None:
        current_date = self._current_utc_date()
        if current_date != self.last_reset_date:
            logger.info(f"{self.name} daily budget reset: {self.last_reset_date} -> {current_date}")
            self.daily_requests = 0
            self.last_reset_date = current_date

    async def wait_if_needed(self) -> None:
        """
        Wait if necessary to respect rate limits.

        Raises:
            RateLimitExceededError: If the daily budget is exhausted
        """
        async with self.bucket_lock:
            self._reset_daily_counter_if_needed()
            if self.daily_requests >= self.requests_per_day:
                logger.warning(
                    f"{self.name} daily budget exhausted: "
                    f"{self.daily_requests}/{self.requests_per_day} requests used"
                )
                raise RateLimitExceededError(
                    f"Daily request budget exhausted: {self.daily_requests}/{self.requests_per_day}"
                )

            self._refill_tokens()
            if self.tokens < 1:
                wait_time = (1 - self.tokens) / self.refill_rate
                logger.debug(f"{self.name} rate limit: waiting {wait_time:.2f}s for token refill")
                await asyncio.sleep(wait_time)
                self._refill_tokens()

            self.tokens = max(0.0, self.tokens - 1)
            self.daily_requests += 1

    def get_status(self) -> Dict[str, Any]:
        """Get current rate limiter status."""
        return {
            "tokens_remaining": self.tokens,
            "requests_per_second_limit": self.requests_per_second,
            "daily_requests_used": self.daily_requests,
            "daily_requests_limit": self.requests_per_day,
            "daily_reset_date": self.last_reset_date,
            "daily_requests_remaining": max(0, self.requests_per_day - self.daily_requests),
        }
