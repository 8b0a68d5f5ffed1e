"""
Tests for the provider rate limiter.
"""

import time
from datetime import datetime, timedelta, timezone

import pytest

from thundercloud.services.rate_limiter import ProviderRateLimiter, RateLimitExceededError


class TestProviderRateLimiter:
    """Test provider rate limiter functionality."""

    @pytest.fixture
    def rate_limiter(self):
        """Create a rate limiter for testing."""
        return ProviderRateLimiter(
            requests_per_second=2,  # Lower limit for testing
            requests_per_day=5,  # Lower limit for testing
            buffer_factor=1.0  # No buffer for testing
        )

    def test_initialization(self):
        """Test rate limiter initialization."""
        limiter = ProviderRateLimiter(
            requests_per_second=10,
            requests_per_day=10000,
            buffer_factor=0.8
        )

        assert limiter.requests_per_second == 8
        assert limiter.requests_per_day == 8000
        assert limiter.tokens == 8
        assert limiter.daily_requests == 0

    def test_limits_never_drop_below_one(self):
        limiter = ProviderRateLimiter(requests_per_second=1, requests_per_day=1, buffer_factor=0.1)
        assert limiter.requests_per_second == 1
        assert limiter.requests_per_day == 1

    @pytest.mark.asyncio
    async def test_waits_for_token_refill(self, rate_limiter):
        """Third request within a second waits for a token."""
        start = time.monotonic()
        for _ in range(3):
            await rate_limiter.wait_if_needed()
        elapsed = time.monotonic() - start

        assert elapsed >= 0.4
        assert rate_limiter.daily_requests == 3

    @pytest.mark.asyncio
    async def test_daily_budget_exhausted(self, rate_limiter):
        rate_limiter.tokens = 100.0
        rate_limiter.requests_per_second = 100
        for _ in range(5):
            await rate_limiter.wait_if_needed()

        with pytest.raises(RateLimitExceededError):
            await rate_limiter.wait_if_needed()

    @pytest.mark.asyncio
    async def test_daily_limit_reset(self, rate_limiter):
        """Test daily limit reset at midnight UTC."""
        yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).strftime("%Y-%m-%d")
        rate_limiter.last_reset_date = yesterday
        rate_limiter.daily_requests = 5

        await rate_limiter.wait_if_needed()

        assert rate_limiter.daily_requests == 1
        assert rate_limiter.last_reset_date == datetime.now(timezone.utc).strftime("%Y-%m-%d")

    @pytest.mark.asyncio
    async def test_get_status(self, rate_limiter):
        await rate_limiter.wait_if_needed()
        status = rate_limiter.get_status()

        assert status["daily_requests_used"] == 1
        assert status["daily_requests_limit"] == 5
        assert status["daily_requests_remaining"] == 4
        assert status["requests_per_second_limit"] == 2
