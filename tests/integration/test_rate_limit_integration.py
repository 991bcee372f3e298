"""
Integration tests for rate limiting through the HTTP layer.

These run against a real Redis container. Budgets are lowered by overriding
the settings dependency.
"""
import time
from collections.abc import Generator

import pytest
from httpx import AsyncClient

from api.main import app
from core.config import Settings, get_settings
from core.redis import RedisClient


def settings_with(**limits: int) -> Settings:
    """Current settings with some rate limit fields replaced."""
    return get_settings().model_copy(update=limits)


@pytest.fixture
def low_limits(client: AsyncClient) -> Generator[None]:  # noqa: ARG001
    """Two requests per minute for HIGH routes, one for VERY_LOW ones."""
    settings = settings_with(rate_limit_high_per_minute=2, rate_limit_very_low_per_minute=1)
    app.dependency_overrides[get_settings] = lambda: settings
    yield
    app.dependency_overrides.pop(get_settings, None)


class TestRateLimitHeaders:
    """Headers on allowed requests."""

    async def test__headers_present_and_decreasing(
        self, client: AsyncClient, redis_client: RedisClient, low_limits: None,  # noqa: ARG002
    ) -> None:
        """Limit, remaining and a future reset are reported."""
        now = int(time.time())

        first = await client.get("/auth/is-authenticated")
        second = await client.get("/auth/is-authenticated")

        assert first.headers["X-RateLimit-Limit"] == "2"
        assert int(first.headers["X-RateLimit-Remaining"]) == 1
        assert int(second.headers["X-RateLimit-Remaining"]) == 0
        reset = int(first.headers["X-RateLimit-Reset"])
        assert now < reset <= now + 65


class TestRateLimitEnforcement:
    """429 once the budget is spent."""

    async def test__exceeded_returns_429(
        self, client: AsyncClient, redis_client: RedisClient, low_limits: None,  # noqa: ARG002
    ) -> None:
        """The third request within a minute is rejected with Retry-After."""
        for _ in range(2):
            assert (await client.get("/auth/is-authenticated")).status_code == 401

        response = await client.get("/auth/is-authenticated")

        assert response.status_code == 429
        assert 0 < int(response.headers["Retry-After"]) <= 60
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert "Rate limit exceeded" in response.json()["detail"]

    async def test__tiers_are_counted_separately(
        self, client: AsyncClient, redis_client: RedisClient, low_limits: None,  # noqa: ARG002
    ) -> None:
        """Spending the HIGH budget leaves other tiers untouched."""
        for _ in range(3):
            await client.post("/users/request-password-reset-email", json={})

        assert (await client.get("/service/livez")).status_code == 200
        assert (await client.get("/service/livez")).status_code == 429

    async def test__users_and_auth_share_tier_budget(
        self, client: AsyncClient, redis_client: RedisClient, low_limits: None,  # noqa: ARG002
    ) -> None:
        """Budgets are per client and tier, not per route."""
        await client.get("/auth/is-authenticated")
        await client.post("/users", json={})

        assert (await client.get("/auth/is-authenticated")).status_code == 429


class TestRedisUnavailable:
    """Without Redis, requests are allowed."""

    async def test__fails_open(self, client: AsyncClient, low_limits: None) -> None:  # noqa: ARG002
        """No global Redis client: no 429 regardless of the budget."""
        for _ in range(5):
            response = await client.get("/service/livez")
            assert response.status_code == 200
