"""
Redis-based rate limiting enforcement.

Budgets and route classification are in rate_limit_config.py.
"""
import logging
import time
import uuid

from fastapi import Depends, Request

from core.config import Settings, get_settings
from core.rate_limit_config import (
    RateLimitConfig,
    RateLimitExceededError,
    RateLimitResult,
    SensitivityTier,
    get_rate_limits,
    get_sensitivity_tier,
)
from core.redis import get_redis_client

logger = logging.getLogger(__name__)

MINUTE_SECONDS = 60
DAY_SECONDS = 86400


def _fail_open(max_requests: int) -> RateLimitResult:
    return RateLimitResult(
        allowed=True,
        limit=max_requests,
        remaining=max_requests,
        reset=0,
        retry_after=0,
    )


async def check_rate_limit(
    client_id: str,
    tier: SensitivityTier,
    config: RateLimitConfig,
) -> RateLimitResult:
    """
    Count a request from `client_id` against the budget of `tier`.

    The per-minute window is checked first, then the daily one. Requests are
    allowed when Redis is unavailable.
    """
    redis_client = get_redis_client()
    if redis_client is None or not redis_client.is_connected:
        logger.warning("redis_unavailable", extra={"operation": "rate_limit"})
        return _fail_open(config.requests_per_minute)

    now = int(time.time())

    minute_result = await _check_sliding_window(
        f"rate:{client_id}:{tier.value}:min",
        config.requests_per_minute,
        MINUTE_SECONDS,
        now,
    )
    if not minute_result.allowed:
        logger.warning(
            "rate_limit_exceeded",
            extra={"client": client_id, "tier": tier.value, "limit_type": "per_minute"},
        )
        return minute_result

    day_result = await _check_fixed_window(
        f"rate:{client_id}:{tier.value}:day",
        config.requests_per_day,
        DAY_SECONDS,
        now,
    )
    if not day_result.allowed:
        logger.warning(
            "rate_limit_exceeded",
            extra={"client": client_id, "tier": tier.value, "limit_type": "daily"},
        )
        return day_result

    # Per-minute numbers are the more useful ones in headers
    return minute_result


async def _check_sliding_window(
    key: str, max_requests: int, window_seconds: int, now: int,
) -> RateLimitResult:
    """Sliding window check; precise at window boundaries."""
    redis_client = get_redis_client()
    if redis_client is None:
        return _fail_open(max_requests)

    result = await redis_client.eval_sliding_window(
        key=key,
        now=now,
        window_seconds=window_seconds,
        max_requests=max_requests,
        request_id=str(uuid.uuid4()),
    )
    if result is None:
        return _fail_open(max_requests)

    allowed, remaining, retry_after = result
    return RateLimitResult(
        allowed=bool(allowed),
        limit=max_requests,
        remaining=max(0, remaining),
        reset=now + window_seconds,
        retry_after=max(0, retry_after) if not allowed else 0,
    )


async def _check_fixed_window(
    key: str, max_requests: int, window_seconds: int, now: int,
) -> RateLimitResult:
    """Fixed window counter; cheap, used for daily caps."""
    redis_client = get_redis_client()
    if redis_client is None:
        return _fail_open(max_requests)

    result = await redis_client.eval_fixed_window(
        key=key,
        max_requests=max_requests,
        window_seconds=window_seconds,
    )
    if result is None:
        return _fail_open(max_requests)

    allowed, remaining, ttl, retry_after = result
    return RateLimitResult(
        allowed=bool(allowed),
        limit=max_requests,
        remaining=max(0, remaining),
        reset=now + ttl if ttl > 0 else now + window_seconds,
        retry_after=max(0, retry_after) if not allowed else 0,
    )


def get_client_address(request: Request) -> str:
    """Address the budget is keyed by."""
    return request.client.host if request.client else "unknown"


async def enforce_rate_limit(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Router dependency: reject over-budget requests with 429.

    The result is stored on request.state for RateLimitHeadersMiddleware.
    """
    tier = get_sensitivity_tier(request.url.path)
    config = get_rate_limits(settings)[tier]
    result = await check_rate_limit(get_client_address(request), tier, config)
    if not result.allowed:
        raise RateLimitExceededError(result)
    request.state.rate_limit_info = {
        "limit": result.limit,
        "remaining": result.remaining,
        "reset": result.reset,
    }
