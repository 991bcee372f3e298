"""
Rate limiting policy: sensitivity tiers, their budgets and route classification.

Enforcement lives in rate_limiter.py.
"""
from dataclasses import dataclass
from enum import Enum

from core.config import Settings


class SensitivityTier(Enum):
    """How sensitive a route is to abuse; higher tiers get smaller budgets."""

    VERY_LOW = "very_low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class RateLimitConfig:
    """Request budget of one tier, per client address."""

    requests_per_minute: int
    requests_per_day: int


@dataclass
class RateLimitResult:
    """Result of a rate limit check with all info needed for headers."""

    allowed: bool
    limit: int  # Max requests in current window
    remaining: int  # Requests remaining in current window
    reset: int  # Unix timestamp when window resets
    retry_after: int  # Seconds until retry allowed (0 if allowed)


class RateLimitExceededError(Exception):
    """Raised when rate limit is exceeded."""

    def __init__(self, result: RateLimitResult) -> None:
        self.result = result
        super().__init__("Rate limit exceeded")


# Path prefix -> tier. Longest match wins; unlisted paths are MEDIUM.
TIER_BY_PATH_PREFIX: dict[str, SensitivityTier] = {
    "/service": SensitivityTier.VERY_LOW,
    "/users": SensitivityTier.HIGH,
    "/auth": SensitivityTier.HIGH,
}


def get_sensitivity_tier(path: str) -> SensitivityTier:
    """Classify a request path."""
    matches = [
        prefix for prefix in TIER_BY_PATH_PREFIX
        if path == prefix or path.startswith(prefix + "/")
    ]
    if not matches:
        return SensitivityTier.MEDIUM
    return TIER_BY_PATH_PREFIX[max(matches, key=len)]


def get_rate_limits(settings: Settings) -> dict[SensitivityTier, RateLimitConfig]:
    """Budgets per tier, from configuration."""
    return {
        SensitivityTier.VERY_LOW: RateLimitConfig(
            settings.rate_limit_very_low_per_minute,
            settings.rate_limit_very_low_per_day,
        ),
        SensitivityTier.MEDIUM: RateLimitConfig(
            settings.rate_limit_medium_per_minute,
            settings.rate_limit_medium_per_day,
        ),
        SensitivityTier.HIGH: RateLimitConfig(
            settings.rate_limit_high_per_minute,
            settings.rate_limit_high_per_day,
        ),
    }
