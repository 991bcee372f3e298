"""FastAPI dependencies for injection."""
from fastapi import Depends

from core.auth import ensure_authenticated, get_current_session_user
from core.config import Settings, get_settings
from core.rate_limiter import enforce_rate_limit
from db.session import get_async_session
from services.track_validation import TrackValidator, get_track_validator


def get_validator(settings: Settings = Depends(get_settings)) -> TrackValidator:
    """Track validator for the deployment's configured policy."""
    return get_track_validator(settings)


__all__ = [
    "enforce_rate_limit",
    "ensure_authenticated",
    "get_async_session",
    "get_current_session_user",
    "get_settings",
    "get_validator",
]
