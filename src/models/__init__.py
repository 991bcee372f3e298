"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.track import Track
from models.user import User
from models.user_session import UserSession

__all__ = [
    "Base",
    "TimestampMixin",
    "Track",
    "UUIDv7Mixin",
    "User",
    "UserSession",
]
