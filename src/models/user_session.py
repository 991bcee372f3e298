"""Server-side login session model."""
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.user import User


class UserSession(Base, UUIDv7Mixin, TimestampMixin):
    """
    A login session created by the local (email + password) strategy.

    The cookie carries a signed opaque session id; only its hash is stored here,
    same as API tokens. Deleting the row logs the browser out.
    """

    __tablename__ = "sessions"

    # id provided by UUIDv7Mixin
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        comment="SHA-256 hash of the session id",
    )
    persistent: Mapped[bool] = mapped_column(
        default=False,
        comment="True when the user asked to stay logged in",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        comment="Server-side expiry; browser-lifetime cookies still expire here",
    )

    user: Mapped["User"] = relationship(back_populates="sessions")
