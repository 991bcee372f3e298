"""User model for registered accounts."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.track import Track
    from models.user_session import UserSession


class User(Base, UUIDv7Mixin, TimestampMixin):
    """
    A registered user.

    Secrets are never stored in plaintext: the password is a bcrypt hash and the
    access token / password reset code are SHA-256 hashes. Uniqueness of email,
    access token and reset code is enforced by named constraints so that callers
    can tell which one a violation refers to.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("access_token_hash", name="uq_users_access_token"),
        UniqueConstraint("password_reset_code_hash", name="uq_users_password_reset_code"),
    )

    # id provided by UUIDv7Mixin
    user_name: Mapped[str] = mapped_column(String(50))
    email: Mapped[str] = mapped_column(String(100), index=True)
    password_hash: Mapped[str] = mapped_column(String(60), comment="bcrypt hash")
    access_token_hash: Mapped[str] = mapped_column(
        String(64),
        comment="SHA-256 hash of the webhook access token",
    )
    password_reset_code_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="SHA-256 hash of the outstanding reset code, NULL when none issued",
    )
    sign_up_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
    )

    tracks: Mapped[list["Track"]] = relationship(
        back_populates="user",
        passive_deletes=True,
    )
    sessions: Mapped[list["UserSession"]] = relationship(
        back_populates="user",
        passive_deletes=True,
    )
