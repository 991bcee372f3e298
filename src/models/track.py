"""Track model - a single timestamped event owned by a user."""
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.user import User


class Track(Base, UUIDv7Mixin, TimestampMixin):
    """
    A logged event (meal, habit, bodily function, ...).

    `date` is when the event happened and defaults to insertion time;
    `created_at` is when the row was written and drives "delete most recent".
    """

    __tablename__ = "tracks"
    __table_args__ = (
        Index("ix_tracks_user_id_date", "user_id", "date"),
        Index("ix_tracks_user_id_track_name", "user_id", "track_name"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    track_name: Mapped[str] = mapped_column(String(100))
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
    )
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    user: Mapped["User"] = relationship(back_populates="tracks")
