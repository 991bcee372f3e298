"""Pydantic schemas for track endpoints."""
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator

from schemas.base import CamelModel
from schemas.validators import validate_track_name_length

MAX_IMPORT_TRACKS = 1000


def ensure_aware(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so comparisons against stored values work."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class TrackCreate(CamelModel):
    """Payload for creating a track."""

    track_name: StrictStr
    date: datetime | None = Field(
        default=None,
        description="When the event happened (ISO 8601). Defaults to now.",
    )
    data: dict[str, Any] | None = None

    @field_validator("track_name")
    @classmethod
    def check_track_name(cls, v: str) -> str:
        """Trim and bound the track name."""
        return validate_track_name_length(v)

    @field_validator("date")
    @classmethod
    def check_date(cls, v: datetime | None) -> datetime | None:
        """Normalize naive datetimes to UTC."""
        return ensure_aware(v)


class TrackUpdate(CamelModel):
    """
    Partial update payload. Only the name and the date can change.

    Fields that are present must not be null; absent fields are left untouched.
    """

    track_name: StrictStr | None = None
    date: datetime | None = None

    @field_validator("track_name", mode="before")
    @classmethod
    def reject_null_name(cls, v: object) -> object:
        """trackName may be omitted but not nulled."""
        if v is None:
            raise ValueError("trackName cannot be null.")
        return v

    @field_validator("track_name")
    @classmethod
    def check_track_name(cls, v: str | None) -> str | None:
        """Trim and bound the track name."""
        return validate_track_name_length(v) if v is not None else v

    @field_validator("date", mode="before")
    @classmethod
    def reject_null_date(cls, v: object) -> object:
        """date may be omitted but not nulled."""
        if v is None:
            raise ValueError("date cannot be null.")
        return v

    @field_validator("date")
    @classmethod
    def check_date(cls, v: datetime | None) -> datetime | None:
        """Normalize naive datetimes to UTC."""
        return ensure_aware(v)


class TrackDelete(CamelModel):
    """Confirmation body for deleting a single track."""

    confirm_deletion: StrictBool

    @field_validator("confirm_deletion")
    @classmethod
    def check_confirmed(cls, v: bool) -> bool:
        """Deletion must be explicitly confirmed."""
        if not v:
            raise ValueError("confirmDeletion must be true.")
        return v


class TrackImport(CamelModel):
    """Bulk import payload. Imported atomically: all tracks or none."""

    tracks: list[TrackCreate] = Field(..., min_length=1, max_length=MAX_IMPORT_TRACKS)


class WebhookAuth(CamelModel):
    """Body of access-token authenticated webhook calls."""

    access_token: StrictStr

    @field_validator("access_token")
    @classmethod
    def check_access_token(cls, v: str) -> str:
        """Access token must be a non-empty string."""
        if not v:
            raise ValueError("accessToken must be a non-empty string.")
        return v


class WebhookTrackCreate(WebhookAuth):
    """
    Webhook payload for creating a track.

    `time_offset` is in milliseconds relative to the time of the request and
    may be negative.
    """

    track_name: StrictStr
    time_offset: StrictInt | StrictFloat | None = None
    data: dict[str, Any] | None = None

    @field_validator("track_name")
    @classmethod
    def check_track_name(cls, v: str) -> str:
        """Trim and bound the track name."""
        return validate_track_name_length(v)


class TrackResponse(CamelModel):
    """Representation of a stored track."""

    id: UUID
    track_name: str
    date: datetime
    user_id: UUID
    data: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime
