"""Service layer for track CRUD operations."""
import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import Select, delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from models.track import Track
from schemas.track import TrackCreate, TrackUpdate
from services.exceptions import TrackValidationError
from services.track_validation import TrackValidator

logger = logging.getLogger(__name__)

# Largest value PostgreSQL accepts for LIMIT / OFFSET (BIGINT)
MAX_PAGING_VALUE = 2**63 - 1

SORT_COLUMNS: dict[str, InstrumentedAttribute] = {
    "date": Track.date,
    "createdAt": Track.created_at,
    "updatedAt": Track.updated_at,
    "trackName": Track.track_name,
}


def parse_non_negative_int(value: str | int | None) -> int | None:
    """
    Parse a raw query value as a non-negative integer.

    Returns None for missing, non-numeric, negative or out-of-range input so the
    caller can ignore it.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    else:
        try:
            parsed = int(value.strip())
        except ValueError:
            return None
    return parsed if 0 <= parsed <= MAX_PAGING_VALUE else None


def build_track_query(
    user_id: UUID,
    track_name: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    skip: str | int | None = None,
    limit: str | int | None = None,
    sort: str | None = None,
) -> Select[tuple[Track]]:
    """
    Compose the SELECT for a filtered track listing.

    Always restricted to `user_id`. The date range is inclusive on both ends.
    `sort` is a field name optionally prefixed with `-` for descending order;
    unknown fields fall back to the default (date ascending). A `limit` of 0
    means no limit. The id is used as tiebreaker so pagination is stable.
    """
    query = select(Track).where(Track.user_id == user_id)

    if track_name is not None:
        query = query.where(Track.track_name == track_name)
    if from_date is not None:
        query = query.where(Track.date >= from_date)
    if to_date is not None:
        query = query.where(Track.date <= to_date)

    descending = False
    sort_column = Track.date
    if sort:
        field = sort.strip()
        is_desc = field.startswith("-")
        column = SORT_COLUMNS.get(field.removeprefix("-"))
        if column is not None:
            sort_column = column
            descending = is_desc

    if descending:
        query = query.order_by(sort_column.desc(), Track.id.desc())
    else:
        query = query.order_by(sort_column.asc(), Track.id.asc())

    offset = parse_non_negative_int(skip)
    if offset:
        query = query.offset(offset)
    row_limit = parse_non_negative_int(limit)
    if row_limit:
        query = query.limit(row_limit)

    return query


def resolve_time_offset(time_offset: float | None, now: datetime | None = None) -> datetime:
    """
    Turn a millisecond offset relative to `now` into an absolute timestamp.

    Raises:
        TrackValidationError: If the offset does not yield a representable date.
    """
    now = now or datetime.now(UTC)
    if time_offset is None:
        return now
    try:
        return now + timedelta(milliseconds=time_offset)
    except (OverflowError, ValueError) as e:
        raise TrackValidationError(
            "timeOffset does not resolve to a valid date.",
        ) from e


def _new_track(user_id: UUID, data: TrackCreate, validator: TrackValidator) -> Track:
    track_name = validator.validate(data.track_name, data.data)
    track = Track(user_id=user_id, track_name=track_name, data=data.data)
    if data.date is not None:
        track.date = data.date
    return track


async def create_track(
    db: AsyncSession,
    user_id: UUID,
    data: TrackCreate,
    validator: TrackValidator,
) -> Track:
    """
    Create a track for a user.

    The name and payload are validated before anything is written.

    Raises:
        TrackValidationError: If the track is not admissible under the active policy.
    """
    track = _new_track(user_id, data, validator)
    db.add(track)
    await db.flush()
    await db.refresh(track)
    logger.info(
        "track_created",
        extra={"user_id": str(user_id), "track_id": str(track.id)},
    )
    return track


async def create_tracks_bulk(
    db: AsyncSession,
    user_id: UUID,
    items: Sequence[TrackCreate],
    validator: TrackValidator,
) -> list[Track]:
    """
    Import many tracks at once: either all of them are stored or none.

    Every item is validated before the first insert; the inserts share one
    savepoint.

    Raises:
        TrackValidationError: If any item is not admissible. Nothing is persisted.
    """
    tracks = []
    for index, item in enumerate(items):
        try:
            tracks.append(_new_track(user_id, item, validator))
        except TrackValidationError as e:
            raise TrackValidationError(f"tracks[{index}]: {e}") from e

    async with db.begin_nested():
        db.add_all(tracks)
        await db.flush()

    # Load server defaults (date, timestamps) in one round trip
    ids = [track.id for track in tracks]
    result = await db.execute(
        select(Track)
        .where(Track.id.in_(ids))
        .execution_options(populate_existing=True),
    )
    by_id = {track.id: track for track in result.scalars()}

    logger.info(
        "tracks_imported",
        extra={"user_id": str(user_id), "count": len(tracks)},
    )
    return [by_id[track_id] for track_id in ids]


async def get_track(db: AsyncSession, user_id: UUID, track_id: UUID) -> Track | None:
    """Get a track by id, scoped to its owner."""
    result = await db.execute(
        select(Track).where(Track.id == track_id, Track.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def list_tracks(
    db: AsyncSession,
    user_id: UUID,
    track_name: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    skip: str | int | None = None,
    limit: str | int | None = None,
    sort: str | None = None,
) -> list[Track]:
    """List a user's tracks. An empty result is an empty list."""
    query = build_track_query(
        user_id,
        track_name=track_name,
        from_date=from_date,
        to_date=to_date,
        skip=skip,
        limit=limit,
        sort=sort,
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_track(
    db: AsyncSession,
    user_id: UUID,
    track_id: UUID,
    data: TrackUpdate,
    validator: TrackValidator,
) -> Track | None:
    """
    Update the name and/or date of a track.

    Returns None if the track does not exist or belongs to another user.

    Raises:
        TrackValidationError: If the new name is not admissible with the track's
            existing payload. The track is left unchanged.
    """
    track = await get_track(db, user_id, track_id)
    if track is None:
        return None

    updates = data.model_dump(exclude_unset=True)
    if "track_name" in updates:
        updates["track_name"] = validator.validate(updates["track_name"], track.data)

    async with db.begin_nested():
        for field, value in updates.items():
            setattr(track, field, value)
        await db.flush()

    await db.refresh(track)
    return track


async def delete_track(db: AsyncSession, user_id: UUID, track_id: UUID) -> bool:
    """Delete a track. Returns False if it was not found for this user."""
    track = await get_track(db, user_id, track_id)
    if track is None:
        return False
    await db.delete(track)
    await db.flush()
    logger.info(
        "track_deleted",
        extra={"user_id": str(user_id), "track_id": str(track_id)},
    )
    return True


def build_last_track_query(user_id: UUID) -> Select[tuple[Track]]:
    """
    Select the user's most recently created track, locked for deletion.

    The lock waits for concurrent writers instead of skipping their rows, so a
    track being updated elsewhere is still the one picked.
    """
    return (
        select(Track)
        .where(Track.user_id == user_id)
        .order_by(Track.created_at.desc(), Track.id.desc())
        .limit(1)
        .with_for_update()
    )


async def delete_last_track(db: AsyncSession, user_id: UUID) -> Track | None:
    """
    Delete the user's most recently created track.

    Ordering is by insertion time, not by the event `date`. Returns the deleted
    track, or None when the user has no tracks.
    """
    result = await db.execute(build_last_track_query(user_id))
    track = result.scalar_one_or_none()
    if track is None:
        return None

    await db.execute(delete(Track).where(Track.id == track.id))
    logger.info(
        "track_deleted",
        extra={"user_id": str(user_id), "track_id": str(track.id)},
    )
    return track
