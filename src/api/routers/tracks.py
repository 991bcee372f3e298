"""Track endpoints: session-authenticated CRUD plus access-token webhooks."""
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    enforce_rate_limit,
    ensure_authenticated,
    get_async_session,
    get_validator,
)
from models.user import User
from schemas.track import (
    TrackCreate,
    TrackDelete,
    TrackImport,
    TrackResponse,
    TrackUpdate,
    WebhookAuth,
    WebhookTrackCreate,
    ensure_aware,
)
from services import track_service, user_service
from services.exceptions import TrackValidationError
from services.track_validation import TrackValidator

router = APIRouter(
    prefix="/tracks",
    tags=["tracks"],
    dependencies=[Depends(enforce_rate_limit)],
)


async def _get_webhook_user(db: AsyncSession, access_token: str) -> User:
    user = await user_service.get_user_by_access_token(db, access_token)
    if user is None:
        raise HTTPException(status_code=404, detail="No user found for this access token")
    return user


@router.post("", response_model=TrackResponse, status_code=201)
async def create_track(
    data: TrackCreate,
    current_user: User = Depends(ensure_authenticated),
    db: AsyncSession = Depends(get_async_session),
    validator: TrackValidator = Depends(get_validator),
) -> TrackResponse:
    """Log a new track. `date` defaults to now."""
    try:
        track = await track_service.create_track(db, current_user.id, data, validator)
    except TrackValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TrackResponse.model_validate(track)


@router.get("", response_model=list[TrackResponse])
async def list_tracks(
    track_name: str | None = Query(default=None, alias="trackName", description="Exact track name"),  # noqa: E501
    from_date: datetime | None = Query(default=None, alias="fromDate", description="Inclusive lower bound on date"),  # noqa: E501
    to_date: datetime | None = Query(default=None, alias="toDate", description="Inclusive upper bound on date"),  # noqa: E501
    skip: str | None = Query(default=None, description="Rows to skip; ignored unless a non-negative integer"),  # noqa: E501
    limit: str | None = Query(default=None, description="Max rows; ignored unless a positive integer"),  # noqa: E501
    sort: str | None = Query(default=None, description="date, createdAt, updatedAt or trackName; prefix '-' for descending"),  # noqa: E501
    current_user: User = Depends(ensure_authenticated),
    db: AsyncSession = Depends(get_async_session),
) -> list[TrackResponse]:
    """
    List the current user's tracks.

    No match is an empty list, not an error.
    """
    tracks = await track_service.list_tracks(
        db,
        current_user.id,
        track_name=track_name,
        from_date=ensure_aware(from_date),
        to_date=ensure_aware(to_date),
        skip=skip,
        limit=limit,
        sort=sort,
    )
    return [TrackResponse.model_validate(t) for t in tracks]


@router.delete("/last", status_code=204)
async def delete_last_track(
    current_user: User = Depends(ensure_authenticated),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete the current user's most recently created track, if any."""
    await track_service.delete_last_track(db, current_user.id)


@router.post("/import", response_model=list[TrackResponse], status_code=201)
async def import_tracks(
    data: TrackImport,
    current_user: User = Depends(ensure_authenticated),
    db: AsyncSession = Depends(get_async_session),
    validator: TrackValidator = Depends(get_validator),
) -> list[TrackResponse]:
    """Import many tracks. If any is rejected, none are stored."""
    try:
        tracks = await track_service.create_tracks_bulk(
            db, current_user.id, data.tracks, validator,
        )
    except TrackValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [TrackResponse.model_validate(t) for t in tracks]


@router.post("/webhook", response_model=TrackResponse, status_code=201)
async def create_track_webhook(
    data: WebhookTrackCreate,
    db: AsyncSession = Depends(get_async_session),
    validator: TrackValidator = Depends(get_validator),
) -> TrackResponse:
    """
    Log a track on behalf of the access token's owner.

    **Authentication: access token in the body (no session)**

    `timeOffset` (milliseconds, may be negative) shifts the date relative to now.
    """
    user = await _get_webhook_user(db, data.access_token)
    try:
        date = track_service.resolve_time_offset(data.time_offset)
        track = await track_service.create_track(
            db,
            user.id,
            TrackCreate(track_name=data.track_name, date=date, data=data.data),
            validator,
        )
    except TrackValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TrackResponse.model_validate(track)


@router.delete("/webhook", status_code=204)
async def delete_last_track_webhook(
    data: WebhookAuth,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """
    Delete the most recently created track of the access token's owner.

    **Authentication: access token in the body (no session)**
    """
    user = await _get_webhook_user(db, data.access_token)
    await track_service.delete_last_track(db, user.id)


@router.get("/{track_id}", response_model=TrackResponse)
async def get_track(
    track_id: UUID,
    current_user: User = Depends(ensure_authenticated),
    db: AsyncSession = Depends(get_async_session),
) -> TrackResponse:
    """Get a single track."""
    track = await track_service.get_track(db, current_user.id, track_id)
    if track is None:
        raise HTTPException(status_code=404, detail="Track not found")
    return TrackResponse.model_validate(track)


@router.patch("/{track_id}", response_model=TrackResponse)
async def update_track(
    track_id: UUID,
    data: TrackUpdate,
    current_user: User = Depends(ensure_authenticated),
    db: AsyncSession = Depends(get_async_session),
    validator: TrackValidator = Depends(get_validator),
) -> TrackResponse:
    """Change the name and/or date of a track."""
    try:
        track = await track_service.update_track(
            db, current_user.id, track_id, data, validator,
        )
    except TrackValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if track is None:
        raise HTTPException(status_code=404, detail="Track not found")
    return TrackResponse.model_validate(track)


@router.delete("/{track_id}", status_code=204)
async def delete_track(
    track_id: UUID,
    _data: TrackDelete,
    current_user: User = Depends(ensure_authenticated),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a track. The body must confirm the deletion."""
    deleted = await track_service.delete_track(db, current_user.id, track_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Track not found")
