"""Liveness, readiness and health endpoints."""
import logging
import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import enforce_rate_limit, get_async_session
from schemas.base import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/service",
    tags=["service"],
    dependencies=[Depends(enforce_rate_limit)],
)

STARTED_AT = time.monotonic()


class HealthResponse(CamelModel):
    """Health check response."""

    database_connected: bool
    timestamp: datetime
    uptime: float  # seconds since the process started


async def _database_connected(db: AsyncSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.exception("Database health check failed")
        await db.rollback()
        return False
    return True


@router.get("/livez", response_class=PlainTextResponse)
async def livez() -> str:
    """The process is up."""
    return "OK"


@router.get("/readyz", response_class=PlainTextResponse)
async def readyz(db: AsyncSession = Depends(get_async_session)) -> PlainTextResponse:
    """The process can serve traffic: the database answers."""
    if not await _database_connected(db):
        return PlainTextResponse("Service Unavailable", status_code=503)
    return PlainTextResponse("OK")


@router.get("/healthcheck", response_model=HealthResponse)
async def healthcheck(db: AsyncSession = Depends(get_async_session)) -> HealthResponse:
    """Report database connectivity and uptime."""
    return HealthResponse(
        database_connected=await _database_connected(db),
        timestamp=datetime.now(UTC),
        uptime=time.monotonic() - STARTED_AT,
    )
