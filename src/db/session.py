"""Async SQLAlchemy session factory."""
import asyncio
import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import get_settings

logger = logging.getLogger(__name__)


class DatabaseUnavailableError(RuntimeError):
    """The database did not answer within the startup retry budget."""

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: services use flush() for refreshing objects,
    commit happens once here at request end. This ensures atomic transactions
    per request - if anything fails, all changes are rolled back.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_database() -> bool:
    """Return True if the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        return False
    return True


async def wait_for_database(max_attempts: int, retry_interval: float) -> None:
    """
    Block until the database is reachable.

    Tries `max_attempts` times with a fixed `retry_interval` (seconds) between
    attempts.

    Raises:
        DatabaseUnavailableError: Once the attempts are exhausted. Raised from
            the lifespan, it aborts startup and the server exits non-zero.
    """
    for attempt in range(1, max_attempts + 1):
        logger.info("Attempting database connection (%d/%d)", attempt, max_attempts)
        if await ping_database():
            logger.info("Connected to database")
            return
        logger.error("Database connection attempt %d failed", attempt)
        if attempt < max_attempts:
            await asyncio.sleep(retry_interval)

    logger.error(
        "Failed to connect to database after %d attempts. Shutting down.", max_attempts,
    )
    raise DatabaseUnavailableError(
        f"Database unreachable after {max_attempts} attempts",
    )
