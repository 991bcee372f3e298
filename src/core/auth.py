"""Session cookie authentication for private routes."""
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User
from services import session_service


async def get_current_session_user(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """
    Dependency that resolves the session cookie to a user, if any.

    Missing, tampered, unknown or expired cookies all yield None.
    """
    cookie_value = request.cookies.get(settings.session_cookie_name)
    return await session_service.get_session_user(db, cookie_value, settings)


async def ensure_authenticated(
    user: User | None = Depends(get_current_session_user),
) -> User:
    """Dependency gating private routes: 401 unless there is a valid session."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user
