"""Login session endpoints (local email + password strategy)."""
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    enforce_rate_limit,
    ensure_authenticated,
    get_async_session,
    get_settings,
)
from core.config import Settings
from models.user import User
from schemas.auth import AuthStatusResponse, LoginRequest, LoginResponse
from schemas.user import MessageResponse, UserResponse
from services import session_service, user_service
from services.exceptions import InvalidCredentialsError

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    dependencies=[Depends(enforce_rate_limit)],
)


def _set_session_cookie(
    response: Response, value: str, persistent: bool, settings: Settings,
) -> None:
    # Without max_age the cookie lasts until the browser is closed
    response.set_cookie(
        key=settings.session_cookie_name,
        value=value,
        max_age=settings.session_max_age_seconds if persistent else None,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


@router.post("/login-local", response_model=LoginResponse)
async def login_local(
    data: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """
    Log in with email and password.

    Sets the session cookie. `stayLoggedIn` makes the cookie outlive the browser.
    """
    try:
        user = await user_service.authenticate(db, data.email, data.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e

    # A fresh id on every login; any session the browser already had is dropped
    await session_service.delete_session(
        db, request.cookies.get(settings.session_cookie_name), settings,
    )
    await session_service.purge_expired_sessions(db, user_id=user.id)
    persistent = data.wants_persistent_session
    cookie_value = await session_service.create_session(db, user.id, persistent, settings)
    _set_session_cookie(response, cookie_value, persistent, settings)

    return LoginResponse(auth=True, user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """End the current session (if any) and clear the cookie."""
    await session_service.delete_session(
        db, request.cookies.get(settings.session_cookie_name), settings,
    )
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return MessageResponse(message="Logged out.")


@router.get("/is-authenticated", response_model=AuthStatusResponse)
async def is_authenticated(
    _current_user: User = Depends(ensure_authenticated),
) -> AuthStatusResponse:
    """Probe whether the session cookie is valid (401 otherwise)."""
    return AuthStatusResponse(authenticated=True)
