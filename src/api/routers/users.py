"""User account endpoints: sign-up, access tokens, deletion and password reset."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import enforce_rate_limit, get_async_session
from models.user import User
from schemas.user import (
    AccessTokenResponse,
    MessageResponse,
    PasswordReset,
    PasswordResetEmailRequest,
    UserCreate,
    UserCredentials,
    UserDelete,
    UserResponse,
)
from services import mailer, user_service
from services.exceptions import EmailAlreadyRegisteredError, InvalidPasswordResetCodeError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(enforce_rate_limit)],
)

PASSWORD_RESET_REQUESTED_MESSAGE = (
    "If the email is registered, a password reset link has been sent to it."
)


async def _get_user_matching_email(
    db: AsyncSession, user_id: UUID, credentials: UserCredentials,
) -> User:
    """Load the user addressed by the path and check the body's email belongs to it."""
    user = await user_service.get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if user.email != credentials.email:
        raise HTTPException(
            status_code=400,
            detail="The email does not match the email of the user.",
        )
    return user


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """Sign up a new user."""
    try:
        user, _ = await user_service.create_user(db, data)
    except EmailAlreadyRegisteredError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return UserResponse.model_validate(user)


@router.get("/{user_id}/accessToken", response_model=AccessTokenResponse, status_code=201)
async def regenerate_access_token(
    user_id: UUID,
    credentials: UserCredentials,
    db: AsyncSession = Depends(get_async_session),
) -> AccessTokenResponse:
    """
    Issue a new webhook access token, invalidating the previous one.

    The token is returned once; only its hash is stored.
    """
    user = await _get_user_matching_email(db, user_id, credentials)
    if not await user_service.compare_password(user, credentials.password):
        raise HTTPException(status_code=400, detail="The password is not correct.")
    access_token = await user_service.generate_access_token(db, user)
    return AccessTokenResponse(access_token=access_token)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: UUID,
    data: UserDelete,
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a user together with all of their tracks and sessions."""
    user = await _get_user_matching_email(db, user_id, data)
    if not await user_service.compare_password(user, data.password):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The password is not correct.",
        )
    await user_service.delete_user_and_all_associated_data(db, user)


@router.post("/request-password-reset-email", response_model=MessageResponse)
async def request_password_reset_email(
    data: PasswordResetEmailRequest,
    db: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """
    Email a password reset link.

    The response is identical whether or not the email is registered.
    """
    user = await user_service.get_user_by_email(db, data.email)
    if user is None:
        await mailer.send_email_not_registered_email(data.email)
    else:
        code = await user_service.generate_password_reset_code(db, user)
        await mailer.send_password_reset_email(user.email, code)
    return MessageResponse(message=PASSWORD_RESET_REQUESTED_MESSAGE)


@router.patch("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: PasswordReset,
    db: AsyncSession = Depends(get_async_session),
) -> MessageResponse:
    """Redeem a password reset code. Existing login sessions are revoked."""
    try:
        await user_service.reset_password(db, data.password_reset_code, data.new_password)
    except InvalidPasswordResetCodeError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return MessageResponse(message="Password has been reset.")
