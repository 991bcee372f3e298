"""Service layer for user lifecycle and credential operations."""
import logging
from collections.abc import Callable
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.track import Track
from models.user import User
from models.user_session import UserSession
from schemas.user import UserCreate
from services import token_service
from services.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidPasswordResetCodeError,
    UniqueValueGenerationError,
)
from services.password_service import hash_password, verify_password

logger = logging.getLogger(__name__)

# Random 128+ bit values practically never collide; the bound only guards
# against a broken random source looping forever.
MAX_UNIQUE_ATTEMPTS = 5


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User | None:
    """Get a user by primary key."""
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get a user by (normalized) email."""
    result = await db.execute(
        select(User).where(User.email == email.strip().lower()),
    )
    return result.scalar_one_or_none()


async def get_user_by_access_token(db: AsyncSession, access_token: str) -> User | None:
    """
    Resolve a webhook access token to its user.

    Hashes the input before lookup; the plaintext is never stored.
    """
    result = await db.execute(
        select(User).where(User.access_token_hash == token_service.hash_token(access_token)),
    )
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, data: UserCreate) -> tuple[User, str]:
    """
    Create a user with a hashed password and a fresh access token.

    Email uniqueness is enforced by the `uq_users_email` constraint rather than a
    pre-check, so concurrent sign-ups with the same email cannot both succeed.

    Args:
        db: Database session.
        data: Validated sign-up data (trimmed, lowercased email, matching passwords).

    Returns:
        Tuple of (User, plaintext_access_token).

    Raises:
        EmailAlreadyRegisteredError: If the email belongs to another user.
        UniqueValueGenerationError: If no unique access token could be generated.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    password_hash = await hash_password(data.password)

    for _ in range(MAX_UNIQUE_ATTEMPTS):
        plaintext, token_hash = token_service.generate_access_token()
        user = User(
            user_name=data.user_name,
            email=data.email,
            password_hash=password_hash,
            access_token_hash=token_hash,
        )
        try:
            async with db.begin_nested():  # Savepoint - parent transaction survives
                db.add(user)
                await db.flush()
        except IntegrityError as e:
            if "uq_users_email" in str(e):
                raise EmailAlreadyRegisteredError(data.email) from e
            if "uq_users_access_token" in str(e):
                logger.warning("access_token_collision")
                continue
            raise
        await db.refresh(user)
        logger.info("user_created", extra={"user_id": str(user.id)})
        return user, plaintext

    raise UniqueValueGenerationError("access token", MAX_UNIQUE_ATTEMPTS)


async def compare_password(user: User, candidate: str) -> bool:
    """Return True iff `candidate` matches the user's stored password hash."""
    return await verify_password(candidate, user.password_hash)


async def _assign_unique_hash(
    db: AsyncSession,
    user: User,
    attribute: str,
    constraint: str,
    generate: Callable[[], tuple[str, str]],
) -> str:
    """
    Store the hash of a newly generated token on `user`, regenerating on collision.

    Returns the plaintext token.
    """
    for _ in range(MAX_UNIQUE_ATTEMPTS):
        plaintext, token_hash = generate()
        try:
            async with db.begin_nested():
                setattr(user, attribute, token_hash)
                await db.flush()
        except IntegrityError as e:
            if constraint not in str(e):
                raise
            logger.warning("unique_value_collision", extra={"field": attribute})
            continue
        await db.refresh(user)
        return plaintext

    raise UniqueValueGenerationError(attribute, MAX_UNIQUE_ATTEMPTS)


async def generate_access_token(db: AsyncSession, user: User) -> str:
    """
    Replace the user's access token with a new one and return the plaintext.

    The previous token stops working immediately.
    """
    plaintext = await _assign_unique_hash(
        db,
        user,
        "access_token_hash",
        "uq_users_access_token",
        token_service.generate_access_token,
    )
    logger.info("access_token_regenerated", extra={"user_id": str(user.id)})
    return plaintext


async def generate_password_reset_code(db: AsyncSession, user: User) -> str:
    """
    Issue a password reset code for the user and return the plaintext.

    Issuing a new code supersedes any outstanding one.
    """
    plaintext = await _assign_unique_hash(
        db,
        user,
        "password_reset_code_hash",
        "uq_users_password_reset_code",
        token_service.generate_password_reset_code,
    )
    logger.info("password_reset_code_issued", extra={"user_id": str(user.id)})
    return plaintext


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """
    Local strategy: resolve email + password to a user.

    Raises:
        InvalidCredentialsError: If no user has the email or the password is wrong.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        raise InvalidCredentialsError(
            f"A user with the email {email.strip().lower()} was not found. "
            "Please check spelling or sign up",
        )
    if not await compare_password(user, password.strip()):
        raise InvalidCredentialsError("Invalid credentials")
    return user


async def reset_password(db: AsyncSession, code: str, new_password: str) -> UUID:
    """
    Redeem a password reset code.

    The password change, the clearing of the code and the revocation of the
    user's sessions happen in one savepoint. The update is conditional on the
    code hash, so a code can be redeemed at most once even under concurrency.

    Returns:
        The id of the user whose password was reset.

    Raises:
        InvalidPasswordResetCodeError: If no user holds the code.
    """
    code_hash = token_service.hash_token(code)
    new_hash = await hash_password(new_password)

    async with db.begin_nested():
        result = await db.execute(
            update(User)
            .where(User.password_reset_code_hash == code_hash)
            .values(password_hash=new_hash, password_reset_code_hash=None)
            .returning(User.id)
            .execution_options(synchronize_session="fetch"),
        )
        user_id = result.scalar_one_or_none()
        if user_id is None:
            raise InvalidPasswordResetCodeError()
        await db.execute(delete(UserSession).where(UserSession.user_id == user_id))

    logger.info("password_reset", extra={"user_id": str(user_id)})
    return user_id


async def delete_user_and_all_associated_data(db: AsyncSession, user: User) -> int:
    """
    Atomically delete a user together with all of their tracks and sessions.

    Runs inside a savepoint: either everything is removed or nothing is. Errors
    are propagated, never swallowed, since a partial cascade would leave orphans.

    Returns:
        Number of tracks deleted.
    """
    user_id = user.id
    async with db.begin_nested():
        result = await db.execute(delete(Track).where(Track.user_id == user_id))
        tracks_deleted = result.rowcount
        await db.execute(delete(UserSession).where(UserSession.user_id == user_id))
        await db.delete(user)
        await db.flush()

    logger.info(
        "user_deleted",
        extra={"user_id": str(user_id), "tracks_deleted": tracks_deleted},
    )
    return tracks_deleted
