"""
Server-side login sessions.

The browser holds a cookie with the session id signed by itsdangerous; the
database holds only the SHA-256 hash of the id. A session is valid while its
row exists and has not expired. Deleting the row is a logout.
"""
import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from itsdangerous import BadSignature, URLSafeSerializer
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from models.user import User
from models.user_session import UserSession
from services import token_service

logger = logging.getLogger(__name__)

SESSION_SALT = "tracker-session"


def _serializer(settings: Settings) -> URLSafeSerializer:
    return URLSafeSerializer(secret_key=settings.session_secret, salt=SESSION_SALT)


def sign_session_id(session_id: str, settings: Settings) -> str:
    """Produce the cookie value for a session id."""
    return _serializer(settings).dumps(session_id)


def unsign_session_id(cookie_value: str, settings: Settings) -> str | None:
    """Return the session id carried by a cookie, or None if it was tampered with."""
    try:
        session_id = _serializer(settings).loads(cookie_value)
    except BadSignature:
        return None
    return session_id if isinstance(session_id, str) else None


async def create_session(
    db: AsyncSession,
    user_id: UUID,
    persistent: bool,
    settings: Settings,
) -> str:
    """
    Open a session for a user.

    Returns:
        The signed cookie value.
    """
    session_id, token_hash = token_service.generate_session_id()
    db.add(UserSession(
        user_id=user_id,
        token_hash=token_hash,
        persistent=persistent,
        expires_at=datetime.now(UTC) + timedelta(days=settings.session_expiry_days),
    ))
    await db.flush()
    logger.info(
        "session_created",
        extra={"user_id": str(user_id), "persistent": persistent},
    )
    return sign_session_id(session_id, settings)


async def get_session_user(
    db: AsyncSession,
    cookie_value: str | None,
    settings: Settings,
) -> User | None:
    """Resolve a session cookie to its user. Unknown, tampered or expired: None."""
    if not cookie_value:
        return None
    session_id = unsign_session_id(cookie_value, settings)
    if session_id is None:
        logger.warning("session_cookie_invalid_signature")
        return None

    result = await db.execute(
        select(User)
        .join(UserSession, UserSession.user_id == User.id)
        .where(
            UserSession.token_hash == token_service.hash_token(session_id),
            UserSession.expires_at > datetime.now(UTC),
        ),
    )
    return result.scalar_one_or_none()


async def delete_session(
    db: AsyncSession,
    cookie_value: str | None,
    settings: Settings,
) -> bool:
    """Remove the session behind a cookie. Returns False if there was none."""
    if not cookie_value:
        return False
    session_id = unsign_session_id(cookie_value, settings)
    if session_id is None:
        return False
    result = await db.execute(
        delete(UserSession).where(
            UserSession.token_hash == token_service.hash_token(session_id),
        ),
    )
    return result.rowcount > 0


async def purge_expired_sessions(
    db: AsyncSession,
    now: datetime | None = None,
    user_id: UUID | None = None,
) -> int:
    """
    Delete sessions whose `expires_at` has passed.

    Browser-lifetime sessions have a server-side expiry too, so this also
    removes sessions whose cookie was discarded without logging out.

    Args:
        db: Database session.
        now: Cutoff time. Defaults to datetime.now(UTC).
        user_id: Only purge this user's sessions when given.

    Returns:
        Number of sessions deleted.
    """
    if now is None:
        now = datetime.now(UTC)
    stmt = delete(UserSession).where(UserSession.expires_at <= now)
    if user_id is not None:
        stmt = stmt.where(UserSession.user_id == user_id)
    result = await db.execute(stmt)
    if result.rowcount:
        logger.info(
            "sessions_purged",
            extra={"count": result.rowcount, "user_id": str(user_id) if user_id else None},
        )
    return result.rowcount
