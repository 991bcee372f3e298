"""Tests for user service: credentials, tokens, password reset and cascade delete."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from models.track import Track
from models.user import User
from models.user_session import UserSession
from schemas.track import TrackCreate
from services import session_service, token_service, track_service, user_service
from services.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidPasswordResetCodeError,
)
from services.password_service import hash_password, verify_password
from services.track_validation import FreeFormTrackValidator
from tests.helpers import TEST_PASSWORD, make_user

VALIDATOR = FreeFormTrackValidator()


async def count(db_session: AsyncSession, model: type, user_id: object) -> int:
    """Number of rows of `model` owned by `user_id`."""
    result = await db_session.execute(
        select(func.count()).select_from(model).where(model.user_id == user_id),
    )
    return result.scalar_one()


class TestPasswordHashing:
    """bcrypt hashing."""

    async def test__hash_password__salted(self) -> None:
        """The same password hashes differently each time and never equals the plaintext."""
        first = await hash_password("secret")
        second = await hash_password("secret")
        assert first != second
        assert "secret" not in first
        assert await verify_password("secret", first)
        assert await verify_password("secret", second)

    async def test__verify_password__wrong_password(self) -> None:
        """A different password does not verify."""
        assert not await verify_password("other", await hash_password("secret"))

    async def test__verify_password__long_passwords_fully_compared(self) -> None:
        """Passwords differing only after byte 72 are distinguished."""
        base = "x" * 80
        password_hash = await hash_password(base + "a")
        assert not await verify_password(base + "b", password_hash)

    async def test__verify_password__malformed_hash(self) -> None:
        """A corrupt stored hash fails verification instead of raising."""
        assert not await verify_password("secret", "not-a-bcrypt-hash")


class TestCreateUser:
    """Sign-up."""

    async def test__create_user__stores_only_hashes(self, db_session: AsyncSession) -> None:
        """Password and access token are stored hashed."""
        user, access_token = await make_user(db_session)

        assert user.email == "user@example.com"
        assert user.password_hash != TEST_PASSWORD
        assert user.password_hash.startswith("$2")
        assert user.access_token_hash == token_service.hash_token(access_token)
        assert len(access_token) == 22
        assert user.password_reset_code_hash is None
        assert user.sign_up_date is not None

    async def test__create_user__duplicate_email(self, db_session: AsyncSession) -> None:
        """A second user with the same (normalized) email is rejected."""
        await make_user(db_session, email="dup@example.com")
        with pytest.raises(EmailAlreadyRegisteredError):
            await make_user(db_session, email="  DUP@example.com ")

        # The savepoint was rolled back; the session is still usable
        result = await db_session.execute(
            select(func.count()).select_from(User).where(User.email == "dup@example.com"),
        )
        assert result.scalar_one() == 1

    async def test__create_user__access_tokens_unique(self, db_session: AsyncSession) -> None:
        """100 users get 100 distinct tokens."""
        tokens = set()
        for i in range(100):
            _, access_token = await make_user(db_session, email=f"user{i}@example.com")
            tokens.add(access_token)
        assert len(tokens) == 100


class TestCredentials:
    """Password comparison and login."""

    async def test__compare_password(self, db_session: AsyncSession) -> None:
        """Only the registered password matches."""
        user, _ = await make_user(db_session)
        assert await user_service.compare_password(user, TEST_PASSWORD)
        assert not await user_service.compare_password(user, "wrong-password")

    async def test__authenticate__success(self, db_session: AsyncSession) -> None:
        """Email is matched case-insensitively."""
        user, _ = await make_user(db_session)
        found = await user_service.authenticate(db_session, " USER@example.com", TEST_PASSWORD)
        assert found.id == user.id

    async def test__authenticate__unknown_email(self, db_session: AsyncSession) -> None:
        """Unknown email fails."""
        with pytest.raises(InvalidCredentialsError, match="not found"):
            await user_service.authenticate(db_session, "nobody@example.com", "whatever")

    async def test__authenticate__wrong_password(self, db_session: AsyncSession) -> None:
        """Wrong password fails."""
        await make_user(db_session)
        with pytest.raises(InvalidCredentialsError, match="Invalid credentials"):
            await user_service.authenticate(db_session, "user@example.com", "wrong-password")


class TestAccessToken:
    """Access token regeneration."""

    async def test__generate_access_token__replaces_previous(
        self, db_session: AsyncSession,
    ) -> None:
        """The new token resolves to the user; the old one no longer does."""
        user, old_token = await make_user(db_session)
        new_token = await user_service.generate_access_token(db_session, user)

        assert new_token != old_token
        assert (await user_service.get_user_by_access_token(db_session, new_token)).id == user.id
        assert await user_service.get_user_by_access_token(db_session, old_token) is None


class TestPasswordReset:
    """Reset code state machine."""

    async def test__reset_password__success(self, db_session: AsyncSession) -> None:
        """The new password works, the old one does not, and the code is cleared."""
        user, _ = await make_user(db_session)
        code = await user_service.generate_password_reset_code(db_session, user)
        assert user.password_reset_code_hash == token_service.hash_token(code)

        user_id = await user_service.reset_password(db_session, code, "brand-new")
        assert user_id == user.id

        await db_session.refresh(user)
        assert user.password_reset_code_hash is None
        assert await user_service.compare_password(user, "brand-new")
        assert not await user_service.compare_password(user, TEST_PASSWORD)

    async def test__reset_password__code_single_use(self, db_session: AsyncSession) -> None:
        """Redeeming the same code twice fails the second time."""
        user, _ = await make_user(db_session)
        code = await user_service.generate_password_reset_code(db_session, user)
        await user_service.reset_password(db_session, code, "brand-new")

        with pytest.raises(InvalidPasswordResetCodeError):
            await user_service.reset_password(db_session, code, "another-one")

        await db_session.refresh(user)
        assert await user_service.compare_password(user, "brand-new")

    async def test__reset_password__new_code_supersedes_old(
        self, db_session: AsyncSession,
    ) -> None:
        """Only the latest issued code is valid."""
        user, _ = await make_user(db_session)
        first = await user_service.generate_password_reset_code(db_session, user)
        second = await user_service.generate_password_reset_code(db_session, user)

        with pytest.raises(InvalidPasswordResetCodeError):
            await user_service.reset_password(db_session, first, "brand-new")
        await user_service.reset_password(db_session, second, "brand-new")

    async def test__reset_password__unknown_code(self, db_session: AsyncSession) -> None:
        """A code nobody holds is rejected."""
        await make_user(db_session)
        with pytest.raises(InvalidPasswordResetCodeError):
            await user_service.reset_password(db_session, "made-up-code", "brand-new")

    async def test__reset_password__revokes_sessions(self, db_session: AsyncSession) -> None:
        """Existing logins stop working after a reset."""
        settings = get_settings()
        user, _ = await make_user(db_session)
        cookie = await session_service.create_session(db_session, user.id, True, settings)
        code = await user_service.generate_password_reset_code(db_session, user)

        await user_service.reset_password(db_session, code, "brand-new")

        assert await session_service.get_session_user(db_session, cookie, settings) is None


class TestDeleteUser:
    """Cascade delete."""

    async def test__delete_user__removes_everything_owned(
        self, db_session: AsyncSession,
    ) -> None:
        """Tracks and sessions of the user go; other users keep theirs."""
        settings = get_settings()
        user_a, _ = await make_user(db_session, email="a@example.com")
        user_b, _ = await make_user(db_session, email="b@example.com")
        for user in (user_a, user_b):
            for name in ("ONE", "TWO", "THREE"):
                await track_service.create_track(
                    db_session, user.id, TrackCreate(track_name=name), VALIDATOR,
                )
            await session_service.create_session(db_session, user.id, False, settings)
        user_a_id = user_a.id

        deleted = await user_service.delete_user_and_all_associated_data(db_session, user_a)

        assert deleted == 3
        assert await user_service.get_user_by_id(db_session, user_a_id) is None
        assert await count(db_session, Track, user_a_id) == 0
        assert await count(db_session, UserSession, user_a_id) == 0
        assert await count(db_session, Track, user_b.id) == 3
        assert await count(db_session, UserSession, user_b.id) == 1

    async def test__delete_user__without_tracks(self, db_session: AsyncSession) -> None:
        """A user with nothing attached is deleted and reports zero tracks."""
        user, _ = await make_user(db_session)
        assert await user_service.delete_user_and_all_associated_data(db_session, user) == 0

