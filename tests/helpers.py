"""Shared helpers for tests (plain functions, not fixtures)."""
from typing import Any

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from schemas.user import UserCreate
from services import user_service

TEST_PASSWORD = "correct-horse"

# Constant for non-existent entity ID
FAKE_UUID = "00000000-0000-0000-0000-000000000000"


async def make_user(
    db_session: AsyncSession,
    email: str = "user@example.com",
    user_name: str = "Test User",
    password: str = TEST_PASSWORD,
) -> tuple[User, str]:
    """Create a user through the service. Returns (user, plaintext_access_token)."""
    return await user_service.create_user(
        db_session,
        UserCreate(
            user_name=user_name,
            email=email,
            password=password,
            confirm_password=password,
        ),
    )


async def login(
    client: AsyncClient,
    email: str = "user@example.com",
    password: str = TEST_PASSWORD,
    **extra: Any,
) -> None:
    """Log the client in; the session cookie is kept in the client's cookie jar."""
    response = await client.post(
        "/auth/login-local",
        json={"email": email, "password": password, **extra},
    )
    assert response.status_code == 200, response.text
