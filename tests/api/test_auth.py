"""Tests for login session endpoints."""
from datetime import UTC, datetime, timedelta

from httpx import AsyncClient
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from models.user import User
from models.user_session import UserSession
from tests.helpers import TEST_PASSWORD, login, make_user


async def test__login_local__success(client: AsyncClient, test_user: tuple[User, str]) -> None:
    """Login returns the user and sets an HttpOnly session cookie."""
    user, _ = test_user

    response = await client.post(
        "/auth/login-local", json={"email": user.email, "password": TEST_PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["auth"] is True
    assert data["user"]["email"] == user.email
    assert "passwordHash" not in data["user"]
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{get_settings().session_cookie_name}=")
    assert "HttpOnly" in set_cookie
    assert "Max-Age" not in set_cookie


async def test__login_local__stay_logged_in_sets_max_age(
    client: AsyncClient, test_user: tuple[User, str],
) -> None:
    """stayLoggedIn makes the cookie persistent."""
    user, _ = test_user

    response = await client.post(
        "/auth/login-local",
        json={"email": user.email, "password": TEST_PASSWORD, "stayLoggedIn": "true"},
    )

    assert response.status_code == 200
    assert f"Max-Age={get_settings().session_max_age_seconds}" in response.headers["set-cookie"]


async def test__login_local__invalid_credentials(
    client: AsyncClient, test_user: tuple[User, str],
) -> None:
    """Wrong password and unknown email are 401."""
    user, _ = test_user

    response = await client.post(
        "/auth/login-local", json={"email": user.email, "password": "wrong-password"},
    )
    assert response.status_code == 401

    response = await client.post(
        "/auth/login-local", json={"email": "nobody@example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 401


async def test__login_local__missing_fields(client: AsyncClient) -> None:
    """Missing email or password is a 400."""
    response = await client.post("/auth/login-local", json={"email": "user@example.com"})
    assert response.status_code == 400


async def test__is_authenticated(client: AsyncClient, test_user: tuple[User, str]) -> None:
    """401 before login, 200 after, 401 again after logout."""
    assert (await client.get("/auth/is-authenticated")).status_code == 401

    await login(client, test_user[0].email)
    response = await client.get("/auth/is-authenticated")
    assert response.status_code == 200
    assert response.json() == {"authenticated": True}

    response = await client.post("/auth/logout")
    assert response.status_code == 200
    assert (await client.get("/auth/is-authenticated")).status_code == 401


async def test__logout__revokes_server_side(
    client: AsyncClient, test_user: tuple[User, str],
) -> None:
    """A copied cookie stops working once the session is logged out."""
    await login(client, test_user[0].email)
    cookie_name = get_settings().session_cookie_name
    stolen = client.cookies.get(cookie_name)

    await client.post("/auth/logout")
    client.cookies.set(cookie_name, stolen)

    assert (await client.get("/auth/is-authenticated")).status_code == 401


async def test__tampered_cookie(client: AsyncClient, test_user: tuple[User, str]) -> None:
    """A modified cookie is not accepted."""
    await login(client, test_user[0].email)
    cookie_name = get_settings().session_cookie_name
    value = client.cookies.get(cookie_name)
    client.cookies.clear()
    client.cookies.set(cookie_name, value[:-2] + "xx")

    assert (await client.get("/auth/is-authenticated")).status_code == 401


async def test__logout__without_session(client: AsyncClient) -> None:
    """Logging out when not logged in is harmless."""
    assert (await client.post("/auth/logout")).status_code == 200


async def test__login_local__purges_own_expired_sessions(
    client: AsyncClient, db_session: AsyncSession, test_user: tuple[User, str],
) -> None:
    """Logging in removes the user's lapsed sessions but not other users'."""
    user, _ = test_user
    other, _ = await make_user(db_session, email="other@example.com")
    await login(client, user.email)
    client.cookies.clear()
    await login(client, other.email)
    client.cookies.clear()
    await db_session.execute(
        update(UserSession).values(expires_at=datetime.now(UTC) - timedelta(minutes=1)),
    )

    await login(client, user.email)

    result = await db_session.execute(select(UserSession.user_id))
    owners = sorted(str(owner) for owner in result.scalars())
    assert owners == sorted([str(user.id), str(other.id)])
