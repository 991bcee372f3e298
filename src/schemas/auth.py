"""Pydantic schemas for session (login/logout) endpoints."""
from pydantic import StrictBool, StrictStr

from schemas.base import CamelModel
from schemas.user import UserResponse


class LoginRequest(CamelModel):
    """
    Local-strategy login payload.

    Email shape is not validated here: an unknown or malformed email is an
    authentication failure (401), not a client input error.
    """

    email: StrictStr
    password: StrictStr
    stay_logged_in: StrictBool | StrictStr | None = None

    @property
    def wants_persistent_session(self) -> bool:
        """Accept both `true` and `"true"` for stayLoggedIn."""
        return self.stay_logged_in is True or self.stay_logged_in == "true"


class LoginResponse(CamelModel):
    """Successful login."""

    auth: bool
    user: UserResponse


class AuthStatusResponse(CamelModel):
    """Result of the is-authenticated check."""

    authenticated: bool
