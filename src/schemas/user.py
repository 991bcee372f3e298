"""Pydantic schemas for user endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, StrictBool, StrictStr, field_validator, model_validator

from schemas.base import CamelModel
from schemas.validators import normalize_email, validate_password, validate_user_name


class UserCreate(CamelModel):
    """Sign-up payload."""

    user_name: StrictStr
    email: EmailStr
    password: StrictStr
    confirm_password: StrictStr

    @field_validator("user_name")
    @classmethod
    def check_user_name(cls, v: str) -> str:
        """Trim and bound the display name."""
        return validate_user_name(v)

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: object) -> object:
        """Trim, lowercase and bound the email before shape validation."""
        return normalize_email(v)

    @field_validator("password", "confirm_password")
    @classmethod
    def check_password(cls, v: str) -> str:
        """Trim and bound the password."""
        return validate_password(v)

    @model_validator(mode="after")
    def check_passwords_match(self) -> "UserCreate":
        """Reject sign-ups where the confirmation differs."""
        if self.password != self.confirm_password:
            raise ValueError("password and confirmPassword do not match.")
        return self


class UserResponse(CamelModel):
    """Public representation of a user. Never carries secrets."""

    id: UUID
    user_name: str
    email: str
    sign_up_date: datetime


class UserCredentials(CamelModel):
    """Email + password pair used to authorize account operations."""

    email: EmailStr
    password: StrictStr

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: object) -> object:
        """Trim and lowercase the email."""
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def strip_password(cls, v: str) -> str:
        """Passwords are stored trimmed, so compare trimmed."""
        return v.strip()


class AccessTokenResponse(CamelModel):
    """Freshly generated access token. Shown once; only its hash is stored."""

    access_token: str


class UserDelete(UserCredentials):
    """Account deletion payload."""

    confirm_deletion: StrictBool

    @field_validator("confirm_deletion")
    @classmethod
    def check_confirmed(cls, v: bool) -> bool:
        """Deletion must be explicitly confirmed."""
        if not v:
            raise ValueError("confirmDeletion must be true.")
        return v


class PasswordResetEmailRequest(CamelModel):
    """Request a password reset code for an email address."""

    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: object) -> object:
        """Trim and lowercase the email."""
        return normalize_email(v)


class PasswordReset(CamelModel):
    """Redeem a password reset code."""

    password_reset_code: StrictStr
    new_password: StrictStr
    confirm_new_password: StrictStr

    @field_validator("password_reset_code")
    @classmethod
    def check_code(cls, v: str) -> str:
        """Reset code must be a non-empty string."""
        if not v.strip():
            raise ValueError("passwordResetCode must be a non-empty string.")
        return v.strip()

    @field_validator("new_password", "confirm_new_password")
    @classmethod
    def check_password(cls, v: str) -> str:
        """Trim and bound the new password."""
        return validate_password(v)

    @model_validator(mode="after")
    def check_passwords_match(self) -> "PasswordReset":
        """Reject resets where the confirmation differs."""
        if self.new_password != self.confirm_new_password:
            raise ValueError("newPassword and confirmNewPassword do not match.")
        return self


class MessageResponse(CamelModel):
    """Plain acknowledgement."""

    message: str
