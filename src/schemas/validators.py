"""
Shared validation functions for Pydantic schemas.

Each function trims/normalizes its input and raises ValueError with a message
that is echoed back to the client as a 400 response.
"""
from core.config import get_settings

USER_NAME_MIN_LENGTH = 2
USER_NAME_MAX_LENGTH = 50
EMAIL_MIN_LENGTH = 5
EMAIL_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 4
PASSWORD_MAX_LENGTH = 100


def _check_length(field: str, value: str, min_length: int, max_length: int) -> str:
    if len(value) < min_length:
        raise ValueError(f"{field} must be at least {min_length} characters long.")
    if len(value) > max_length:
        raise ValueError(f"{field} must be at most {max_length} characters long.")
    return value


def validate_user_name(value: str) -> str:
    """Trim and bound a display name."""
    return _check_length(
        "userName", value.strip(), USER_NAME_MIN_LENGTH, USER_NAME_MAX_LENGTH,
    )


def normalize_email(value: object) -> object:
    """
    Trim and lowercase an email before shape validation.

    Runs as a `before` validator, so non-string input is returned untouched and
    rejected by the field type afterwards.
    """
    if not isinstance(value, str):
        return value
    normalized = value.strip().lower()
    return _check_length("email", normalized, EMAIL_MIN_LENGTH, EMAIL_MAX_LENGTH)


def validate_password(value: str) -> str:
    """Trim and bound a plaintext password (checked before hashing)."""
    return _check_length(
        "password", value.strip(), PASSWORD_MIN_LENGTH, PASSWORD_MAX_LENGTH,
    )


def validate_track_name_length(value: str) -> str:
    """
    Trim a track name and check it is non-empty and within the configured bound.

    Policy-specific checks (registry membership) happen in the track validator.
    """
    max_length = get_settings().max_track_name_length
    trimmed = value.strip()
    if not trimmed:
        raise ValueError("trackName must be a non-empty string.")
    if len(trimmed) > max_length:
        raise ValueError(
            f"trackName exceeds maximum length of {max_length} characters "
            f"(got {len(trimmed)} characters).",
        )
    return trimmed
