"""Opaque token generation and hashing (access tokens, reset codes, session ids)."""
import hashlib
import secrets

# token_urlsafe(n) yields ceil(4n / 3) characters without padding
ACCESS_TOKEN_BYTES = 16  # 22 characters
PASSWORD_RESET_CODE_BYTES = 32  # 43 characters
SESSION_ID_BYTES = 32  # 43 characters


def generate_token(num_bytes: int) -> tuple[str, str]:
    """
    Generate a secure random token.

    Returns:
        Tuple of (plaintext_token, token_hash).
        The plaintext should only be shown once; store the hash.
    """
    plaintext = secrets.token_urlsafe(num_bytes)
    return plaintext, hash_token(plaintext)


def generate_access_token() -> tuple[str, str]:
    """Generate a webhook access token."""
    return generate_token(ACCESS_TOKEN_BYTES)


def generate_password_reset_code() -> tuple[str, str]:
    """Generate a password reset code."""
    return generate_token(PASSWORD_RESET_CODE_BYTES)


def generate_session_id() -> tuple[str, str]:
    """Generate a login session id."""
    return generate_token(SESSION_ID_BYTES)


def hash_token(token: str) -> str:
    """
    Hash a token for comparison against stored hashes.

    Lookups always go through the hash, so response time does not depend on
    how much of a guessed plaintext matches.
    """
    return hashlib.sha256(token.encode()).hexdigest()
