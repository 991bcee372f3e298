"""Shared exceptions for service layer operations."""


class EmailAlreadyRegisteredError(Exception):
    """Raised when signing up with an email that belongs to another user."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"A user with the email '{email}' already exists.")


class InvalidCredentialsError(Exception):
    """Raised by the local login strategy when email or password do not match."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class InvalidPasswordResetCodeError(Exception):
    """Raised when a reset code is unknown, already redeemed or superseded."""

    def __init__(self) -> None:
        super().__init__("Password reset code is not valid.")


class TrackValidationError(Exception):
    """
    Raised when a track name or payload is not admissible under the active policy.

    Raised before any mutation, so nothing is persisted.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class UniqueValueGenerationError(Exception):
    """Raised when a random unique value keeps colliding (should never happen in practice)."""

    def __init__(self, field: str, attempts: int) -> None:
        self.field = field
        self.attempts = attempts
        super().__init__(f"Could not generate a unique {field} after {attempts} attempts")
