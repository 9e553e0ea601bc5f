"""Errors raised by the paste and account stores.

This module provides:
- PasteNotFound: a paste is missing or has expired
- PasswordRequired / PasswordIncorrect: the paste password gate refused access
- Forbidden: the requester does not own the paste
- ValidationError and its registration subclasses: user input was rejected
- InvalidCredentials: login failed, without saying why
- HashingFailed / PersistenceFailed: opaque server-side failures
"""


class PasteNotFound(LookupError):
    """A paste was not found or has expired."""


class PasswordRequired(PermissionError):
    """The paste is password protected and no password was supplied."""


class PasswordIncorrect(PermissionError):
    """The supplied paste password did not match."""


class Forbidden(PermissionError):
    """The requester is not allowed to touch this paste."""


class ValidationError(ValueError):
    """User input was rejected. ``str(error)`` is safe to show to the user."""

    message = "Invalid input"

    def __init__(self, message=None):
        super().__init__(message or self.message)


class UsernameTooShort(ValidationError):
    message = "Username must be at least 3 characters"


class PasswordTooShort(ValidationError):
    message = "Password must be at least 6 characters"


class PasswordMismatch(ValidationError):
    message = "Passwords do not match"


class UsernameTaken(ValidationError):
    message = "Username already taken"


class InvalidCredentials(ValueError):
    """Unknown username or wrong password. Deliberately indistinguishable."""

    def __init__(self):
        super().__init__("Invalid username or password")


class HashingFailed(RuntimeError):
    """bcrypt refused to hash a secret."""


class PersistenceFailed(RuntimeError):
    """The database rejected a write or could not be reached."""
