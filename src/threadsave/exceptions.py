"""Exceptions raised by checkpoint savers."""

from __future__ import annotations


class CheckpointerError(Exception):
    """Base class for saver errors. Backend errors are not wrapped."""


class InvalidConfigError(CheckpointerError, ValueError):
    """A call was made without the config fields it requires.

    Raised before any statement is sent to the backend.

    Attributes:
        field: Name of the missing field, or None when the whole config is missing.
    """

    def __init__(self, field: str | None = None, message: str | None = None) -> None:
        self.field = field
        if message is None:
            message = "Empty configuration supplied." if field is None else f'Missing "{field}" field in passed config.'
        super().__init__(message)


class SerializationError(CheckpointerError):
    """A value could not be encoded or decoded consistently."""


class UnsupportedPayloadError(SerializationError, TypeError):
    """A stored payload has a shape no decoder recognises."""

    def __init__(self, value: object) -> None:
        self.shape = type(value).__name__
        super().__init__(f"Unsupported BLOB shape: {self.shape}")


class CleanupError(CheckpointerError):
    """Retention cleanup failed. The backend error is chained as ``__cause__``."""
