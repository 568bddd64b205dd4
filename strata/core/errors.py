"""Exceptions raised by the page core and its storage backends."""


class StrataError(Exception):
    """Base class for all Strata errors."""


class ValidationError(StrataError, ValueError):
    """A save or move request was rejected before anything was mutated."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class StorageError(StrataError):
    """The storage backend failed to commit a change."""
