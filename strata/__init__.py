"""Strata - versioned page trees with live and dev URL resolution."""

from strata.core import (
    FILE_NOT_FOUND_KIND,
    MemoryPageStorage,
    Mode,
    Page,
    PagePart,
    PageState,
    PartSet,
    PendingState,
    Status,
    StorageError,
    ValidationError,
    Version,
)

__all__ = [
    "FILE_NOT_FOUND_KIND",
    "MemoryPageStorage",
    "Mode",
    "Page",
    "PagePart",
    "PageState",
    "PartSet",
    "PendingState",
    "Status",
    "StorageError",
    "ValidationError",
    "Version",
]
