from strata.core.errors import StorageError, StrataError, ValidationError
from strata.core.page import Page, SavePlan
from strata.core.parts import PagePart, PartSet
from strata.core.resolver import Resolution, find_by_url, resolve, split_path
from strata.core.status import Mode, Status
from strata.core.storage import MemoryPageStorage, PageStorage
from strata.core.version import FILE_NOT_FOUND_KIND, PAGE_KIND, PageState, PendingState, Version

__all__ = [
    "FILE_NOT_FOUND_KIND",
    "MemoryPageStorage",
    "Mode",
    "PAGE_KIND",
    "Page",
    "PagePart",
    "PageState",
    "PageStorage",
    "PartSet",
    "PendingState",
    "Resolution",
    "SavePlan",
    "Status",
    "StorageError",
    "StrataError",
    "ValidationError",
    "Version",
    "find_by_url",
    "resolve",
    "split_path",
]
