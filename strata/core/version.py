"""Immutable page snapshots and the read model returned to callers."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from strata.core.errors import ValidationError
from strata.core.parts import PartSet
from strata.core.status import Mode, Status

PAGE_KIND = "page"
FILE_NOT_FOUND_KIND = "file_not_found"


@dataclass(frozen=True)
class PendingState:
    """The slug, title, status and parts a caller asks to save."""

    slug: str
    title: str = ""
    status: Status = Status.DRAFT
    parts: PartSet = field(default_factory=PartSet)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", Status.parse(self.status))
        object.__setattr__(self, "parts", PartSet.coerce(self.parts))

    def replace(self, **changes: Any) -> "PendingState":
        """Return a copy with the given fields changed, skipping None values."""
        values = {
            "slug": self.slug,
            "title": self.title,
            "status": self.status,
            "parts": self.parts,
        }
        values.update({key: value for key, value in changes.items() if value is not None})
        return PendingState(**values)


@dataclass(frozen=True)
class Version:
    """A snapshot of a page's full state at one save.

    Versions are never mutated. A correction is a new version.
    """

    sequence_number: int
    slug: str
    title: str
    status: Status
    parts: PartSet
    created_at: datetime

    def __post_init__(self) -> None:
        if self.sequence_number < 1:
            raise ValidationError("Sequence numbers start at 1", field="sequence_number")
        if not self.slug:
            raise ValidationError("Slug is required", field="slug")
        object.__setattr__(self, "status", Status.parse(self.status))
        object.__setattr__(self, "parts", PartSet.coerce(self.parts))

    def content_equals(self, other: "Version | PendingState | PageState") -> bool:
        """Compare slug, title, status and parts, ignoring numbering and timestamps."""
        return (
            self.slug == other.slug
            and self.title == other.title
            and self.status == other.status
            and self.parts == other.parts
        )

    def to_pending(self) -> PendingState:
        return PendingState(slug=self.slug, title=self.title, status=self.status, parts=self.parts)


@dataclass(frozen=True)
class PageState:
    """The state of a page as one mode sees it.

    ``status`` is None for a page that has never been published; such a
    state is never visible and its empty slug never matches a path segment.
    """

    page_id: UUID
    slug: str
    title: str
    status: Status | None
    parts: PartSet = field(default_factory=PartSet)
    sequence_number: int | None = None
    saved_at: datetime | None = None
    kind: str = PAGE_KIND

    @classmethod
    def never_published(cls, page_id: UUID, kind: str = PAGE_KIND) -> "PageState":
        return cls(page_id=page_id, slug="", title="", status=None, kind=kind)

    @classmethod
    def from_version(cls, page_id: UUID, version: Version, kind: str = PAGE_KIND) -> "PageState":
        return cls(
            page_id=page_id,
            slug=version.slug,
            title=version.title,
            status=version.status,
            parts=version.parts,
            sequence_number=version.sequence_number,
            saved_at=version.created_at,
            kind=kind,
        )

    @property
    def is_never_published(self) -> bool:
        return self.status is None

    def is_visible(self, mode: Mode | str) -> bool:
        return self.status is not None and self.status.is_visible(mode)

    def content_equals(self, other: "Version | PendingState | PageState") -> bool:
        return (
            self.slug == other.slug
            and self.title == other.title
            and self.status == other.status
            and self.parts == other.parts
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_id": str(self.page_id),
            "slug": self.slug,
            "title": self.title,
            "status": self.status.name.lower() if self.status is not None else None,
            "parts": self.parts.to_list(),
            "sequence_number": self.sequence_number,
            "saved_at": self.saved_at.isoformat() if self.saved_at else None,
            "kind": self.kind,
        }
