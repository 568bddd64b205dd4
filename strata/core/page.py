"""The page entity: version history plus the denormalized live state."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Iterable
from uuid import UUID, uuid4

from strata.core.errors import ValidationError
from strata.core.parts import PartSet
from strata.core.status import Mode, Status
from strata.core.version import PAGE_KIND, PageState, PendingState, Version
from strata.lib.observability import span

if TYPE_CHECKING:
    from strata.core.storage import PageStorage

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 100
TITLE_MAX_LENGTH = 255
SLUG_PATTERN = re.compile(r"^[-_.A-Za-z0-9]+$")
ROOT_SLUG = "/"


@dataclass(frozen=True)
class SavePlan:
    """What a save will write: the new version and, unless drafting, the new live state."""

    version: Version
    live: PageState | None

    @property
    def promotes_live(self) -> bool:
        return self.live is not None

    def renumbered(self, version: Version) -> SavePlan:
        """Adopt the version the storage actually committed."""
        live = None
        if self.live is not None:
            live = replace(self.live, sequence_number=version.sequence_number, saved_at=version.created_at)
        return SavePlan(version=version, live=live)


class Page:
    """An addressable node in the page tree.

    ``slug``, ``title``, ``status`` and ``parts`` are the transient editing
    fields: callers may change them and call :meth:`save` without arguments.
    The live state only changes when a non-draft save succeeds.
    """

    def __init__(
        self,
        slug: str = "",
        title: str = "",
        status: Status | int | str = Status.DRAFT,
        parts: Any = (),
        *,
        id: UUID | None = None,
        parent_id: UUID | None = None,
        kind: str = PAGE_KIND,
        position: int = 0,
        live: PageState | None = None,
        versions: Iterable[Version] = (),
    ) -> None:
        self.id = id or uuid4()
        self.parent_id = parent_id
        self.kind = kind
        self.position = position
        self.versions: list[Version] = sorted(versions, key=lambda v: v.sequence_number)
        self.slug = slug
        self.title = title
        self.status = Status.parse(status)
        self.parts = PartSet.coerce(parts)
        if self.versions:
            self._adopt(self.versions[-1].to_pending())
        self._live = live if live is not None else PageState.never_published(self.id, kind)

    def __repr__(self) -> str:
        return f"<Page {self.id} slug={self.slug!r} versions={len(self.versions)}>"

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def has_versions(self) -> bool:
        return bool(self.versions)

    @property
    def latest_version(self) -> Version | None:
        return self.versions[-1] if self.versions else None

    @property
    def live_state(self) -> PageState:
        return self._live

    @property
    def live_slug(self) -> str:
        return self._live.slug

    @property
    def live_title(self) -> str:
        return self._live.title

    @property
    def live_status(self) -> Status | None:
        return self._live.status

    @property
    def live_parts(self) -> PartSet:
        return self._live.parts

    def pending(self) -> PendingState:
        """The transient fields as a save request."""
        return PendingState(slug=self.slug, title=self.title, status=self.status, parts=self.parts)

    def current(self, mode: Mode | str) -> PageState:
        """The state ``mode`` considers authoritative right now."""
        if Mode(mode) is Mode.LIVE:
            return self._live
        if self.versions:
            return PageState.from_version(self.id, self.versions[-1], self.kind)
        return PageState(
            page_id=self.id,
            slug=self.slug,
            title=self.title,
            status=self.status,
            parts=self.parts,
            kind=self.kind,
        )

    def plan_save(self, pending: PendingState | None = None, now: datetime | None = None) -> SavePlan:
        """Validate a save and build what it would write, without mutating anything."""
        pending = pending if pending is not None else self.pending()
        self.validate(pending)

        sequence_number = self.versions[-1].sequence_number + 1 if self.versions else 1
        version = Version(
            sequence_number=sequence_number,
            slug=pending.slug,
            title=pending.title,
            status=pending.status,
            parts=pending.parts,
            created_at=now or datetime.now(UTC),
        )
        live = PageState.from_version(self.id, version, self.kind) if version.status.promotes_live else None
        return SavePlan(version=version, live=live)

    def validate(self, pending: PendingState) -> None:
        slug = pending.slug
        if not isinstance(slug, str) or not slug.strip():
            raise ValidationError("Slug is required", field="slug")
        if len(slug) > SLUG_MAX_LENGTH:
            raise ValidationError(f"Slug exceeds {SLUG_MAX_LENGTH} characters", field="slug")
        if not SLUG_PATTERN.match(slug) and not (self.is_root and slug == ROOT_SLUG):
            raise ValidationError(f"Invalid slug: {slug!r}", field="slug")
        if not isinstance(pending.title, str):
            raise ValidationError("Title must be a string", field="title")
        if len(pending.title) > TITLE_MAX_LENGTH:
            raise ValidationError(f"Title exceeds {TITLE_MAX_LENGTH} characters", field="title")

    async def save(self, pending: PendingState | None = None, storage: PageStorage | None = None) -> Version:
        """Append a version and, unless saving a draft, promote it to the live state.

        Raises ValidationError before touching anything. A StorageError from
        ``storage`` propagates with this object left as it was.
        """
        with span("page.save", page_id=str(self.id)):
            plan = self.plan_save(pending)
            if storage is not None:
                committed = await storage.persist_page(self, plan)
                plan = plan.renumbered(committed)
            self.apply(plan)

        logger.debug(
            "Saved page %s version %d (%s)",
            self.id,
            plan.version.sequence_number,
            plan.version.status.name.lower(),
        )
        return plan.version

    def apply(self, plan: SavePlan) -> None:
        """Record a committed save on this object."""
        self.versions.append(plan.version)
        if plan.live is not None:
            self._live = plan.live
        self._adopt(plan.version.to_pending())

    async def current_children(self, storage: PageStorage, mode: Mode | str) -> list[Page]:
        """Direct children visible in ``mode``; dev listings include drafts."""
        children = await storage.load_children(self.id)
        return [child for child in children if child.current(mode).is_visible(mode)]

    def _adopt(self, pending: PendingState) -> None:
        self.slug = pending.slug
        self.title = pending.title
        self.status = pending.status
        self.parts = pending.parts
