"""Storage protocol used by pages and the resolver, plus an in-memory backend."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field, replace
from typing import Protocol, runtime_checkable
from uuid import UUID

from strata.core.errors import StorageError
from strata.core.page import Page, SavePlan
from strata.core.version import PageState, Version


@runtime_checkable
class PageStorage(Protocol):
    """Where pages and their version history live."""

    async def load_page(self, page_id: UUID) -> Page | None: ...

    async def load_children(self, parent_id: UUID) -> list[Page]: ...

    async def load_versions(self, page_id: UUID) -> list[Version]: ...

    async def persist_page(self, page: Page, plan: SavePlan) -> Version:
        """Write the page row, the new version and any live change atomically.

        Returns the committed version, numbered ``max + 1`` inside the
        transaction. Raises StorageError with nothing committed on failure.
        """
        ...

    async def set_parent(self, page_id: UUID, parent_id: UUID) -> None:
        """Point a page at a new parent.

        A raw write with no cycle check; ``page_service.move_page`` is the
        checked way to re-parent pages.
        """
        ...

    async def delete_page(self, page_id: UUID) -> bool:
        """Delete a page, its versions and all of its descendants."""
        ...


@dataclass
class _Record:
    id: UUID
    parent_id: UUID | None
    kind: str
    position: int
    created_order: int
    live: PageState
    versions: list[Version] = field(default_factory=list)


class MemoryPageStorage:
    """Dict-backed storage.

    Every load returns a fresh Page, the way a database session would, so
    callers never share mutable state through the store.
    """

    def __init__(self) -> None:
        self._records: dict[UUID, _Record] = {}
        self._lock = asyncio.Lock()
        self._counter = itertools.count()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._records

    async def load_page(self, page_id: UUID) -> Page | None:
        record = self._records.get(page_id)
        return self._to_page(record) if record else None

    async def load_children(self, parent_id: UUID) -> list[Page]:
        children = [r for r in self._records.values() if r.parent_id == parent_id]
        children.sort(key=lambda r: (r.position, r.created_order))
        return [self._to_page(r) for r in children]

    async def load_versions(self, page_id: UUID) -> list[Version]:
        record = self._records.get(page_id)
        return list(record.versions) if record else []

    async def persist_page(self, page: Page, plan: SavePlan) -> Version:
        async with self._lock:
            record = self._records.get(page.id)
            if record is None:
                if page.parent_id is not None and page.parent_id not in self._records:
                    raise StorageError(f"Parent page {page.parent_id} does not exist")
                record = _Record(
                    id=page.id,
                    parent_id=page.parent_id,
                    kind=page.kind,
                    position=page.position,
                    created_order=next(self._counter),
                    live=page.live_state,
                )

            last = record.versions[-1].sequence_number if record.versions else 0
            version = replace(plan.version, sequence_number=last + 1)
            committed = plan.renumbered(version)

            record.kind = page.kind
            record.position = page.position
            record.versions = [*record.versions, version]
            if committed.live is not None:
                record.live = committed.live
            self._records[page.id] = record
            return version

    async def set_parent(self, page_id: UUID, parent_id: UUID) -> None:
        async with self._lock:
            record = self._records.get(page_id)
            if record is None or parent_id not in self._records:
                raise StorageError(f"Cannot move page {page_id} under {parent_id}")
            record.parent_id = parent_id

    async def delete_page(self, page_id: UUID) -> bool:
        async with self._lock:
            if page_id not in self._records:
                return False
            doomed = [page_id]
            for current in doomed:
                doomed.extend(
                    r.id for r in self._records.values() if r.parent_id == current and r.id not in doomed
                )
            for doomed_id in doomed:
                del self._records[doomed_id]
            return True

    @staticmethod
    def _to_page(record: _Record) -> Page:
        return Page(
            id=record.id,
            parent_id=record.parent_id,
            kind=record.kind,
            position=record.position,
            live=record.live,
            versions=record.versions,
        )
