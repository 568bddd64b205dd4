"""SQLAlchemy-backed page storage."""

import logging
from dataclasses import replace
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from strata.core.errors import StorageError
from strata.core.page import Page, SavePlan
from strata.core.parts import PartSet
from strata.core.status import Status
from strata.core.version import PageState, Version
from strata.db.models import PageRecord, PageVersionRecord

logger = logging.getLogger(__name__)


class SQLAlchemyPageStorage:
    """Page storage on an async SQLAlchemy session.

    Every write commits its own transaction; on failure the session is
    rolled back and a StorageError raised.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def load_page(self, page_id: UUID) -> Page | None:
        result = await self.session.execute(
            select(PageRecord)
            .where(PageRecord.id == page_id)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        return record_to_page(record) if record else None

    async def load_children(self, parent_id: UUID) -> list[Page]:
        result = await self.session.execute(
            select(PageRecord)
            .where(PageRecord.parent_id == parent_id)
            .order_by(PageRecord.position.asc(), PageRecord.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return [record_to_page(record) for record in result.scalars().all()]

    async def load_versions(self, page_id: UUID) -> list[Version]:
        result = await self.session.execute(
            select(PageVersionRecord)
            .where(PageVersionRecord.page_id == page_id)
            .order_by(PageVersionRecord.sequence_number.asc())
        )
        return [record_to_version(record) for record in result.scalars().all()]

    async def persist_page(self, page: Page, plan: SavePlan) -> Version:
        try:
            record = await self.session.get(PageRecord, page.id)
            if record is None:
                if page.parent_id is not None and await self.session.get(PageRecord, page.parent_id) is None:
                    await self.session.rollback()
                    logger.warning("Failed to persist page %s: parent %s does not exist", page.id, page.parent_id)
                    raise StorageError(f"Parent page {page.parent_id} does not exist")
                record = PageRecord(
                    id=page.id,
                    parent_id=page.parent_id,
                    kind=page.kind,
                    position=page.position,
                    live_parts=[],
                )
                self.session.add(record)
                await self.session.flush()
            else:
                record.kind = page.kind
                record.position = page.position

            # Allocate inside the transaction so concurrent saves get consecutive numbers
            result = await self.session.execute(
                select(func.coalesce(func.max(PageVersionRecord.sequence_number), 0))
                .where(PageVersionRecord.page_id == page.id)
            )
            version = replace(plan.version, sequence_number=(result.scalar() or 0) + 1)
            committed = plan.renumbered(version)

            self.session.add(
                PageVersionRecord(
                    page_id=page.id,
                    sequence_number=version.sequence_number,
                    slug=version.slug,
                    title=version.title,
                    status=int(version.status),
                    parts=version.parts.to_list(),
                    created_at=version.created_at,
                )
            )
            if committed.live is not None:
                record.live_slug = committed.live.slug
                record.live_title = committed.live.title
                record.live_status = int(committed.live.status)
                record.live_parts = committed.live.parts.to_list()
                record.live_sequence_number = committed.live.sequence_number
                record.live_saved_at = committed.live.saved_at

            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.warning("Failed to persist page %s", page.id, exc_info=True)
            raise StorageError(f"Could not save page {page.id}") from exc

        return version

    async def set_parent(self, page_id: UUID, parent_id: UUID) -> None:
        try:
            await self.session.execute(
                update(PageRecord).where(PageRecord.id == page_id).values(parent_id=parent_id)
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError(f"Could not move page {page_id}") from exc

    async def delete_page(self, page_id: UUID) -> bool:
        try:
            exists = await self.session.execute(select(PageRecord.id).where(PageRecord.id == page_id))
            if exists.scalar_one_or_none() is None:
                return False

            doomed = [page_id]
            frontier = [page_id]
            while frontier:
                result = await self.session.execute(
                    select(PageRecord.id).where(PageRecord.parent_id.in_(frontier))
                )
                # Ids already collected mean the parent links loop back
                frontier = [child_id for child_id in result.scalars().all() if child_id not in doomed]
                doomed.extend(frontier)

            await self.session.execute(delete(PageVersionRecord).where(PageVersionRecord.page_id.in_(doomed)))
            await self.session.execute(delete(PageRecord).where(PageRecord.id.in_(doomed)))
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError(f"Could not delete page {page_id}") from exc

        # Drop deleted rows from the identity map
        self.session.expunge_all()
        return True


def record_to_version(record: PageVersionRecord) -> Version:
    return Version(
        sequence_number=record.sequence_number,
        slug=record.slug,
        title=record.title,
        status=Status(record.status),
        parts=PartSet.from_list(record.parts),
        created_at=record.created_at,
    )


def record_to_page(record: PageRecord) -> Page:
    live = None
    if record.live_status is not None:
        live = PageState(
            page_id=record.id,
            slug=record.live_slug,
            title=record.live_title,
            status=Status(record.live_status),
            parts=PartSet.from_list(record.live_parts),
            sequence_number=record.live_sequence_number,
            saved_at=record.live_saved_at,
            kind=record.kind,
        )
    # Rows without versions expose their raw live columns as the transient fields
    return Page(
        slug=record.live_slug,
        title=record.live_title,
        status=Status(record.live_status) if record.live_status is not None else Status.DRAFT,
        parts=PartSet.from_list(record.live_parts),
        id=record.id,
        parent_id=record.parent_id,
        kind=record.kind,
        position=record.position,
        live=live,
        versions=[record_to_version(v) for v in record.versions],
    )
