"""Page version model: one immutable row per save."""

from datetime import datetime, UTC
from typing import TYPE_CHECKING
from uuid import UUID

from advanced_alchemy.types import DateTimeUTC, JsonB
from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.db.base import Base

if TYPE_CHECKING:
    from strata.db.models.page import PageRecord


class PageVersionRecord(Base):
    """Snapshot of a page's slug, title, status and parts at one save."""

    __tablename__ = "page_versions"

    page_id: Mapped[UUID] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    page: Mapped["PageRecord"] = relationship("PageRecord", back_populates="versions")

    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)

    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[int] = mapped_column(Integer, nullable=False)
    parts: Mapped[list] = mapped_column(JsonB, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTimeUTC(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        UniqueConstraint("page_id", "sequence_number", name="uq_page_versions_page_id_sequence_number"),
    )
