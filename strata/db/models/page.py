from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from advanced_alchemy.types import DateTimeUTC, JsonB
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.db.base import Base

if TYPE_CHECKING:
    from strata.db.models.page_version import PageVersionRecord


class PageRecord(Base):
    """A node in the page tree with its denormalized live-visible state."""

    __tablename__ = "pages"

    # Tree linkage (null only for a tree root)
    parent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"), nullable=True, index=True
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False, default="page", server_default="page", index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Live-visible fields, only overwritten by non-draft saves
    live_slug: Mapped[str] = mapped_column(String(100), nullable=False, default="", server_default="")
    live_title: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    # Null until the first non-draft save
    live_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    live_parts: Mapped[list] = mapped_column(JsonB, nullable=False, default=list)
    live_sequence_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    live_saved_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)

    versions: Mapped[list["PageVersionRecord"]] = relationship(
        "PageVersionRecord",
        back_populates="page",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PageVersionRecord.sequence_number",
        lazy="selectin",
    )
