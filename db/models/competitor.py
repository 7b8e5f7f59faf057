"""
db/models/competitor.py

Competitor tracked against a website, created manually or auto-discovered
from SERP results.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from db.models.organization import Website


class Competitor(Base, TimestampMixin):
    """
    The website aggregate owns its competitor set. Rows are soft-disabled via
    is_active and never deleted by the job engine.
    """

    __tablename__ = "competitors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sitemap_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    last_sitemap_fetch: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    website: Mapped["Website"] = relationship("Website", back_populates="competitors")

    __table_args__ = (
        Index("ix_competitors_website_id", "website_id"),
        Index("ix_competitors_website_active", "website_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Competitor id={self.id} url={self.url!r}>"
