"""
db/models/sitemap_snapshot.py

Immutable, timestamped captures of a sitemap URL set.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Float, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONPayload, UTCDateTime, utc_now


class SitemapSnapshot(Base):
    """
    competitor_id is NULL for the website's own sitemap.
    """

    __tablename__ = "sitemap_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
    )
    competitor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("competitors.id", ondelete="CASCADE"),
        nullable=True,
    )
    sitemap_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    blob_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    url_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sitemap_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="single",
        comment="single or index",
    )
    fetched_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSONPayload, nullable=True)

    urls: Mapped[list["SitemapUrl"]] = relationship(
        "SitemapUrl",
        back_populates="snapshot",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_sitemap_snapshots_website_fetched", "website_id", "fetched_at"),
        Index("ix_sitemap_snapshots_competitor_fetched", "competitor_id", "fetched_at"),
    )


class SitemapUrl(Base):
    __tablename__ = "sitemap_urls"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    snapshot_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sitemap_snapshots.id", ondelete="CASCADE"),
        nullable=False,
    )
    ordinal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    lastmod: Mapped[str | None] = mapped_column(String(64), nullable=True)
    changefreq: Mapped[str | None] = mapped_column(String(32), nullable=True)
    priority: Mapped[float | None] = mapped_column(Float, nullable=True)

    snapshot: Mapped[SitemapSnapshot] = relationship("SitemapSnapshot", back_populates="urls")

    __table_args__ = (Index("ix_sitemap_urls_snapshot_id", "snapshot_id"),)
