"""
db/models/serp_result.py

Position samples: one row per (owner, query) observation. The owner is the
website itself when competitor_id is NULL, or that competitor otherwise.
search_query_id links a self sample to its tracked query when one exists.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class SerpResult(Base, TimestampMixin):
    __tablename__ = "serp_results"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
    )
    search_query_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("search_queries.id", ondelete="CASCADE"),
        nullable=True,
    )
    competitor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("competitors.id", ondelete="CASCADE"),
        nullable=True,
    )
    query: Mapped[str] = mapped_column(String(500), nullable=False)
    position: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="NULL means not ranked in the fetched results",
    )
    url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    snippet: Mapped[str | None] = mapped_column(Text, nullable=True)
    search_engine: Mapped[str] = mapped_column(String(32), nullable=False, default="google")
    country: Mapped[str] = mapped_column(String(8), nullable=False, default="FR")
    device: Mapped[str] = mapped_column(String(16), nullable=False, default="desktop")
    raw_data_blob_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    __table_args__ = (
        Index("ix_serp_results_website_id", "website_id"),
        Index("ix_serp_results_search_query_created", "search_query_id", "created_at"),
        Index("ix_serp_results_competitor_created", "competitor_id", "created_at"),
    )
