"""
db/models/analysis.py

Outputs of the page extraction and AI report jobs.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONPayload, TimestampMixin


class PageAnalysis(Base, TimestampMixin):
    __tablename__ = "page_analyses"

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
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    headings: Mapped[dict[str, list[str]] | None] = mapped_column(JSONPayload, nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    html_blob_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    __table_args__ = (
        Index("ix_page_analyses_website_id", "website_id"),
        Index("ix_page_analyses_competitor_id", "competitor_id"),
    )


class AIReportType:
    PERIODIC_RECAP = "periodic_recap"
    INITIAL_ANALYSIS = "initial_analysis"


class AIReport(Base, TimestampMixin):
    __tablename__ = "ai_reports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
    )
    report_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSONPayload, nullable=True)

    __table_args__ = (Index("ix_ai_reports_website_type", "website_id", "report_type"),)
