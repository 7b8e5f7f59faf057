"""
db/models/analysis_job.py

Analysis job model: the persisted state machine driven by the job dispatcher.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONPayload, TimestampMixin, UTCDateTime, utc_now


class AnalysisJobType:
    SERP_ANALYSIS = "serp_analysis"
    SITEMAP_FETCH = "sitemap_fetch"
    PAGE_EXTRACTION = "page_extraction"
    AI_REPORT = "ai_report"
    INITIAL_ANALYSIS = "initial_analysis"

    ALL = (SERP_ANALYSIS, SITEMAP_FETCH, PAGE_EXTRACTION, AI_REPORT, INITIAL_ANALYSIS)


class AnalysisJobStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    ACTIVE = (PENDING, RUNNING)
    TERMINAL = (COMPLETED, FAILED, CANCELLED)
    ALL = (PENDING, RUNNING, COMPLETED, FAILED, CANCELLED)


class AnalysisJob(Base, TimestampMixin):
    __tablename__ = "analysis_jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
    )
    job_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="serp_analysis, sitemap_fetch, page_extraction, ai_report, initial_analysis",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        nullable=False,
        comment="Tagged payload, discriminated by its type field",
    )
    target_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Logical target used to detect duplicate active jobs",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=AnalysisJobStatus.PENDING,
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    scheduled_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
    started_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    result: Mapped[dict[str, Any] | None] = mapped_column(
        JSONPayload,
        nullable=True,
        comment="Handler result data",
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("attempts <= max_attempts", name="ck_analysis_jobs_attempts_bounded"),
        Index("ix_analysis_jobs_due", "status", "scheduled_at"),
        Index("ix_analysis_jobs_priority", "priority"),
        Index(
            "ix_analysis_jobs_dedup",
            "website_id",
            "job_type",
            "target_key",
            "status",
        ),
        Index("ix_analysis_jobs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AnalysisJob id={self.id} type={self.job_type!r} "
            f"status={self.status!r} attempts={self.attempts}/{self.max_attempts}>"
        )
