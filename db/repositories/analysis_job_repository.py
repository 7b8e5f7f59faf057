"""
Repository for analysis job lifecycle persistence.

Every status transition out of an active state is a conditional UPDATE so two
overlapping dispatcher passes, or a force-cancel racing a running handler,
never clobber each other.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from db.models.analysis_job import AnalysisJob, AnalysisJobStatus

FORCE_CANCEL_MESSAGE = "Cancelled by user (force mode)"


class AnalysisJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        website_id: uuid.UUID,
        job_type: str,
        payload: dict[str, Any],
        target_key: str,
        priority: int,
        scheduled_at: datetime,
        max_attempts: int = 3,
    ) -> AnalysisJob:
        job = AnalysisJob(
            website_id=website_id,
            job_type=job_type,
            payload=payload,
            target_key=target_key,
            status=AnalysisJobStatus.PENDING,
            priority=priority,
            attempts=0,
            max_attempts=max_attempts,
            scheduled_at=scheduled_at,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> AnalysisJob | None:
        return self._session.get(AnalysisJob, job_id, populate_existing=True)

    def list_jobs(
        self,
        *,
        limit: int = 100,
        website_id: uuid.UUID | None = None,
        job_type: str | None = None,
        status: str | None = None,
    ) -> list[AnalysisJob]:
        stmt: Select[tuple[AnalysisJob]] = select(AnalysisJob)

        if website_id:
            stmt = stmt.where(AnalysisJob.website_id == website_id)
        if job_type:
            stmt = stmt.where(AnalysisJob.job_type == job_type)
        if status:
            stmt = stmt.where(AnalysisJob.status == status)

        stmt = stmt.order_by(AnalysisJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def find_active(
        self,
        *,
        website_id: uuid.UUID,
        job_type: str,
        target_key: str,
    ) -> list[AnalysisJob]:
        """Pending or running jobs for the same logical target, oldest first."""
        stmt = (
            select(AnalysisJob)
            .where(
                AnalysisJob.website_id == website_id,
                AnalysisJob.job_type == job_type,
                AnalysisJob.target_key == target_key,
                AnalysisJob.status.in_(AnalysisJobStatus.ACTIVE),
            )
            .order_by(AnalysisJob.created_at.asc())
        )
        return list(self._session.scalars(stmt).all())

    def cancel_jobs(
        self,
        *,
        job_ids: list[uuid.UUID],
        now: datetime,
        error: str = FORCE_CANCEL_MESSAGE,
    ) -> int:
        if not job_ids:
            return 0
        result = self._session.execute(
            update(AnalysisJob)
            .where(
                AnalysisJob.id.in_(job_ids),
                AnalysisJob.status.in_(AnalysisJobStatus.ACTIVE),
            )
            .values(
                status=AnalysisJobStatus.CANCELLED,
                error=error,
                completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def list_due(self, *, now: datetime, limit: int) -> list[AnalysisJob]:
        stmt = (
            select(AnalysisJob)
            .where(
                AnalysisJob.status == AnalysisJobStatus.PENDING,
                AnalysisJob.scheduled_at <= now,
                AnalysisJob.attempts < AnalysisJob.max_attempts,
            )
            .order_by(AnalysisJob.priority.desc(), AnalysisJob.scheduled_at.asc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def mark_running(self, *, job_id: uuid.UUID, now: datetime) -> AnalysisJob | None:
        """
        Claim a pending job. Returns None when another caller claimed it first,
        it was cancelled, or it has no attempts left.
        """

        result = self._session.execute(
            update(AnalysisJob)
            .where(
                AnalysisJob.id == job_id,
                AnalysisJob.status == AnalysisJobStatus.PENDING,
                AnalysisJob.attempts < AnalysisJob.max_attempts,
            )
            .values(
                status=AnalysisJobStatus.RUNNING,
                started_at=now,
                attempts=AnalysisJob.attempts + 1,
                error=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return self.get_job(job_id)

    def mark_terminal(
        self,
        *,
        job_id: uuid.UUID,
        success: bool,
        now: datetime,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> bool:
        values: dict[str, Any] = {
            "status": AnalysisJobStatus.COMPLETED if success else AnalysisJobStatus.FAILED,
            "completed_at": now,
            "updated_at": now,
            "error": None if success else error,
        }
        if result is not None:
            values["result"] = result
        outcome = self._session.execute(
            update(AnalysisJob)
            .where(
                AnalysisJob.id == job_id,
                AnalysisJob.status == AnalysisJobStatus.RUNNING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return outcome.rowcount == 1

    def requeue(
        self,
        *,
        job_id: uuid.UUID,
        scheduled_at: datetime,
        error: str,
        now: datetime,
    ) -> bool:
        outcome = self._session.execute(
            update(AnalysisJob)
            .where(
                AnalysisJob.id == job_id,
                AnalysisJob.status == AnalysisJobStatus.RUNNING,
            )
            .values(
                status=AnalysisJobStatus.PENDING,
                scheduled_at=scheduled_at,
                completed_at=None,
                error=error,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return outcome.rowcount == 1

    def is_cancelled(self, job_id: uuid.UUID) -> bool:
        status = self._session.scalar(
            select(AnalysisJob.status).where(AnalysisJob.id == job_id)
        )
        return status == AnalysisJobStatus.CANCELLED

    def last_completed_at(
        self,
        *,
        website_id: uuid.UUID,
        job_type: str,
    ) -> datetime | None:
        return self._session.scalar(
            select(func.max(AnalysisJob.completed_at)).where(
                AnalysisJob.website_id == website_id,
                AnalysisJob.job_type == job_type,
                AnalysisJob.status == AnalysisJobStatus.COMPLETED,
            )
        )
