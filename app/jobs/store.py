"""
app/jobs/store.py

Job store interface used by the queue, the dispatcher and the handlers, plus
its SQLAlchemy implementation. Each call is one short transaction.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.orm import Session

from app.jobs.errors import ConflictError, NotFoundError
from app.logging_utils import log_event
from db.models.analysis_job import AnalysisJob
from db.repositories.analysis_job_repository import AnalysisJobRepository
from db.repositories.website_repository import WebsiteRepository

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@dataclass(frozen=True)
class EnqueueResult:
    job: AnalysisJob
    cancelled_count: int = 0


def describe_job(job: AnalysisJob) -> dict[str, Any]:
    """Short descriptor carried by conflict errors and 409 responses."""
    return {
        "id": str(job.id),
        "job_type": job.job_type,
        "status": job.status,
        "created_at": job.created_at.isoformat() if job.created_at else None,
    }


class JobStore(Protocol):
    def enqueue(
        self,
        *,
        website_id: uuid.UUID,
        job_type: str,
        payload: dict[str, Any],
        target_key: str,
        priority: int,
        scheduled_at: datetime,
        max_attempts: int,
        force: bool,
        now: datetime,
    ) -> EnqueueResult: ...

    def get(self, job_id: uuid.UUID) -> AnalysisJob | None: ...

    def list_jobs(
        self,
        *,
        website_id: uuid.UUID | None = None,
        job_type: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[AnalysisJob]: ...

    def list_due(self, *, now: datetime, limit: int) -> list[AnalysisJob]: ...

    def mark_running(self, job_id: uuid.UUID, *, now: datetime) -> AnalysisJob | None: ...

    def mark_terminal(
        self,
        job_id: uuid.UUID,
        *,
        success: bool,
        now: datetime,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> bool: ...

    def requeue(
        self,
        job_id: uuid.UUID,
        *,
        scheduled_at: datetime,
        error: str,
        now: datetime,
    ) -> bool: ...

    def is_cancelled(self, job_id: uuid.UUID) -> bool: ...

    def last_completed_at(self, *, website_id: uuid.UUID, job_type: str) -> datetime | None: ...


class SQLAlchemyJobStore:
    """
    JobStore over AnalysisJobRepository. Sessions come from `session_factory`
    and never outlive a single method call.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def enqueue(
        self,
        *,
        website_id: uuid.UUID,
        job_type: str,
        payload: dict[str, Any],
        target_key: str,
        priority: int,
        scheduled_at: datetime,
        max_attempts: int,
        force: bool,
        now: datetime,
    ) -> EnqueueResult:
        with self._session_factory() as db, db.begin():
            if WebsiteRepository(db).get_website(website_id) is None:
                raise NotFoundError(f"Website '{website_id}' was not found.")

            repository = AnalysisJobRepository(db)
            active = repository.find_active(
                website_id=website_id,
                job_type=job_type,
                target_key=target_key,
            )
            cancelled = 0
            if active:
                if not force:
                    existing = describe_job(active[0])
                    raise ConflictError(
                        f"A {job_type} job is already {active[0].status} for this target.",
                        existing_job=existing,
                    )
                cancelled = repository.cancel_jobs(
                    job_ids=[job.id for job in active],
                    now=now,
                )
                log_event(
                    logger,
                    logging.INFO,
                    "job_force_cancelled",
                    website_id=website_id,
                    job_type=job_type,
                    target_key=target_key,
                    cancelled=cancelled,
                )

            job = repository.create_job(
                website_id=website_id,
                job_type=job_type,
                payload=payload,
                target_key=target_key,
                priority=priority,
                scheduled_at=scheduled_at,
                max_attempts=max_attempts,
            )
        return EnqueueResult(job=job, cancelled_count=cancelled)

    def get(self, job_id: uuid.UUID) -> AnalysisJob | None:
        with self._session_factory() as db:
            return AnalysisJobRepository(db).get_job(job_id)

    def list_jobs(
        self,
        *,
        website_id: uuid.UUID | None = None,
        job_type: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[AnalysisJob]:
        with self._session_factory() as db:
            return AnalysisJobRepository(db).list_jobs(
                website_id=website_id,
                job_type=job_type,
                status=status,
                limit=limit,
            )

    def list_due(self, *, now: datetime, limit: int) -> list[AnalysisJob]:
        with self._session_factory() as db:
            return AnalysisJobRepository(db).list_due(now=now, limit=limit)

    def mark_running(self, job_id: uuid.UUID, *, now: datetime) -> AnalysisJob | None:
        with self._session_factory() as db, db.begin():
            return AnalysisJobRepository(db).mark_running(job_id=job_id, now=now)

    def mark_terminal(
        self,
        job_id: uuid.UUID,
        *,
        success: bool,
        now: datetime,
        result: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> bool:
        with self._session_factory() as db, db.begin():
            return AnalysisJobRepository(db).mark_terminal(
                job_id=job_id,
                success=success,
                now=now,
                result=result,
                error=error,
            )

    def requeue(
        self,
        job_id: uuid.UUID,
        *,
        scheduled_at: datetime,
        error: str,
        now: datetime,
    ) -> bool:
        with self._session_factory() as db, db.begin():
            return AnalysisJobRepository(db).requeue(
                job_id=job_id,
                scheduled_at=scheduled_at,
                error=error,
                now=now,
            )

    def is_cancelled(self, job_id: uuid.UUID) -> bool:
        with self._session_factory() as db:
            return AnalysisJobRepository(db).is_cancelled(job_id)

    def last_completed_at(self, *, website_id: uuid.UUID, job_type: str) -> datetime | None:
        with self._session_factory() as db:
            return AnalysisJobRepository(db).last_completed_at(
                website_id=website_id,
                job_type=job_type,
            )
