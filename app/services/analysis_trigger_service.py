"""
app/services/analysis_trigger_service.py

Manual triggers: resolve the target, then enqueue the matching job at manual
priority. Reads go through the request session, writes through the queue.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.jobs.errors import ConflictError, NotFoundError, ValidationError
from app.jobs.factory import build_job_queue
from app.jobs.payloads import (
    PRIORITY_MANUAL,
    AIReportPayload,
    InitialAnalysisPayload,
    SerpAnalysisPayload,
    SitemapFetchPayload,
)
from app.jobs.queue import JobQueue
from app.jobs.store import EnqueueResult
from db.models.analysis_job import AnalysisJob, AnalysisJobStatus, AnalysisJobType
from db.models.organization import SearchQuery
from db.repositories.analysis_job_repository import AnalysisJobRepository
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.website_repository import WebsiteRepository


@dataclass
class BatchTriggerResult:
    jobs: list[AnalysisJob] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)
    cancelled_count: int = 0


class AnalysisTriggerService:
    def __init__(self, queue: JobQueue) -> None:
        self._queue = queue

    def trigger_query_serp(
        self,
        *,
        db: Session,
        website_id: uuid.UUID,
        query_id: uuid.UUID,
        force: bool = False,
    ) -> EnqueueResult:
        self._require_website(db, website_id)
        search_query = WebsiteRepository(db).get_search_query(website_id, query_id)
        if search_query is None:
            raise NotFoundError(f"Search query '{query_id}' was not found.")
        return self._enqueue_query(website_id, search_query, force=force)

    def trigger_queries(
        self,
        *,
        db: Session,
        website_id: uuid.UUID,
        query_ids: list[uuid.UUID],
        force: bool = False,
    ) -> BatchTriggerResult:
        """
        Enqueue one SERP job per known query. Queries that already have an
        active job are reported as skipped; when every query is skipped the
        first conflict is raised.
        """

        self._require_website(db, website_id)
        queries = WebsiteRepository(db).list_search_queries(
            website_id,
            active_only=False,
            query_ids=list(dict.fromkeys(query_ids)),
        )
        if not queries:
            raise NotFoundError("None of the requested search queries belong to this website.")

        batch = BatchTriggerResult()
        first_conflict: ConflictError | None = None
        for search_query in queries:
            try:
                result = self._enqueue_query(website_id, search_query, force=force)
            except ConflictError as exc:
                first_conflict = first_conflict or exc
                batch.skipped.append(
                    {"query_id": search_query.id, "existing_job": exc.existing_job}
                )
                continue
            batch.jobs.append(result.job)
            batch.cancelled_count += result.cancelled_count

        if not batch.jobs and first_conflict is not None:
            raise first_conflict
        return batch

    def trigger_initial_analysis(
        self,
        *,
        db: Session,
        website_id: uuid.UUID,
        force: bool = False,
    ) -> EnqueueResult:
        self._require_website(db, website_id)
        return self._queue.enqueue(
            website_id=website_id,
            job_type=AnalysisJobType.INITIAL_ANALYSIS,
            payload=InitialAnalysisPayload(),
            priority=PRIORITY_MANUAL,
            force=force,
        )

    def trigger_sitemap(
        self,
        *,
        db: Session,
        website_id: uuid.UUID,
        competitor_id: uuid.UUID | None = None,
        sitemap_url: str | None = None,
        force: bool = False,
    ) -> EnqueueResult:
        self._require_website(db, website_id)
        if competitor_id is not None:
            competitor = CompetitorRepository(db).get_competitor(website_id, competitor_id)
            if competitor is None:
                raise NotFoundError(f"Competitor '{competitor_id}' was not found.")
        return self._queue.enqueue(
            website_id=website_id,
            job_type=AnalysisJobType.SITEMAP_FETCH,
            payload=SitemapFetchPayload(competitor_id=competitor_id, sitemap_url=sitemap_url),
            priority=PRIORITY_MANUAL,
            force=force,
        )

    def trigger_report(
        self,
        *,
        db: Session,
        website_id: uuid.UUID,
        period_days: int | None = None,
        force: bool = False,
    ) -> EnqueueResult:
        self._require_website(db, website_id)
        return self._queue.enqueue(
            website_id=website_id,
            job_type=AnalysisJobType.AI_REPORT,
            payload=AIReportPayload(period_days=period_days),
            priority=PRIORITY_MANUAL,
            force=force,
        )

    def get_job(self, *, db: Session, job_id: uuid.UUID) -> AnalysisJob:
        job = AnalysisJobRepository(db).get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job '{job_id}' was not found.")
        return job

    def list_jobs(
        self,
        *,
        db: Session,
        website_id: uuid.UUID | None = None,
        job_type: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> list[AnalysisJob]:
        if job_type is not None and job_type not in AnalysisJobType.ALL:
            raise ValidationError(f"Unknown job type '{job_type}'.")
        if status is not None and status not in AnalysisJobStatus.ALL:
            raise ValidationError(f"Unknown job status '{status}'.")
        return AnalysisJobRepository(db).list_jobs(
            limit=limit,
            website_id=website_id,
            job_type=job_type,
            status=status,
        )

    def _enqueue_query(
        self,
        website_id: uuid.UUID,
        search_query: SearchQuery,
        *,
        force: bool,
    ) -> EnqueueResult:
        return self._queue.enqueue(
            website_id=website_id,
            job_type=AnalysisJobType.SERP_ANALYSIS,
            payload=SerpAnalysisPayload(
                search_query_id=search_query.id,
                query=search_query.query,
            ),
            priority=PRIORITY_MANUAL,
            force=force,
        )

    @staticmethod
    def _require_website(db: Session, website_id: uuid.UUID) -> None:
        if WebsiteRepository(db).get_website(website_id) is None:
            raise NotFoundError(f"Website '{website_id}' was not found.")


@lru_cache(maxsize=1)
def get_analysis_trigger_service() -> AnalysisTriggerService:
    return AnalysisTriggerService(build_job_queue())
