"""
app/jobs/planner.py

Creates recurring SERP and report jobs from each organization's cadence.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from app.jobs.clock import Clock, system_clock
from app.jobs.errors import ConflictError, JobError
from app.jobs.payloads import (
    PRIORITY_PERIODIC_REPORT,
    PRIORITY_PERIODIC_SERP,
    AIReportPayload,
    SerpAnalysisPayload,
)
from app.jobs.queue import JobQueue
from app.jobs.store import SessionFactory
from app.logging_utils import log_event
from db.models.analysis_job import AnalysisJobType
from db.repositories.analysis_job_repository import AnalysisJobRepository
from db.repositories.website_repository import WebsiteRepository

logger = logging.getLogger(__name__)


@dataclass
class PlannerSummary:
    websites_checked: int = 0
    jobs_created: int = 0
    conflicts_skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "websites_checked": self.websites_checked,
            "jobs_created": self.jobs_created,
            "conflicts_skipped": self.conflicts_skipped,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class _PlannedWebsite:
    website_id: uuid.UUID
    serp_due: bool
    report_due: bool
    queries: list[tuple[uuid.UUID, str]]


def is_due(last_completed_at: datetime | None, now: datetime, frequency_hours: int) -> bool:
    """A periodic job is due when none completed inside the trailing window."""
    if last_completed_at is None:
        return True
    return last_completed_at < now - timedelta(hours=frequency_hours)


class PeriodicJobPlanner:
    def __init__(
        self,
        session_factory: SessionFactory,
        queue: JobQueue,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self._session_factory = session_factory
        self._queue = queue
        self._clock = clock

    def run(self) -> PlannerSummary:
        summary = PlannerSummary()
        for planned in self._collect(self._clock()):
            summary.websites_checked += 1
            if planned.serp_due:
                for query_id, query_text in planned.queries:
                    self._enqueue(
                        summary,
                        website_id=planned.website_id,
                        job_type=AnalysisJobType.SERP_ANALYSIS,
                        payload=SerpAnalysisPayload(search_query_id=query_id, query=query_text),
                        priority=PRIORITY_PERIODIC_SERP,
                    )
            if planned.report_due:
                self._enqueue(
                    summary,
                    website_id=planned.website_id,
                    job_type=AnalysisJobType.AI_REPORT,
                    payload=AIReportPayload(),
                    priority=PRIORITY_PERIODIC_REPORT,
                )

        log_event(logger, logging.INFO, "planner_finished", **summary.to_dict())
        return summary

    def _collect(self, now: datetime) -> list[_PlannedWebsite]:
        planned: list[_PlannedWebsite] = []
        with self._session_factory() as db:
            websites = WebsiteRepository(db)
            jobs = AnalysisJobRepository(db)
            for organization in websites.list_organizations():
                for website in websites.list_active_websites(organization.id):
                    last_serp = jobs.last_completed_at(
                        website_id=website.id,
                        job_type=AnalysisJobType.SERP_ANALYSIS,
                    )
                    last_report = jobs.last_completed_at(
                        website_id=website.id,
                        job_type=AnalysisJobType.AI_REPORT,
                    )
                    queries = [
                        (query.id, query.query)
                        for query in websites.list_search_queries(website.id)
                    ]
                    planned.append(
                        _PlannedWebsite(
                            website_id=website.id,
                            serp_due=is_due(last_serp, now, organization.serp_frequency_hours),
                            report_due=is_due(
                                last_report, now, organization.ai_report_frequency_hours
                            ),
                            queries=queries,
                        )
                    )
        return planned

    def _enqueue(self, summary: PlannerSummary, **kwargs: object) -> None:
        try:
            self._queue.enqueue(**kwargs)  # type: ignore[arg-type]
        except ConflictError as exc:
            summary.conflicts_skipped += 1
            logger.info("Planner skipped %s: %s", kwargs.get("job_type"), exc)
            return
        except JobError as exc:
            summary.errors.append(f"{kwargs.get('website_id')} {kwargs.get('job_type')}: {exc}")
            logger.warning("Planner could not enqueue %s: %s", kwargs.get("job_type"), exc)
            return
        summary.jobs_created += 1
