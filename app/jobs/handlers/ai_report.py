"""
app/jobs/handlers/ai_report.py

Periodic recap: latest positions of the tracked queries and competitors over
the report period, summarized by the report generator.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from app.jobs.clock import Clock, system_clock
from app.jobs.errors import ExternalServiceError
from app.jobs.executor import JobContext, JobResult
from app.jobs.handlers.base import cancelled_result, load_website
from app.jobs.payloads import AIReportPayload
from app.jobs.store import JobStore, SessionFactory
from app.logging_utils import log_event
from app.services.competitor_score_service import (
    latest_competitor_positions,
    to_position_samples,
)
from db.models.analysis import AIReportType
from db.repositories.analysis_repository import AnalysisRepository
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.serp_result_repository import SerpResultRepository
from db.repositories.website_repository import WebsiteRepository
from llm_synthesis.generator import ReportGenerator
from ranking.scoring import PositionSample, latest_positions, normalize_query, score

logger = logging.getLogger(__name__)


def _earliest_positions(samples: list[PositionSample]) -> dict[str, int | None]:
    earliest: dict[str, int | None] = {}
    for sample in sorted(samples, key=lambda item: item.observed_at):
        earliest.setdefault(normalize_query(sample.query), sample.position)
    return earliest


class AIReportHandler:
    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        store: JobStore,
        generator: ReportGenerator,
        default_period_days: int = 30,
        clock: Clock = system_clock,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._generator = generator
        self._default_period_days = default_period_days
        self._clock = clock

    def __call__(self, context: JobContext, payload: AIReportPayload) -> JobResult:
        website = load_website(self._session_factory, context.website_id)
        period_days = payload.period_days or self._default_period_days
        since = self._clock() - timedelta(days=period_days)

        queries, competitors = self._collect(context, since)

        try:
            report = self._generator.generate_periodic_recap(
                website={"name": website.name, "url": website.url},
                period_days=period_days,
                queries=queries,
                competitors=competitors,
            )
        except Exception as exc:
            raise ExternalServiceError(
                f"Report generation failed: {exc}",
                service="report_generator",
            ) from exc

        if self._store.is_cancelled(context.job_id):
            return cancelled_result(context, report_type=payload.report_type)

        with self._session_factory() as db, db.begin():
            stored = AnalysisRepository(db).add_report(
                website_id=website.id,
                report_type=AIReportType.PERIODIC_RECAP,
                title=report.title,
                content=report.content,
                metadata={
                    "job_id": str(context.job_id),
                    "period_days": period_days,
                    "highlights": list(report.highlights),
                    "query_count": len(queries),
                    "competitor_count": len(competitors),
                },
            )
            report_id = stored.id

        log_event(
            logger,
            logging.INFO,
            "ai_report_stored",
            job_id=context.job_id,
            website_id=website.id,
            report_id=report_id,
            period_days=period_days,
        )
        return JobResult(
            success=True,
            data={
                "report_id": str(report_id),
                "report_type": AIReportType.PERIODIC_RECAP,
                "title": report.title,
                "period_days": period_days,
                "query_count": len(queries),
                "competitor_count": len(competitors),
            },
        )

    def _collect(
        self,
        context: JobContext,
        since: datetime,
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        with self._session_factory() as db:
            tracked = WebsiteRepository(db).list_search_queries(context.website_id)
            active_keys = {normalize_query(query.query): query.query for query in tracked}

            rows = SerpResultRepository(db).list_self_samples(context.website_id, since=since)
            samples = [
                sample
                for sample in to_position_samples(rows)
                if normalize_query(sample.query) in active_keys
            ]
            current = latest_positions(samples)
            earliest = _earliest_positions(samples)

            queries = [
                {
                    "query": text,
                    "current_position": current.get(key),
                    "earliest_position": earliest.get(key),
                    "samples": sum(1 for s in samples if normalize_query(s.query) == key),
                }
                for key, text in active_keys.items()
            ]

            competitors: list[dict[str, Any]] = []
            for competitor in CompetitorRepository(db).list_competitors(
                context.website_id, active_only=True
            ):
                positions = {
                    key: position
                    for key, position in latest_competitor_positions(
                        db, competitor.id, since=since
                    ).items()
                    if key in active_keys
                }
                competitors.append(
                    {
                        "name": competitor.name,
                        "url": competitor.url,
                        "positions": positions,
                        "score": score(current, positions).to_dict(),
                    }
                )
        return queries, competitors
