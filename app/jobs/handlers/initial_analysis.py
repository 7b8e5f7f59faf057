"""
app/jobs/handlers/initial_analysis.py

First analysis of a newly added website: sitemap capture, key page
extraction, initial report, then SERP follow-up jobs for its tracked queries.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Any
from urllib.parse import urlparse

from app.connectors.sitemap_client import SitemapNotFoundError
from app.jobs.errors import ConflictError, ExternalServiceError
from app.jobs.executor import JobContext, JobResult
from app.jobs.handlers.base import cancelled_result, load_website
from app.jobs.handlers.page_extraction import PageExtractionCancelled, PageExtractionHandler
from app.jobs.handlers.sitemap_fetch import SitemapFetchHandler
from app.jobs.payloads import PRIORITY_FOLLOWUP, InitialAnalysisPayload, SerpAnalysisPayload
from app.jobs.queue import JobQueue
from app.jobs.store import JobStore, SessionFactory
from app.logging_utils import log_event
from db.models.analysis import AIReportType
from db.models.analysis_job import AnalysisJobType
from db.models.organization import WebsiteStatus
from db.repositories.analysis_repository import AnalysisRepository
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.website_repository import WebsiteRepository
from llm_synthesis.generator import ReportGenerator
from ranking.domains import normalize_domain

logger = logging.getLogger(__name__)

KEY_PAGE_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^/?$",
        r"/produits?",
        r"/products?",
        r"/services?",
        r"/solutions?",
        r"/offres?",
        r"/about",
        r"/a-propos",
        r"/qui-sommes",
        r"/contact",
        r"/tarifs?",
        r"/pricing",
        r"/expertise",
        r"/metiers?",
    )
)


def _page_rank(url: str) -> tuple[int, int]:
    path = urlparse(url).path or "/"
    for index, pattern in enumerate(KEY_PAGE_PATTERNS):
        if pattern.search(path):
            return index, 0
    return len(KEY_PAGE_PATTERNS), len([part for part in path.split("/") if part])


def select_key_pages(urls: list[str], site_url: str, limit: int) -> list[str]:
    """
    Pick the pages worth extracting first.

    Only URLs on the site's own host are kept. Homepage, product, service,
    about, contact and pricing paths come first in that order, then the
    remaining pages from the shallowest path down. The sort is stable.
    """

    host = normalize_domain(site_url)
    same_host: list[str] = []
    for url in urls:
        if normalize_domain(url) == host and url not in same_host:
            same_host.append(url)
    return sorted(same_host, key=_page_rank)[:limit]


class InitialAnalysisHandler:
    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        store: JobStore,
        sitemap_handler: SitemapFetchHandler,
        page_handler: PageExtractionHandler,
        generator: ReportGenerator,
        queue: JobQueue,
        key_pages_limit: int = 20,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._sitemap_handler = sitemap_handler
        self._page_handler = page_handler
        self._generator = generator
        self._queue = queue
        self._key_pages_limit = key_pages_limit

    def __call__(self, context: JobContext, payload: InitialAnalysisPayload) -> JobResult:
        website = load_website(self._session_factory, context.website_id)
        self._set_status(context, WebsiteStatus.ANALYZING)
        try:
            return self._run(context, website.name, website.url)
        except Exception:
            self._set_status(context, WebsiteStatus.ERROR)
            raise

    def _run(self, context: JobContext, name: str, url: str) -> JobResult:
        sitemap_data: dict[str, Any]
        try:
            capture = self._sitemap_handler.capture(context)
        except SitemapNotFoundError as exc:
            logger.warning("No sitemap for website=%s, using homepage only: %s", url, exc)
            candidates = [url]
            sitemap_data = {"sitemap_url": None, "url_count": 0}
        else:
            if capture is None:
                return cancelled_result(context, step="sitemap")
            candidates = capture.urls or [url]
            sitemap_data = capture.to_dict()

        key_pages = select_key_pages(candidates, url, self._key_pages_limit)
        try:
            outcomes = self._page_handler.extract_pages(context, key_pages)
        except PageExtractionCancelled:
            return cancelled_result(context, step="pages")

        pages = [outcome.to_dict() for outcome in outcomes if outcome.status == "completed"]
        if not pages:
            raise ExternalServiceError(
                f"None of the {len(key_pages)} key pages could be extracted.",
                service="page",
            )

        with self._session_factory() as db:
            competitors = [
                {"name": competitor.name, "url": competitor.url}
                for competitor in CompetitorRepository(db).list_competitors(
                    context.website_id, active_only=True
                )
            ]
            queries = [
                (query.id, query.query)
                for query in WebsiteRepository(db).list_search_queries(context.website_id)
            ]

        try:
            report = self._generator.generate_initial_report(
                website={"name": name, "url": url},
                sitemap=sitemap_data,
                pages=pages,
                competitors=competitors,
            )
        except Exception as exc:
            raise ExternalServiceError(
                f"Report generation failed: {exc}",
                service="report_generator",
            ) from exc

        if self._store.is_cancelled(context.job_id):
            return cancelled_result(context, step="report")

        with self._session_factory() as db, db.begin():
            stored = AnalysisRepository(db).add_report(
                website_id=context.website_id,
                report_type=AIReportType.INITIAL_ANALYSIS,
                title=report.title,
                content=report.content,
                metadata={
                    "job_id": str(context.job_id),
                    "pages_analyzed": len(pages),
                    "highlights": list(report.highlights),
                },
            )
            report_id = stored.id

        followups = self._schedule_followups(context, queries)
        self._set_status(context, WebsiteStatus.ACTIVE)

        log_event(
            logger,
            logging.INFO,
            "initial_analysis_finished",
            job_id=context.job_id,
            website_id=context.website_id,
            pages_analyzed=len(pages),
            followup_jobs=followups,
        )
        return JobResult(
            success=True,
            data={
                "report_id": str(report_id),
                "sitemap": sitemap_data,
                "pages_selected": len(key_pages),
                "pages_analyzed": len(pages),
                "followup_jobs": followups,
            },
        )

    def _schedule_followups(self, context: JobContext, queries: list[tuple[uuid.UUID, str]]) -> int:
        scheduled = 0
        for query_id, text in queries:
            try:
                self._queue.enqueue(
                    website_id=context.website_id,
                    job_type=AnalysisJobType.SERP_ANALYSIS,
                    payload=SerpAnalysisPayload(search_query_id=query_id, query=text),
                    priority=PRIORITY_FOLLOWUP,
                )
            except ConflictError as exc:
                logger.info("Follow-up SERP job skipped for query=%r: %s", text, exc)
                continue
            scheduled += 1
        return scheduled

    def _set_status(self, context: JobContext, status: str) -> None:
        with self._session_factory() as db, db.begin():
            WebsiteRepository(db).set_status(context.website_id, status)
