"""
app/jobs/handlers/page_extraction.py

Fetches pages, archives their HTML and stores the extracted on-page SEO
fields. Each URL succeeds or fails on its own.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from app.connectors.page_client import PageContent, PageFetcher, extract_page_content
from app.jobs.clock import Clock, system_clock
from app.jobs.errors import NotFoundError
from app.jobs.executor import JobContext, JobResult
from app.jobs.handlers.base import cancelled_result, load_website
from app.jobs.payloads import PageExtractionPayload
from app.jobs.store import JobStore, SessionFactory
from app.logging_utils import log_event
from app.storage.blob_store import BlobStore, html_key
from db.repositories.analysis_repository import AnalysisRepository
from db.repositories.competitor_repository import CompetitorRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageOutcome:
    url: str
    status: str
    content: PageContent | None = None
    analysis_id: uuid.UUID | None = None
    blob_url: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "status": self.status,
            "analysis_id": str(self.analysis_id) if self.analysis_id else None,
            "blob_url": self.blob_url,
            "error": self.error,
        }
        if self.content is not None:
            data.update(self.content.to_dict())
        return data


class PageExtractionCancelled(Exception):
    """Raised by `extract_pages` when the job was cancelled between pages."""


class PageExtractionHandler:
    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        store: JobStore,
        fetcher: PageFetcher,
        blob_store: BlobStore,
        clock: Clock = system_clock,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._fetcher = fetcher
        self._blob_store = blob_store
        self._clock = clock

    def __call__(self, context: JobContext, payload: PageExtractionPayload) -> JobResult:
        load_website(self._session_factory, context.website_id)
        if payload.competitor_id is not None:
            with self._session_factory() as db:
                competitor = CompetitorRepository(db).get_competitor(
                    context.website_id, payload.competitor_id
                )
            if competitor is None:
                raise NotFoundError(f"Competitor '{payload.competitor_id}' was not found.")

        try:
            outcomes = self.extract_pages(
                context,
                payload.urls,
                competitor_id=payload.competitor_id,
            )
        except PageExtractionCancelled:
            return cancelled_result(context, competitor_id=payload.competitor_id)

        failed = sum(1 for outcome in outcomes if outcome.status == "failed")
        return JobResult(
            success=True,
            data={
                "pages": [outcome.to_dict() for outcome in outcomes],
                "succeeded": len(outcomes) - failed,
                "failed": failed,
            },
        )

    def extract_pages(
        self,
        context: JobContext,
        urls: list[str],
        *,
        competitor_id: uuid.UUID | None = None,
    ) -> list[PageOutcome]:
        outcomes: list[PageOutcome] = []
        for url in urls:
            try:
                outcome = self._extract_one(context, url, competitor_id)
            except PageExtractionCancelled:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.warning("Page extraction failed url=%s: %s", url, exc)
                outcome = PageOutcome(
                    url=url,
                    status="failed",
                    error=f"{type(exc).__name__}: {exc}",
                )
            outcomes.append(outcome)

        log_event(
            logger,
            logging.INFO,
            "page_extraction_finished",
            job_id=context.job_id,
            website_id=context.website_id,
            competitor_id=competitor_id,
            pages=len(outcomes),
            failed=sum(1 for outcome in outcomes if outcome.status == "failed"),
        )
        return outcomes

    def _extract_one(
        self,
        context: JobContext,
        url: str,
        competitor_id: uuid.UUID | None,
    ) -> PageOutcome:
        page = self._fetcher.fetch_page(url)
        blob = self._blob_store.store(
            html_key(context.website_id, url, self._clock()),
            page.html,
            content_type=page.content_type or "text/html",
        )
        content = extract_page_content(page.html)

        if self._store.is_cancelled(context.job_id):
            raise PageExtractionCancelled(url)

        with self._session_factory() as db, db.begin():
            analysis = AnalysisRepository(db).add_page_analysis(
                website_id=context.website_id,
                competitor_id=competitor_id,
                url=url,
                title=content.title,
                meta_description=content.meta_description,
                headings=content.headings,
                word_count=content.word_count,
                html_blob_url=blob.url,
            )
            analysis_id = analysis.id

        return PageOutcome(
            url=url,
            status="completed",
            content=content,
            analysis_id=analysis_id,
            blob_url=blob.url,
        )
