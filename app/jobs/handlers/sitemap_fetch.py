"""
app/jobs/handlers/sitemap_fetch.py

Sitemap capture for the website or one of its competitors: fetch, archive,
store an immutable snapshot and diff it against the owner's previous one.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from app.connectors.sitemap_client import SitemapFetcher
from app.jobs.clock import Clock, system_clock
from app.jobs.errors import NotFoundError
from app.jobs.executor import JobContext, JobResult
from app.jobs.handlers.base import cancelled_result, load_website
from app.jobs.payloads import SitemapFetchPayload
from app.jobs.store import JobStore, SessionFactory
from app.logging_utils import log_event
from app.storage.blob_store import BlobStore, sitemap_key
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.sitemap_repository import SitemapRepository
from db.repositories.website_repository import WebsiteRepository
from ranking.sitemap_diff import diff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SitemapCapture:
    snapshot_id: uuid.UUID
    sitemap_url: str
    sitemap_type: str
    urls: list[str]
    previous_snapshot_id: uuid.UUID | None
    added_count: int
    removed_count: int
    unchanged_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot_id": str(self.snapshot_id),
            "sitemap_url": self.sitemap_url,
            "sitemap_type": self.sitemap_type,
            "url_count": len(self.urls),
            "previous_snapshot_id": (
                str(self.previous_snapshot_id) if self.previous_snapshot_id else None
            ),
            "added_count": self.added_count,
            "removed_count": self.removed_count,
            "unchanged_count": self.unchanged_count,
        }


class SitemapFetchHandler:
    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        store: JobStore,
        fetcher: SitemapFetcher,
        blob_store: BlobStore,
        clock: Clock = system_clock,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._fetcher = fetcher
        self._blob_store = blob_store
        self._clock = clock

    def __call__(self, context: JobContext, payload: SitemapFetchPayload) -> JobResult:
        capture = self.capture(
            context,
            competitor_id=payload.competitor_id,
            sitemap_url=payload.sitemap_url,
        )
        if capture is None:
            return cancelled_result(context, competitor_id=payload.competitor_id)
        return JobResult(success=True, data=capture.to_dict())

    def capture(
        self,
        context: JobContext,
        *,
        competitor_id: uuid.UUID | None = None,
        sitemap_url: str | None = None,
    ) -> SitemapCapture | None:
        """
        Fetch and persist one sitemap snapshot.

        Returns None when the job was cancelled before anything was written.
        """

        owner_url, known_sitemap = self._resolve_owner(context.website_id, competitor_id)
        result = self._fetcher.fetch_sitemap(owner_url, sitemap_url=sitemap_url or known_sitemap)
        fetched_at = self._clock()
        entries = [entry.to_dict() for entry in result.entries]
        blob = self._blob_store.store(
            sitemap_key(context.website_id, fetched_at, competitor_id=competitor_id),
            json.dumps(
                {
                    "sitemap_url": result.sitemap_url,
                    "sitemap_type": result.sitemap_type,
                    "fetched_at": fetched_at.isoformat(),
                    "documents": sorted(result.documents),
                    "entries": entries,
                },
                ensure_ascii=False,
            ),
            content_type="application/json",
        )

        if self._store.is_cancelled(context.job_id):
            return None

        with self._session_factory() as db, db.begin():
            sitemaps = SitemapRepository(db)
            snapshot = sitemaps.create_snapshot(
                website_id=context.website_id,
                competitor_id=competitor_id,
                sitemap_url=result.sitemap_url,
                blob_url=blob.url,
                sitemap_type=result.sitemap_type,
                fetched_at=fetched_at,
                entries=entries,
                metadata={"job_id": str(context.job_id), "documents": len(result.documents)},
            )
            previous = sitemaps.previous_snapshot(snapshot)
            previous_urls = sitemaps.list_urls(previous.id) if previous is not None else []
            changes = diff(result.urls, previous_urls)

            if competitor_id is None:
                WebsiteRepository(db).record_sitemap_fetch(
                    context.website_id,
                    sitemap_url=result.sitemap_url,
                    fetched_at=fetched_at,
                )
            else:
                competitors = CompetitorRepository(db)
                competitor = competitors.get_competitor(context.website_id, competitor_id)
                if competitor is not None:
                    competitors.record_sitemap_fetch(
                        competitor,
                        sitemap_url=result.sitemap_url,
                        fetched_at=fetched_at,
                    )
            snapshot_id = snapshot.id
            previous_id = previous.id if previous is not None else None

        capture = SitemapCapture(
            snapshot_id=snapshot_id,
            sitemap_url=result.sitemap_url,
            sitemap_type=result.sitemap_type,
            urls=result.urls,
            previous_snapshot_id=previous_id,
            added_count=len(changes.added),
            removed_count=len(changes.removed),
            unchanged_count=changes.unchanged,
        )
        log_event(
            logger,
            logging.INFO,
            "sitemap_snapshot_stored",
            job_id=context.job_id,
            website_id=context.website_id,
            competitor_id=competitor_id,
            **capture.to_dict(),
        )
        return capture

    def _resolve_owner(
        self,
        website_id: uuid.UUID,
        competitor_id: uuid.UUID | None,
    ) -> tuple[str, str | None]:
        if competitor_id is None:
            website = load_website(self._session_factory, website_id)
            return website.url, website.sitemap_url
        with self._session_factory() as db:
            competitor = CompetitorRepository(db).get_competitor(website_id, competitor_id)
            if competitor is None:
                raise NotFoundError(f"Competitor '{competitor_id}' was not found.")
            return competitor.url, competitor.sitemap_url
