"""
app/jobs/handlers/serp_analysis.py

SERP analysis: fetch the ranked results of each query, archive them, record
where the website and its competitors rank, and register new competitors
found at the top of the results.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.config import SerpSettings
from app.connectors.serp_client import SerpFetcher, SerpResponse, SerpResultItem
from app.jobs.clock import Clock, system_clock
from app.jobs.executor import JobContext, JobResult
from app.jobs.handlers.base import WebsiteRef, cancelled_result, load_website
from app.jobs.payloads import SerpAnalysisPayload
from app.jobs.store import JobStore, SessionFactory
from app.logging_utils import log_event
from app.storage.blob_store import BlobStore, serp_key
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.serp_result_repository import SerpResultRepository
from db.repositories.website_repository import WebsiteRepository
from ranking.domains import domain_matches, normalize_domain

logger = logging.getLogger(__name__)


@dataclass
class QueryOutcome:
    query: str
    status: str = "completed"
    position: int | None = None
    url: str | None = None
    blob_url: str | None = None
    competitor_samples: int = 0
    competitors_created: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "status": self.status,
            "position": self.position,
            "url": self.url,
            "blob_url": self.blob_url,
            "competitor_samples": self.competitor_samples,
            "competitors_created": list(self.competitors_created),
            "error": self.error,
        }


class _Cancelled(Exception):
    pass


def find_domain_entry(results: list[SerpResultItem], site_url: str) -> SerpResultItem | None:
    """First ranked entry on the domain of `site_url` or one of its subdomains."""
    for item in results:
        if domain_matches(item.domain or item.url, site_url):
            return item
    return None


def competitor_candidates(
    results: list[SerpResultItem],
    website_url: str,
    *,
    limit: int,
) -> list[str]:
    """Distinct non-self domains in ranking order, at most `limit` of them."""
    domains: list[str] = []
    for item in results:
        domain = normalize_domain(item.domain or item.url)
        if not domain or domain in domains or domain_matches(domain, website_url):
            continue
        domains.append(domain)
        if len(domains) >= limit:
            break
    return domains


class SerpAnalysisHandler:
    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        store: JobStore,
        fetcher: SerpFetcher,
        blob_store: BlobStore,
        settings: SerpSettings,
        clock: Clock = system_clock,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._fetcher = fetcher
        self._blob_store = blob_store
        self._settings = settings
        self._clock = clock

    def __call__(self, context: JobContext, payload: SerpAnalysisPayload) -> JobResult:
        website = load_website(self._session_factory, context.website_id)
        outcomes: list[QueryOutcome] = []

        for query in payload.all_queries():
            try:
                outcome = self._analyze_query(context, website, query, payload.search_query_id)
            except _Cancelled:
                return cancelled_result(context, query=query, completed=len(outcomes))
            except Exception as exc:  # noqa: BLE001
                logger.exception("SERP analysis failed website=%s query=%r", website.id, query)
                outcome = QueryOutcome(
                    query=query,
                    status="failed",
                    error=f"{type(exc).__name__}: {exc}",
                )
            outcomes.append(outcome)

        failed = sum(1 for outcome in outcomes if outcome.status == "failed")
        log_event(
            logger,
            logging.INFO,
            "serp_analysis_finished",
            job_id=context.job_id,
            website_id=website.id,
            queries=len(outcomes),
            failed=failed,
        )
        return JobResult(
            success=True,
            data={
                "queries": [outcome.to_dict() for outcome in outcomes],
                "succeeded": len(outcomes) - failed,
                "failed": failed,
            },
        )

    def _analyze_query(
        self,
        context: JobContext,
        website: WebsiteRef,
        query: str,
        search_query_id: uuid.UUID | None,
    ) -> QueryOutcome:
        response = self._fetcher.search_serp(
            query,
            country=self._settings.country,
            language=self._settings.language,
            device=self._settings.device,
            num_results=self._settings.num_results,
        )
        observed_at = self._clock()
        blob = self._blob_store.store(
            serp_key(website.id, query, observed_at),
            json.dumps(response.to_json(), ensure_ascii=False),
            content_type="application/json",
        )
        own_entry = find_domain_entry(response.results, website.url)

        if self._store.is_cancelled(context.job_id):
            raise _Cancelled()

        outcome = QueryOutcome(
            query=query,
            position=own_entry.position if own_entry else None,
            url=own_entry.url if own_entry else None,
            blob_url=blob.url,
        )
        self._persist(
            website,
            query,
            search_query_id,
            response,
            own_entry,
            blob.url,
            observed_at,
            outcome,
        )
        log_event(
            logger,
            logging.INFO,
            "serp_query_analyzed",
            job_id=context.job_id,
            website_id=website.id,
            query=query,
            position=outcome.position,
            results=len(response.results),
            competitors_created=len(outcome.competitors_created),
        )
        return outcome

    def _persist(
        self,
        website: WebsiteRef,
        query: str,
        search_query_id: uuid.UUID | None,
        response: SerpResponse,
        own_entry: SerpResultItem | None,
        blob_url: str,
        observed_at: datetime,
        outcome: QueryOutcome,
    ) -> None:
        with self._session_factory() as db, db.begin():
            if search_query_id is None:
                tracked = WebsiteRepository(db).find_search_query_by_text(website.id, query)
                search_query_id = tracked.id if tracked is not None else None

            samples = SerpResultRepository(db)
            samples.add_sample(
                website_id=website.id,
                search_query_id=search_query_id,
                query=query,
                position=own_entry.position if own_entry else None,
                url=own_entry.url if own_entry else None,
                title=own_entry.title if own_entry else None,
                snippet=own_entry.snippet if own_entry else None,
                country=self._settings.country,
                device=self._settings.device,
                raw_data_blob_url=blob_url,
                observed_at=observed_at,
            )

            competitors = CompetitorRepository(db)
            candidates = competitor_candidates(
                response.results,
                website.url,
                limit=self._settings.competitor_candidates,
            )
            for domain in candidates[: self._settings.auto_add_competitors]:
                competitor, created = competitors.get_or_create_for_domain(
                    website_id=website.id,
                    domain=domain,
                    description=f'Competitor detected on "{query}"',
                )
                if created:
                    outcome.competitors_created.append(competitor.name)

            for competitor in competitors.list_competitors(website.id, active_only=True):
                entry = find_domain_entry(response.results, competitor.url)
                samples.add_sample(
                    website_id=website.id,
                    search_query_id=search_query_id,
                    competitor_id=competitor.id,
                    query=query,
                    position=entry.position if entry else None,
                    url=entry.url if entry else None,
                    title=entry.title if entry else None,
                    snippet=entry.snippet if entry else None,
                    country=self._settings.country,
                    device=self._settings.device,
                    raw_data_blob_url=blob_url,
                    observed_at=observed_at,
                )
                outcome.competitor_samples += 1
