"""
tests/conftest.py

Shared fixtures: an in-memory SQLite database with the full schema, seeded
organization/website rows, a controllable clock and fake outbound fetchers.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers all ORM models on Base.metadata
from app.connectors.page_client import FetchedPage
from app.connectors.serp_client import SerpResponse, SerpResultItem
from app.connectors.sitemap_client import SitemapEntry, SitemapFetchResult, SitemapNotFoundError
from app.jobs.queue import JobQueue
from app.jobs.store import SQLAlchemyJobStore
from app.storage.blob_store import LocalBlobStore
from db.base import Base
from db.models import Competitor, Organization, SearchQuery, Website
from db.session import build_session_factory
from ranking.domains import normalize_domain

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class Seed:
    organization_id: uuid.UUID
    website_id: uuid.UUID
    query_ids: list[uuid.UUID]
    competitor_id: uuid.UUID


class FakeSerpFetcher:
    def __init__(self) -> None:
        self.responses: dict[str, list[str]] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []

    def set_results(self, query: str, urls: list[str]) -> None:
        self.responses[query] = urls

    def search_serp(
        self,
        query: str,
        *,
        country: str,
        language: str,
        device: str,
        num_results: int,
    ) -> SerpResponse:
        self.calls.append(query)
        if query in self.failures:
            raise self.failures[query]
        urls = self.responses.get(query, [])
        return SerpResponse(
            query=query,
            results=[
                SerpResultItem(
                    position=index,
                    url=url,
                    domain=normalize_domain(url),
                    title=f"Result {index}",
                )
                for index, url in enumerate(urls, start=1)
            ],
            country=country,
            language=language,
            device=device,
        )


class FakeSitemapFetcher:
    def __init__(self) -> None:
        self.urls_by_site: dict[str, list[str]] = {}
        self.calls: list[tuple[str, str | None]] = []

    def fetch_sitemap(self, site_url: str, *, sitemap_url: str | None = None) -> SitemapFetchResult:
        self.calls.append((site_url, sitemap_url))
        if site_url not in self.urls_by_site:
            raise SitemapNotFoundError(f"No sitemap for {site_url}", service="sitemap")
        resolved = sitemap_url or f"{site_url.rstrip('/')}/sitemap.xml"
        return SitemapFetchResult(
            sitemap_url=resolved,
            sitemap_type="single",
            entries=[SitemapEntry(url=url) for url in self.urls_by_site[site_url]],
            documents={resolved: "<urlset/>"},
        )


@dataclass
class FakePageFetcher:
    pages: dict[str, str] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def fetch_page(self, url: str) -> FetchedPage:
        self.calls.append(url)
        if url not in self.pages:
            raise RuntimeError(f"unreachable page {url}")
        return FetchedPage(url=url, status_code=200, html=self.pages[url], content_type="text/html")


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def store(session_factory) -> SQLAlchemyJobStore:
    return SQLAlchemyJobStore(session_factory)


@pytest.fixture()
def queue(store, clock) -> JobQueue:
    return JobQueue(store, clock=clock, default_max_attempts=3)


@pytest.fixture()
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture()
def seed(session_factory) -> Seed:
    with session_factory() as db, db.begin():
        organization = Organization(
            name="Acme",
            slug="acme",
            serp_frequency_hours=24,
            ai_report_frequency_hours=168,
        )
        db.add(organization)
        db.flush()
        website = Website(
            organization_id=organization.id,
            name="Acme Shop",
            url="https://www.acme.fr",
        )
        db.add(website)
        db.flush()
        queries = [
            SearchQuery(website_id=website.id, query="chaussures running"),
            SearchQuery(website_id=website.id, query="baskets trail"),
        ]
        db.add_all(queries)
        db.flush()
        competitor = Competitor(
            website_id=website.id,
            name="Rival",
            url="https://rival.com",
            is_active=True,
        )
        db.add(competitor)
        db.flush()
        return Seed(
            organization_id=organization.id,
            website_id=website.id,
            query_ids=[query.id for query in queries],
            competitor_id=competitor.id,
        )


@pytest.fixture()
def serp_fetcher() -> FakeSerpFetcher:
    return FakeSerpFetcher()


@pytest.fixture()
def sitemap_fetcher() -> FakeSitemapFetcher:
    return FakeSitemapFetcher()


@pytest.fixture()
def page_fetcher() -> FakePageFetcher:
    return FakePageFetcher()
