"""
tests/test_sitemap.py

Sitemap XML parsing, the sitemap fetch handler's snapshot chain and the
snapshot history / diff service.
"""

from __future__ import annotations

import uuid

import pytest

from app.connectors.sitemap_client import SitemapNotFoundError, parse_sitemap_xml
from app.jobs.errors import NotFoundError, ValidationError
from app.jobs.executor import JobContext
from app.jobs.handlers.base import CANCELLED_ERROR
from app.jobs.handlers.sitemap_fetch import SitemapFetchHandler
from app.jobs.payloads import PRIORITY_MANUAL, SitemapFetchPayload
from app.services.sitemap_history_service import SitemapHistoryService
from db.models.analysis_job import AnalysisJobType
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.sitemap_repository import SitemapRepository
from db.repositories.website_repository import WebsiteRepository

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://www.acme.fr/</loc><priority>1.0</priority></url>
  <url><loc> https://www.acme.fr/produits </loc><lastmod>2026-01-10</lastmod></url>
  <url><loc>https://www.acme.fr/</loc></url>
  <url><loc>https://www.acme.fr/contact</loc><priority>high</priority></url>
</urlset>
"""

INDEX = """<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://www.acme.fr/sitemap-pages.xml</loc></sitemap>
  <sitemap><loc>https://www.acme.fr/sitemap-blog.xml</loc></sitemap>
</sitemapindex>
"""


# ---------------------------------------------------------------------------
# XML parsing
# ---------------------------------------------------------------------------


class TestParseSitemapXml:
    def test_urlset_entries_are_deduplicated(self) -> None:
        parsed = parse_sitemap_xml(URLSET)
        assert parsed.kind == "single"
        assert [entry.url for entry in parsed.entries] == [
            "https://www.acme.fr/",
            "https://www.acme.fr/produits",
            "https://www.acme.fr/contact",
        ]

    def test_optional_fields(self) -> None:
        entries = parse_sitemap_xml(URLSET).entries
        assert entries[0].priority == 1.0
        assert entries[1].lastmod == "2026-01-10"
        assert entries[2].priority is None

    def test_sitemap_index(self) -> None:
        parsed = parse_sitemap_xml(INDEX)
        assert parsed.kind == "index"
        assert parsed.child_sitemaps == [
            "https://www.acme.fr/sitemap-pages.xml",
            "https://www.acme.fr/sitemap-blog.xml",
        ]

    def test_invalid_documents(self) -> None:
        with pytest.raises(ValueError):
            parse_sitemap_xml("<html><body>not found</body></html>")
        with pytest.raises(ValueError):
            parse_sitemap_xml("<urlset")


# ---------------------------------------------------------------------------
# Fetch handler
# ---------------------------------------------------------------------------


@pytest.fixture()
def handler(session_factory, store, sitemap_fetcher, blob_store, clock) -> SitemapFetchHandler:
    return SitemapFetchHandler(
        session_factory=session_factory,
        store=store,
        fetcher=sitemap_fetcher,
        blob_store=blob_store,
        clock=clock,
    )


def _running(queue, store, seed, clock, payload: SitemapFetchPayload) -> JobContext:
    job = queue.enqueue(
        website_id=seed.website_id,
        job_type=AnalysisJobType.SITEMAP_FETCH,
        payload=payload,
        priority=PRIORITY_MANUAL,
    ).job
    store.mark_running(job.id, now=clock())
    return JobContext(job_id=job.id, website_id=seed.website_id)


def _fetch(handler, queue, store, seed, clock, payload=None):
    payload = payload or SitemapFetchPayload()
    context = _running(queue, store, seed, clock, payload)
    result = handler(context, payload)
    store.mark_terminal(context.job_id, success=result.success, now=clock(), result={})
    return result


class TestSitemapFetchHandler:
    def test_first_snapshot_has_no_previous(
        self, handler, sitemap_fetcher, queue, store, seed, clock, session_factory
    ) -> None:
        sitemap_fetcher.urls_by_site["https://www.acme.fr"] = ["https://www.acme.fr/", "https://www.acme.fr/a"]

        result = _fetch(handler, queue, store, seed, clock)

        assert result.success
        assert result.data["url_count"] == 2
        assert result.data["previous_snapshot_id"] is None
        assert result.data["added_count"] == 2
        with session_factory() as db:
            website = WebsiteRepository(db).get_website(seed.website_id)
            assert website.sitemap_url == "https://www.acme.fr/sitemap.xml"
            assert website.last_sitemap_fetch == clock()
            snapshot_id = uuid.UUID(result.data["snapshot_id"])
            assert SitemapRepository(db).list_urls(snapshot_id) == [
                "https://www.acme.fr/",
                "https://www.acme.fr/a",
            ]

    def test_second_snapshot_diffs_against_previous(
        self, handler, sitemap_fetcher, queue, store, seed, clock
    ) -> None:
        site = "https://www.acme.fr"
        sitemap_fetcher.urls_by_site[site] = [f"{site}/", f"{site}/a", f"{site}/old"]
        first = _fetch(handler, queue, store, seed, clock)

        clock.advance(days=1)
        sitemap_fetcher.urls_by_site[site] = [f"{site}/", f"{site}/a", f"{site}/new"]
        second = _fetch(handler, queue, store, seed, clock)

        assert second.data["previous_snapshot_id"] == first.data["snapshot_id"]
        assert second.data["added_count"] == 1
        assert second.data["removed_count"] == 1
        assert second.data["unchanged_count"] == 2
        # The stored sitemap URL is reused on the next fetch.
        assert sitemap_fetcher.calls[-1] == (site, f"{site}/sitemap.xml")

    def test_competitor_snapshots_are_a_separate_chain(
        self, handler, sitemap_fetcher, queue, store, seed, clock, session_factory
    ) -> None:
        sitemap_fetcher.urls_by_site["https://www.acme.fr"] = ["https://www.acme.fr/"]
        sitemap_fetcher.urls_by_site["https://rival.com"] = ["https://rival.com/x"]
        _fetch(handler, queue, store, seed, clock)
        clock.advance(hours=1)

        result = _fetch(
            handler,
            queue,
            store,
            seed,
            clock,
            SitemapFetchPayload(competitor_id=seed.competitor_id),
        )

        assert result.data["previous_snapshot_id"] is None
        with session_factory() as db:
            competitor = CompetitorRepository(db).get_competitor(seed.website_id, seed.competitor_id)
            assert competitor.sitemap_url == "https://rival.com/sitemap.xml"

    def test_missing_sitemap_raises(self, handler, queue, store, seed, clock) -> None:
        payload = SitemapFetchPayload()
        context = _running(queue, store, seed, clock, payload)
        with pytest.raises(SitemapNotFoundError):
            handler(context, payload)

    def test_unknown_competitor(self, handler, queue, store, seed, clock) -> None:
        payload = SitemapFetchPayload(competitor_id=uuid.uuid4())
        context = _running(queue, store, seed, clock, payload)
        with pytest.raises(NotFoundError):
            handler(context, payload)

    def test_cancelled_before_persisting(
        self, handler, sitemap_fetcher, queue, store, seed, clock, session_factory
    ) -> None:
        sitemap_fetcher.urls_by_site["https://www.acme.fr"] = ["https://www.acme.fr/"]
        payload = SitemapFetchPayload()
        context = _running(queue, store, seed, clock, payload)
        queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.SITEMAP_FETCH,
            payload=payload,
            priority=PRIORITY_MANUAL,
            force=True,
        )

        result = handler(context, payload)

        assert result.error == CANCELLED_ERROR
        with session_factory() as db:
            assert SitemapRepository(db).list_snapshots(seed.website_id) == []


# ---------------------------------------------------------------------------
# History and diff
# ---------------------------------------------------------------------------


class TestSitemapHistoryService:
    def _two_snapshots(self, handler, sitemap_fetcher, queue, store, seed, clock):
        site = "https://www.acme.fr"
        sitemap_fetcher.urls_by_site[site] = [f"{site}/", f"{site}/gone"]
        first = _fetch(handler, queue, store, seed, clock)
        clock.advance(days=1)
        sitemap_fetcher.urls_by_site[site] = [f"{site}/", f"{site}/fresh"]
        second = _fetch(handler, queue, store, seed, clock)
        return uuid.UUID(first.data["snapshot_id"]), uuid.UUID(second.data["snapshot_id"])

    def test_history_is_newest_first(
        self, handler, sitemap_fetcher, queue, store, seed, clock, session_factory
    ) -> None:
        first, second = self._two_snapshots(handler, sitemap_fetcher, queue, store, seed, clock)
        with session_factory() as db:
            history = SitemapHistoryService().history(db=db, website_id=seed.website_id)
        assert [snapshot.id for snapshot in history] == [second, first]

    def test_compare_defaults_to_previous(
        self, handler, sitemap_fetcher, queue, store, seed, clock, session_factory
    ) -> None:
        first, second = self._two_snapshots(handler, sitemap_fetcher, queue, store, seed, clock)
        with session_factory() as db:
            comparison = SitemapHistoryService().compare(
                db=db, website_id=seed.website_id, snapshot_id=second
            )
        assert comparison.compare_to.id == first
        assert comparison.changes.added == ["https://www.acme.fr/fresh"]
        assert comparison.changes.removed == ["https://www.acme.fr/gone"]

    def test_compare_with_itself_is_rejected(
        self, handler, sitemap_fetcher, queue, store, seed, clock, session_factory
    ) -> None:
        _, second = self._two_snapshots(handler, sitemap_fetcher, queue, store, seed, clock)
        with session_factory() as db, pytest.raises(ValidationError):
            SitemapHistoryService().compare(
                db=db, website_id=seed.website_id, snapshot_id=second, compare_to=second
            )

    def test_unknown_snapshot(self, seed, session_factory) -> None:
        with session_factory() as db, pytest.raises(NotFoundError):
            SitemapHistoryService().compare(
                db=db, website_id=seed.website_id, snapshot_id=uuid.uuid4()
            )
