"""
tests/test_page_extraction.py

HTML content extraction and the page extraction handler.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from app.connectors.page_client import extract_page_content
from app.jobs.errors import NotFoundError
from app.jobs.executor import JobContext
from app.jobs.handlers.base import CANCELLED_ERROR
from app.jobs.handlers.page_extraction import PageExtractionHandler
from app.jobs.payloads import PRIORITY_MANUAL, PageExtractionPayload
from db.models import PageAnalysis
from db.models.analysis_job import AnalysisJobType

PAGE = """
<html>
  <head>
    <title>  Acme   Running </title>
    <meta name="Description" content="Chaussures de running pour tous">
    <script>var hidden = "should not count";</script>
  </head>
  <body>
    <h1>Running</h1>
    <h2>Route</h2><h2>Trail</h2><h2>  </h2>
    <p>Trois mots ici</p>
    <style>.x { color: red }</style>
  </body>
</html>
"""


class TestExtractPageContent:
    def test_extracts_title_meta_and_headings(self) -> None:
        content = extract_page_content(PAGE)
        assert content.title == "Acme Running"
        assert content.meta_description == "Chaussures de running pour tous"
        assert content.headings == {"h1": ["Running"], "h2": ["Route", "Trail"], "h3": []}

    def test_word_count_ignores_scripts_and_styles(self) -> None:
        # Running + Route + Trail + Trois mots ici
        assert extract_page_content(PAGE).word_count == 6

    def test_empty_document(self) -> None:
        content = extract_page_content("")
        assert content.title is None
        assert content.meta_description is None
        assert content.word_count == 0


@pytest.fixture()
def handler(session_factory, store, page_fetcher, blob_store, clock) -> PageExtractionHandler:
    return PageExtractionHandler(
        session_factory=session_factory,
        store=store,
        fetcher=page_fetcher,
        blob_store=blob_store,
        clock=clock,
    )


def _running(queue, store, seed, clock, payload) -> JobContext:
    job = queue.enqueue(
        website_id=seed.website_id,
        job_type=AnalysisJobType.PAGE_EXTRACTION,
        payload=payload,
        priority=PRIORITY_MANUAL,
    ).job
    store.mark_running(job.id, now=clock())
    return JobContext(job_id=job.id, website_id=seed.website_id)


class TestPageExtractionHandler:
    def test_stores_one_analysis_per_page(
        self, handler, page_fetcher, queue, store, seed, clock, session_factory, blob_store
    ) -> None:
        page_fetcher.pages["https://www.acme.fr/"] = PAGE
        payload = PageExtractionPayload(urls=["https://www.acme.fr/", "https://www.acme.fr/404"])

        result = handler(_running(queue, store, seed, clock, payload), payload)

        assert result.success
        assert result.data["succeeded"] == 1
        assert result.data["failed"] == 1
        completed, failed = result.data["pages"]
        assert completed["title"] == "Acme Running"
        assert "unreachable page" in failed["error"]
        assert blob_store.load(completed["blob_url"]).decode("utf-8") == PAGE

        with session_factory() as db:
            stored = db.scalars(select(PageAnalysis)).one()
        assert stored.url == "https://www.acme.fr/"
        assert stored.competitor_id is None
        assert stored.headings["h2"] == ["Route", "Trail"]

    def test_competitor_pages_are_tagged(
        self, handler, page_fetcher, queue, store, seed, clock, session_factory
    ) -> None:
        page_fetcher.pages["https://rival.com/"] = PAGE
        payload = PageExtractionPayload(urls=["https://rival.com/"], competitor_id=seed.competitor_id)

        handler(_running(queue, store, seed, clock, payload), payload)

        with session_factory() as db:
            assert db.scalars(select(PageAnalysis)).one().competitor_id == seed.competitor_id

    def test_unknown_competitor(self, handler, queue, store, seed, clock) -> None:
        payload = PageExtractionPayload(urls=["https://x.fr/"], competitor_id=uuid.uuid4())
        with pytest.raises(NotFoundError):
            handler(_running(queue, store, seed, clock, payload), payload)

    def test_cancelled_stops_before_persisting(
        self, handler, page_fetcher, queue, store, seed, clock, session_factory
    ) -> None:
        page_fetcher.pages["https://www.acme.fr/"] = PAGE
        payload = PageExtractionPayload(urls=["https://www.acme.fr/"])
        context = _running(queue, store, seed, clock, payload)
        queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.PAGE_EXTRACTION,
            payload=payload,
            priority=PRIORITY_MANUAL,
            force=True,
        )

        result = handler(context, payload)

        assert result.error == CANCELLED_ERROR
        with session_factory() as db:
            assert list(db.scalars(select(PageAnalysis))) == []
