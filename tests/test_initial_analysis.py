"""
tests/test_initial_analysis.py

Key page selection and the initial analysis pipeline with the mock LLM
adapter.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select

from app.jobs.errors import ExternalServiceError
from app.jobs.executor import JobContext
from app.jobs.handlers.initial_analysis import InitialAnalysisHandler, select_key_pages
from app.jobs.handlers.page_extraction import PageExtractionHandler
from app.jobs.handlers.sitemap_fetch import SitemapFetchHandler
from app.jobs.payloads import PRIORITY_FOLLOWUP, PRIORITY_MANUAL, InitialAnalysisPayload
from db.models import AIReport, PageAnalysis
from db.models.analysis import AIReportType
from db.models.analysis_job import AnalysisJobStatus, AnalysisJobType
from db.models.organization import WebsiteStatus
from db.repositories.website_repository import WebsiteRepository
from llm_synthesis.adapter import MockLLMAdapter
from llm_synthesis.generator import LLMReportGenerator

SITE = "https://www.acme.fr"
HOME = "<html><head><title>Acme</title></head><body><h1>Bienvenue</h1></body></html>"


class TestSelectKeyPages:
    def test_known_sections_come_first(self) -> None:
        urls = [
            f"{SITE}/blog/2024/01/post",
            f"{SITE}/contact",
            f"{SITE}/produits/chaussures",
            f"{SITE}/",
            f"{SITE}/a-propos",
        ]
        assert select_key_pages(urls, SITE, limit=10) == [
            f"{SITE}/",
            f"{SITE}/produits/chaussures",
            f"{SITE}/a-propos",
            f"{SITE}/contact",
            f"{SITE}/blog/2024/01/post",
        ]

    def test_other_hosts_and_duplicates_are_dropped(self) -> None:
        urls = [f"{SITE}/", "https://cdn.other.com/x", f"{SITE}/", "https://acme.fr/services"]
        assert select_key_pages(urls, SITE, limit=10) == [f"{SITE}/", "https://acme.fr/services"]

    def test_unmatched_pages_sort_by_depth(self) -> None:
        urls = [f"{SITE}/a/b/c", f"{SITE}/a", f"{SITE}/a/b"]
        assert select_key_pages(urls, SITE, limit=2) == [f"{SITE}/a", f"{SITE}/a/b"]


@pytest.fixture()
def adapter() -> MockLLMAdapter:
    return MockLLMAdapter()


@pytest.fixture()
def handler(
    session_factory, store, queue, sitemap_fetcher, page_fetcher, blob_store, clock, adapter
) -> InitialAnalysisHandler:
    return InitialAnalysisHandler(
        session_factory=session_factory,
        store=store,
        sitemap_handler=SitemapFetchHandler(
            session_factory=session_factory,
            store=store,
            fetcher=sitemap_fetcher,
            blob_store=blob_store,
            clock=clock,
        ),
        page_handler=PageExtractionHandler(
            session_factory=session_factory,
            store=store,
            fetcher=page_fetcher,
            blob_store=blob_store,
            clock=clock,
        ),
        generator=LLMReportGenerator(adapter, max_retries=0),
        queue=queue,
        key_pages_limit=5,
    )


def _running(queue, store, seed, clock) -> JobContext:
    job = queue.enqueue(
        website_id=seed.website_id,
        job_type=AnalysisJobType.INITIAL_ANALYSIS,
        payload=InitialAnalysisPayload(),
        priority=PRIORITY_MANUAL,
    ).job
    store.mark_running(job.id, now=clock())
    return JobContext(job_id=job.id, website_id=seed.website_id)


def _website_status(session_factory, seed) -> str:
    with session_factory() as db:
        return WebsiteRepository(db).get_website(seed.website_id).status


class TestInitialAnalysisHandler:
    def test_full_pipeline(
        self,
        handler,
        sitemap_fetcher,
        page_fetcher,
        queue,
        store,
        seed,
        clock,
        session_factory,
        adapter,
    ) -> None:
        sitemap_fetcher.urls_by_site[SITE] = [f"{SITE}/", f"{SITE}/contact"]
        page_fetcher.pages[f"{SITE}/"] = HOME
        page_fetcher.pages[f"{SITE}/contact"] = HOME

        result = handler(_running(queue, store, seed, clock), InitialAnalysisPayload())

        assert result.success
        assert result.data["pages_analyzed"] == 2
        assert result.data["followup_jobs"] == 2
        assert result.data["sitemap"]["url_count"] == 2
        assert _website_status(session_factory, seed) == WebsiteStatus.ACTIVE
        assert "Rival" in adapter.prompts[0]

        with session_factory() as db:
            report = db.scalars(select(AIReport)).one()
            assert report.report_type == AIReportType.INITIAL_ANALYSIS
            assert report.title == "Mock ranking recap"
            assert len(list(db.scalars(select(PageAnalysis)))) == 2

        followups = store.list_jobs(
            website_id=seed.website_id, job_type=AnalysisJobType.SERP_ANALYSIS
        )
        assert len(followups) == 2
        assert {job.priority for job in followups} == {PRIORITY_FOLLOWUP}
        assert {job.status for job in followups} == {AnalysisJobStatus.PENDING}

    def test_missing_sitemap_falls_back_to_homepage(
        self, handler, page_fetcher, queue, store, seed, clock
    ) -> None:
        page_fetcher.pages[SITE] = HOME

        result = handler(_running(queue, store, seed, clock), InitialAnalysisPayload())

        assert result.success
        assert result.data["pages_analyzed"] == 1
        assert result.data["sitemap"]["sitemap_url"] is None
        assert page_fetcher.calls == [SITE]

    def test_existing_followup_is_skipped(
        self, handler, page_fetcher, queue, store, seed, clock
    ) -> None:
        page_fetcher.pages[SITE] = HOME
        queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.SERP_ANALYSIS,
            payload={"search_query_id": str(seed.query_ids[0]), "query": "chaussures running"},
            priority=PRIORITY_MANUAL,
        )

        result = handler(_running(queue, store, seed, clock), InitialAnalysisPayload())

        assert result.data["followup_jobs"] == 1

    def test_no_extractable_page_marks_website_error(
        self, handler, queue, store, seed, clock, session_factory
    ) -> None:
        with pytest.raises(ExternalServiceError):
            handler(_running(queue, store, seed, clock), InitialAnalysisPayload())
        assert _website_status(session_factory, seed) == WebsiteStatus.ERROR

    def test_invalid_llm_output_marks_website_error(
        self, session_factory, store, queue, sitemap_fetcher, page_fetcher, blob_store, clock, seed
    ) -> None:
        page_fetcher.pages[SITE] = HOME
        handler = InitialAnalysisHandler(
            session_factory=session_factory,
            store=store,
            sitemap_handler=SitemapFetchHandler(
                session_factory=session_factory,
                store=store,
                fetcher=sitemap_fetcher,
                blob_store=blob_store,
                clock=clock,
            ),
            page_handler=PageExtractionHandler(
                session_factory=session_factory,
                store=store,
                fetcher=page_fetcher,
                blob_store=blob_store,
                clock=clock,
            ),
            generator=LLMReportGenerator(MockLLMAdapter(response="not json"), max_retries=0),
            queue=queue,
        )

        with pytest.raises(ExternalServiceError, match="Report generation failed"):
            handler(_running(queue, store, seed, clock), InitialAnalysisPayload())
        assert _website_status(session_factory, seed) == WebsiteStatus.ERROR
