"""
tests/test_reports_and_scores.py

Competitor score service over stored samples and the periodic AI report
handler with the mock LLM adapter.
"""

from __future__ import annotations

import json
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from app.config import SerpSettings
from app.jobs.errors import ExternalServiceError, NotFoundError
from app.jobs.executor import JobContext
from app.jobs.handlers.ai_report import AIReportHandler
from app.jobs.handlers.base import CANCELLED_ERROR
from app.jobs.handlers.serp_analysis import SerpAnalysisHandler
from app.jobs.payloads import PRIORITY_MANUAL, AIReportPayload, SerpAnalysisPayload
from app.services.competitor_score_service import CompetitorScoreService
from db.models import AIReport, Competitor
from db.models.analysis import AIReportType
from db.models.analysis_job import AnalysisJobType
from db.repositories.serp_result_repository import SerpResultRepository
from llm_synthesis.adapter import MockLLMAdapter
from llm_synthesis.generator import LLMReportGenerator


def _sample(session_factory, seed, query, position, observed_at, competitor_id=None) -> None:
    with session_factory() as db, db.begin():
        SerpResultRepository(db).add_sample(
            website_id=seed.website_id,
            competitor_id=competitor_id,
            query=query,
            position=position,
            observed_at=observed_at,
        )


# ---------------------------------------------------------------------------
# Competitor score service
# ---------------------------------------------------------------------------


class TestCompetitorScoreService:
    def test_scores_latest_positions(self, session_factory, seed, clock) -> None:
        t0 = clock()
        _sample(session_factory, seed, "chaussures running", 9, t0)
        _sample(session_factory, seed, "chaussures running", 2, t0 + timedelta(days=1))
        _sample(session_factory, seed, "baskets trail", None, t0)
        _sample(session_factory, seed, "chaussures running", 4, t0, seed.competitor_id)
        _sample(session_factory, seed, "baskets trail", 7, t0, seed.competitor_id)

        with session_factory() as db:
            result = CompetitorScoreService().score_competitor(
                db=db, website_id=seed.website_id, competitor_id=seed.competitor_id
            )

        assert result.competitor_name == "Rival"
        assert result.self_positions == {"chaussures running": 2, "baskets trail": None}
        assert result.score.to_dict() == {"better": 1, "worse": 1, "total": 2, "net_score": 0}

    def test_no_samples_scores_zero(self, session_factory, seed) -> None:
        with session_factory() as db:
            result = CompetitorScoreService().score_competitor(
                db=db, website_id=seed.website_id, competitor_id=seed.competitor_id
            )
        assert result.score.total == 0

    def test_unknown_competitor(self, session_factory, seed) -> None:
        with session_factory() as db, pytest.raises(NotFoundError):
            CompetitorScoreService().score_competitor(
                db=db, website_id=seed.website_id, competitor_id=uuid.uuid4()
            )

    def test_competitor_position_comes_from_archived_serp(
        self, session_factory, seed, clock, blob_store
    ) -> None:
        archive = blob_store.store(
            "serp/archive.json",
            json.dumps(
                {
                    "query": "chaussures running",
                    "results": [
                        {"position": 1, "url": "https://www.rival.com/a", "domain": "www.rival.com"},
                        {"position": 3, "url": "https://www.acme.fr/", "domain": "www.acme.fr"},
                    ],
                }
            ),
            content_type="application/json",
        )
        with session_factory() as db, db.begin():
            SerpResultRepository(db).add_sample(
                website_id=seed.website_id,
                query="chaussures running",
                position=3,
                raw_data_blob_url=archive.url,
                observed_at=clock(),
            )

        with session_factory() as db:
            result = CompetitorScoreService(blob_store).score_competitor(
                db=db, website_id=seed.website_id, competitor_id=seed.competitor_id
            )

        assert result.competitor_positions == {"chaussures running": 1}
        assert result.score.to_dict() == {"better": 0, "worse": 1, "total": 1, "net_score": -1}

    def test_unreadable_archive_falls_back_to_samples(
        self, session_factory, seed, clock, blob_store
    ) -> None:
        with session_factory() as db, db.begin():
            SerpResultRepository(db).add_sample(
                website_id=seed.website_id,
                query="baskets trail",
                position=2,
                raw_data_blob_url="serp/missing.json",
                observed_at=clock(),
            )
        _sample(session_factory, seed, "baskets trail", 6, clock(), seed.competitor_id)

        with session_factory() as db:
            result = CompetitorScoreService(blob_store).score_competitor(
                db=db, website_id=seed.website_id, competitor_id=seed.competitor_id
            )

        assert result.competitor_positions == {"baskets trail": 6}
        assert result.score.better == 1

    def test_competitor_discovered_later_is_scored_on_earlier_queries(
        self, session_factory, store, queue, seed, clock, blob_store, serp_fetcher
    ) -> None:
        handler = SerpAnalysisHandler(
            session_factory=session_factory,
            store=store,
            fetcher=serp_fetcher,
            blob_store=blob_store,
            settings=SerpSettings(api_key="test", competitor_candidates=10, auto_add_competitors=3),
            clock=clock,
        )
        serp_fetcher.set_results(
            "chaussures running",
            [
                "https://a.com/",
                "https://b.com/",
                "https://c.com/",
                "https://late.io/shoes",
                "https://www.acme.fr/running",
            ],
        )
        serp_fetcher.set_results("baskets trail", ["https://late.io/trail", "https://www.acme.fr/trail"])

        for query_id, query in zip(seed.query_ids, ("chaussures running", "baskets trail")):
            payload = SerpAnalysisPayload(search_query_id=query_id, query=query)
            job = queue.enqueue(
                website_id=seed.website_id,
                job_type=AnalysisJobType.SERP_ANALYSIS,
                payload=payload,
                priority=PRIORITY_MANUAL,
            ).job
            store.mark_running(job.id, now=clock())
            assert handler(JobContext(job_id=job.id, website_id=seed.website_id), payload).success
            clock.advance(minutes=5)

        with session_factory() as db:
            late = db.scalars(select(Competitor).where(Competitor.name == "late.io")).one()
            result = CompetitorScoreService(blob_store).score_competitor(
                db=db, website_id=seed.website_id, competitor_id=late.id
            )

        assert result.competitor_positions == {"chaussures running": 4, "baskets trail": 1}
        assert result.score.to_dict() == {"better": 0, "worse": 2, "total": 2, "net_score": -2}


# ---------------------------------------------------------------------------
# AI report handler
# ---------------------------------------------------------------------------


def _handler(session_factory, store, clock, adapter) -> AIReportHandler:
    return AIReportHandler(
        session_factory=session_factory,
        store=store,
        generator=LLMReportGenerator(adapter, max_retries=0),
        default_period_days=30,
        clock=clock,
    )


def _running(queue, store, seed, clock, payload) -> JobContext:
    job = queue.enqueue(
        website_id=seed.website_id,
        job_type=AnalysisJobType.AI_REPORT,
        payload=payload,
        priority=PRIORITY_MANUAL,
    ).job
    store.mark_running(job.id, now=clock())
    return JobContext(job_id=job.id, website_id=seed.website_id)


class TestAIReportHandler:
    def test_stores_periodic_recap(self, session_factory, store, queue, seed, clock) -> None:
        t0 = clock()
        _sample(session_factory, seed, "chaussures running", 12, t0 - timedelta(days=40))
        _sample(session_factory, seed, "chaussures running", 8, t0 - timedelta(days=10))
        _sample(session_factory, seed, "chaussures running", 3, t0 - timedelta(days=1))
        _sample(session_factory, seed, "untracked query", 1, t0 - timedelta(days=1))
        _sample(session_factory, seed, "chaussures running", 5, t0 - timedelta(days=1), seed.competitor_id)
        adapter = MockLLMAdapter()
        payload = AIReportPayload()

        result = _handler(session_factory, store, clock, adapter)(
            _running(queue, store, seed, clock, payload), payload
        )

        assert result.success
        assert result.data["period_days"] == 30
        assert result.data["query_count"] == 2
        assert result.data["competitor_count"] == 1
        prompt = adapter.prompts[0]
        assert '"current_position": 3' in prompt
        assert '"earliest_position": 8' in prompt
        assert "untracked query" not in prompt

        with session_factory() as db:
            report = db.scalars(select(AIReport)).one()
        assert report.report_type == AIReportType.PERIODIC_RECAP
        assert report.metadata_json["period_days"] == 30
        assert report.metadata_json["highlights"]

    def test_period_from_payload(self, session_factory, store, queue, seed, clock) -> None:
        payload = AIReportPayload(period_days=7)
        result = _handler(session_factory, store, clock, MockLLMAdapter())(
            _running(queue, store, seed, clock, payload), payload
        )
        assert result.data["period_days"] == 7

    def test_generator_failure_is_external(self, session_factory, store, queue, seed, clock) -> None:
        payload = AIReportPayload()
        handler = _handler(session_factory, store, clock, MockLLMAdapter(response="{}"))
        with pytest.raises(ExternalServiceError):
            handler(_running(queue, store, seed, clock, payload), payload)

    def test_cancelled_report_is_not_stored(self, session_factory, store, queue, seed, clock) -> None:
        payload = AIReportPayload()
        context = _running(queue, store, seed, clock, payload)
        queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.AI_REPORT,
            payload=payload,
            priority=PRIORITY_MANUAL,
            force=True,
        )

        result = _handler(session_factory, store, clock, MockLLMAdapter())(context, payload)

        assert result.error == CANCELLED_ERROR
        with session_factory() as db:
            assert list(db.scalars(select(AIReport))) == []
