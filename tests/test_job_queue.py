"""
tests/test_job_queue.py

Enqueue deduplication, force cancellation and the claim / terminal state
transitions of the SQLAlchemy job store.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from app.jobs.errors import ConflictError, NotFoundError, ValidationError
from app.jobs.payloads import (
    PRIORITY_MANUAL,
    PRIORITY_PERIODIC_REPORT,
    PRIORITY_PERIODIC_SERP,
    SerpAnalysisPayload,
    SitemapFetchPayload,
)
from db.models.analysis_job import AnalysisJobStatus, AnalysisJobType
from db.repositories.analysis_job_repository import FORCE_CANCEL_MESSAGE


def _enqueue_serp(queue, seed, *, query_index: int = 0, force: bool = False, priority: int = PRIORITY_MANUAL):
    return queue.enqueue(
        website_id=seed.website_id,
        job_type=AnalysisJobType.SERP_ANALYSIS,
        payload=SerpAnalysisPayload(search_query_id=seed.query_ids[query_index], query="q"),
        priority=priority,
        force=force,
    )


# ---------------------------------------------------------------------------
# Enqueue
# ---------------------------------------------------------------------------


class TestEnqueue:
    def test_new_job_is_pending(self, queue, seed, clock) -> None:
        result = _enqueue_serp(queue, seed)
        job = result.job
        assert job.status == AnalysisJobStatus.PENDING
        assert job.attempts == 0
        assert job.max_attempts == 3
        assert job.priority == PRIORITY_MANUAL
        assert job.scheduled_at == clock()
        assert job.target_key == f"query:{seed.query_ids[0]}"
        assert job.payload["type"] == AnalysisJobType.SERP_ANALYSIS
        assert result.cancelled_count == 0

    def test_duplicate_active_job_conflicts(self, queue, seed) -> None:
        first = _enqueue_serp(queue, seed).job
        with pytest.raises(ConflictError) as excinfo:
            _enqueue_serp(queue, seed)
        assert excinfo.value.existing_job["id"] == str(first.id)
        assert excinfo.value.existing_job["status"] == AnalysisJobStatus.PENDING

    def test_different_targets_do_not_conflict(self, queue, seed) -> None:
        _enqueue_serp(queue, seed, query_index=0)
        _enqueue_serp(queue, seed, query_index=1)
        queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.SITEMAP_FETCH,
            payload=SitemapFetchPayload(),
            priority=PRIORITY_MANUAL,
        )
        queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.SITEMAP_FETCH,
            payload=SitemapFetchPayload(competitor_id=seed.competitor_id),
            priority=PRIORITY_MANUAL,
        )

    def test_force_cancels_active_jobs(self, queue, store, seed) -> None:
        first = _enqueue_serp(queue, seed).job
        result = _enqueue_serp(queue, seed, force=True)

        assert result.cancelled_count == 1
        assert result.job.id != first.id
        cancelled = store.get(first.id)
        assert cancelled.status == AnalysisJobStatus.CANCELLED
        assert cancelled.error == FORCE_CANCEL_MESSAGE
        assert store.is_cancelled(first.id)

    def test_force_without_active_job_cancels_nothing(self, queue, seed) -> None:
        assert _enqueue_serp(queue, seed, force=True).cancelled_count == 0

    def test_finished_jobs_do_not_conflict(self, queue, store, seed, clock) -> None:
        job = _enqueue_serp(queue, seed).job
        store.mark_running(job.id, now=clock())
        store.mark_terminal(job.id, success=True, now=clock(), result={})
        assert _enqueue_serp(queue, seed).job.id != job.id

    def test_unknown_website(self, queue) -> None:
        with pytest.raises(NotFoundError):
            queue.enqueue(
                website_id=uuid.uuid4(),
                job_type=AnalysisJobType.INITIAL_ANALYSIS,
                payload={},
                priority=PRIORITY_MANUAL,
            )

    def test_unknown_job_type(self, queue, seed) -> None:
        with pytest.raises(ValidationError):
            queue.enqueue(
                website_id=seed.website_id,
                job_type="keyword_research",
                payload={},
                priority=PRIORITY_MANUAL,
            )

    def test_invalid_payload_is_rejected_before_insert(self, queue, store, seed) -> None:
        with pytest.raises(ValidationError):
            queue.enqueue(
                website_id=seed.website_id,
                job_type=AnalysisJobType.SERP_ANALYSIS,
                payload={"queries": []},
                priority=PRIORITY_MANUAL,
            )
        assert store.list_jobs(website_id=seed.website_id) == []

    def test_max_attempts_must_be_positive(self, queue, seed) -> None:
        with pytest.raises(ValidationError):
            queue.enqueue(
                website_id=seed.website_id,
                job_type=AnalysisJobType.INITIAL_ANALYSIS,
                payload={},
                priority=PRIORITY_MANUAL,
                max_attempts=0,
            )


# ---------------------------------------------------------------------------
# Claim and terminal transitions
# ---------------------------------------------------------------------------


class TestStoreTransitions:
    def test_list_due_orders_by_priority_then_schedule(self, queue, store, seed, clock) -> None:
        low = _enqueue_serp(queue, seed, query_index=0, priority=PRIORITY_PERIODIC_REPORT).job
        high = _enqueue_serp(queue, seed, query_index=1, priority=PRIORITY_MANUAL).job
        mid = queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.SITEMAP_FETCH,
            payload={},
            priority=PRIORITY_PERIODIC_SERP,
        ).job

        due = store.list_due(now=clock(), limit=10)
        assert [job.id for job in due] == [high.id, mid.id, low.id]

    def test_future_jobs_are_not_due(self, queue, store, seed, clock) -> None:
        queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.INITIAL_ANALYSIS,
            payload={},
            priority=PRIORITY_MANUAL,
            scheduled_at=clock() + timedelta(minutes=5),
        )
        assert store.list_due(now=clock(), limit=10) == []
        assert len(store.list_due(now=clock() + timedelta(minutes=5), limit=10)) == 1

    def test_mark_running_is_a_single_claim(self, queue, store, seed, clock) -> None:
        job = _enqueue_serp(queue, seed).job
        claimed = store.mark_running(job.id, now=clock())
        assert claimed is not None
        assert claimed.status == AnalysisJobStatus.RUNNING
        assert claimed.attempts == 1
        assert claimed.started_at == clock()
        assert store.mark_running(job.id, now=clock()) is None

    def test_cancelled_job_cannot_be_claimed(self, queue, store, seed, clock) -> None:
        job = _enqueue_serp(queue, seed).job
        _enqueue_serp(queue, seed, force=True)
        assert store.mark_running(job.id, now=clock()) is None

    def test_mark_terminal_requires_running(self, queue, store, seed, clock) -> None:
        job = _enqueue_serp(queue, seed).job
        assert not store.mark_terminal(job.id, success=True, now=clock(), result={})

        store.mark_running(job.id, now=clock())
        assert store.mark_terminal(job.id, success=False, now=clock(), error="boom")
        failed = store.get(job.id)
        assert failed.status == AnalysisJobStatus.FAILED
        assert failed.error == "boom"
        assert failed.completed_at == clock()

    def test_terminal_write_after_cancel_is_a_no_op(self, queue, store, seed, clock) -> None:
        job = _enqueue_serp(queue, seed).job
        store.mark_running(job.id, now=clock())
        _enqueue_serp(queue, seed, force=True)

        assert not store.mark_terminal(job.id, success=True, now=clock(), result={"x": 1})
        assert store.get(job.id).status == AnalysisJobStatus.CANCELLED

    def test_requeue_returns_job_to_pending(self, queue, store, seed, clock) -> None:
        job = _enqueue_serp(queue, seed).job
        store.mark_running(job.id, now=clock())
        later = clock() + timedelta(minutes=1)
        assert store.requeue(job.id, scheduled_at=later, error="timeout", now=clock())

        requeued = store.get(job.id)
        assert requeued.status == AnalysisJobStatus.PENDING
        assert requeued.scheduled_at == later
        assert requeued.attempts == 1
        assert requeued.error == "timeout"

    def test_exhausted_job_is_never_due(self, queue, store, seed, clock) -> None:
        job = queue.enqueue(
            website_id=seed.website_id,
            job_type=AnalysisJobType.INITIAL_ANALYSIS,
            payload={},
            priority=PRIORITY_MANUAL,
            max_attempts=1,
        ).job
        store.mark_running(job.id, now=clock())
        store.requeue(job.id, scheduled_at=clock(), error="late", now=clock())
        assert store.list_due(now=clock(), limit=10) == []
        assert store.mark_running(job.id, now=clock()) is None

    def test_last_completed_at(self, queue, store, seed, clock) -> None:
        assert (
            store.last_completed_at(
                website_id=seed.website_id, job_type=AnalysisJobType.SERP_ANALYSIS
            )
            is None
        )
        job = _enqueue_serp(queue, seed).job
        store.mark_running(job.id, now=clock())
        finished = clock.advance(minutes=3)
        store.mark_terminal(job.id, success=True, now=finished, result={})
        assert (
            store.last_completed_at(
                website_id=seed.website_id, job_type=AnalysisJobType.SERP_ANALYSIS
            )
            == finished
        )
