"""
tests/test_planner.py

Periodic SERP and report job planning from organization cadences.
"""

from __future__ import annotations

from datetime import timedelta

from app.jobs.payloads import PRIORITY_PERIODIC_REPORT, PRIORITY_PERIODIC_SERP
from app.jobs.planner import PeriodicJobPlanner, is_due
from db.models import Website
from db.models.analysis_job import AnalysisJobType
from db.models.organization import WebsiteStatus


def _complete_all(store, clock) -> None:
    for job in store.list_jobs():
        store.mark_running(job.id, now=clock())
        store.mark_terminal(job.id, success=True, now=clock(), result={})


class TestIsDue:
    def test_never_completed_is_due(self, clock) -> None:
        assert is_due(None, clock(), 24)

    def test_inside_window_is_not_due(self, clock) -> None:
        assert not is_due(clock() - timedelta(hours=23), clock(), 24)

    def test_outside_window_is_due(self, clock) -> None:
        assert is_due(clock() - timedelta(hours=25), clock(), 24)


class TestPeriodicJobPlanner:
    def test_first_run_creates_serp_and_report_jobs(
        self, session_factory, queue, store, seed, clock
    ) -> None:
        summary = PeriodicJobPlanner(session_factory, queue, clock=clock).run()

        assert summary.websites_checked == 1
        assert summary.jobs_created == 3
        jobs = store.list_jobs(website_id=seed.website_id)
        serp = [job for job in jobs if job.job_type == AnalysisJobType.SERP_ANALYSIS]
        reports = [job for job in jobs if job.job_type == AnalysisJobType.AI_REPORT]
        assert len(serp) == 2
        assert {job.priority for job in serp} == {PRIORITY_PERIODIC_SERP}
        assert [job.priority for job in reports] == [PRIORITY_PERIODIC_REPORT]

    def test_second_run_skips_active_jobs(self, session_factory, queue, seed, clock) -> None:
        planner = PeriodicJobPlanner(session_factory, queue, clock=clock)
        planner.run()

        summary = planner.run()

        assert summary.jobs_created == 0
        assert summary.conflicts_skipped == 3
        assert summary.errors == []

    def test_recently_completed_work_is_not_replanned(
        self, session_factory, queue, store, seed, clock
    ) -> None:
        planner = PeriodicJobPlanner(session_factory, queue, clock=clock)
        planner.run()
        _complete_all(store, clock)

        clock.advance(hours=25)
        summary = planner.run()

        # SERP cadence is 24h, report cadence is 168h.
        assert summary.jobs_created == 2
        assert summary.conflicts_skipped == 0

    def test_paused_websites_are_ignored(self, session_factory, queue, seed, clock) -> None:
        with session_factory() as db, db.begin():
            db.get(Website, seed.website_id).status = WebsiteStatus.PAUSED

        summary = PeriodicJobPlanner(session_factory, queue, clock=clock).run()

        assert summary.websites_checked == 0
        assert summary.jobs_created == 0
