"""
app/scheduler/jobs.py

APScheduler wiring for the analysis job engine.

Schedule (all times UTC)
--------------------------
  dispatch_jobs  - every JOB_DISPATCH_INTERVAL_SECONDS, one instance at a time
  plan_jobs      - daily at PLANNER_CRON_HOUR:PLANNER_CRON_MINUTE

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py,
or run standalone by ``scripts/run_job_worker.py``.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_scheduler_settings
from app.jobs.factory import get_job_dispatcher, get_job_planner

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: dispatch due analysis jobs
# ---------------------------------------------------------------------------


def run_dispatch() -> None:
    """
    Run one dispatcher batch. Failures are logged so the interval job keeps
    its schedule.
    """
    try:
        summary = get_job_dispatcher().run_once()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scheduler: dispatch_jobs failed: %s", exc)
        return
    if summary.processed:
        logger.info(
            "Scheduler: dispatch_jobs processed=%d succeeded=%d failed=%d",
            summary.processed,
            summary.succeeded,
            summary.failed,
        )


# ---------------------------------------------------------------------------
# Job: plan periodic SERP and report jobs
# ---------------------------------------------------------------------------


def run_planner() -> None:
    logger.info("Scheduler: plan_jobs starting")
    try:
        summary = get_job_planner().run()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scheduler: plan_jobs failed: %s", exc)
        return
    logger.info(
        "Scheduler: plan_jobs complete websites=%d created=%d skipped=%d",
        summary.websites_checked,
        summary.jobs_created,
        summary.conflicts_skipped,
    )


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register the dispatcher and planner jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_dispatch,
        trigger="interval",
        seconds=settings.dispatch_interval_seconds,
        id="dispatch_jobs",
        name="Analysis job dispatcher",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        run_planner,
        trigger="cron",
        hour=settings.planner_hour,
        minute=settings.planner_minute,
        id="plan_jobs",
        name="Periodic job planner",
        replace_existing=True,
        misfire_grace_time=3600,
        coalesce=True,
    )

    return scheduler
