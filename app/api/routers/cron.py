"""
app/api/routers/cron.py

Externally triggered dispatcher and planner runs, for deployments that drive
the job engine from an outside scheduler instead of the in-process one.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import verify_cron_secret
from app.jobs.dispatcher import JobDispatcher
from app.jobs.factory import get_job_dispatcher, get_job_planner
from app.jobs.planner import PeriodicJobPlanner
from app.schemas.cron import ProcessJobsResponse, ScheduleJobsResponse

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])


@router.api_route("/process-jobs", methods=["GET", "POST"], response_model=ProcessJobsResponse)
def process_jobs(
    dispatcher: JobDispatcher = Depends(get_job_dispatcher),
) -> ProcessJobsResponse:
    summary = dispatcher.run_once()
    return ProcessJobsResponse(
        processed=summary.processed,
        succeeded=summary.succeeded,
        failed=summary.failed,
    )


@router.api_route("/schedule-jobs", methods=["GET", "POST"], response_model=ScheduleJobsResponse)
def schedule_jobs(
    planner: PeriodicJobPlanner = Depends(get_job_planner),
) -> ScheduleJobsResponse:
    summary = planner.run()
    return ScheduleJobsResponse(
        websites_checked=summary.websites_checked,
        jobs_created=summary.jobs_created,
        conflicts_skipped=summary.conflicts_skipped,
        errors=summary.errors,
    )
