"""
app/api/routers/jobs.py

Manual analysis triggers and job status endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.jobs.store import EnqueueResult
from app.schemas.jobs import (
    AnalyzeQueriesRequest,
    AnalyzeQueriesResponse,
    JobAcceptedResponse,
    JobListResponse,
    JobResponse,
    ReportTriggerRequest,
    SitemapTriggerRequest,
    SkippedQuery,
    TriggerRequest,
)
from app.services.analysis_trigger_service import (
    AnalysisTriggerService,
    get_analysis_trigger_service,
)
from db.session import get_db

router = APIRouter(tags=["analysis-jobs"])


def _accepted(result: EnqueueResult) -> JobAcceptedResponse:
    return JobAcceptedResponse(
        job=JobResponse.model_validate(result.job),
        cancelled_count=result.cancelled_count,
    )


@router.post(
    "/websites/{website_id}/queries/{query_id}/serp",
    status_code=status.HTTP_201_CREATED,
    response_model=JobAcceptedResponse,
)
def trigger_query_serp(
    website_id: UUID,
    query_id: UUID,
    request: TriggerRequest | None = None,
    db: Session = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_analysis_trigger_service),
) -> JobAcceptedResponse:
    request = request or TriggerRequest()
    result = service.trigger_query_serp(
        db=db,
        website_id=website_id,
        query_id=query_id,
        force=request.force,
    )
    return _accepted(result)


@router.post(
    "/websites/{website_id}/analyze-queries",
    status_code=status.HTTP_201_CREATED,
    response_model=AnalyzeQueriesResponse,
)
def trigger_queries(
    website_id: UUID,
    request: AnalyzeQueriesRequest,
    db: Session = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_analysis_trigger_service),
) -> AnalyzeQueriesResponse:
    batch = service.trigger_queries(
        db=db,
        website_id=website_id,
        query_ids=request.query_ids,
        force=request.force,
    )
    return AnalyzeQueriesResponse(
        jobs=[JobResponse.model_validate(job) for job in batch.jobs],
        skipped=[SkippedQuery(**item) for item in batch.skipped],
        cancelled_count=batch.cancelled_count,
    )


@router.post(
    "/websites/{website_id}/analyze",
    status_code=status.HTTP_201_CREATED,
    response_model=JobAcceptedResponse,
)
def trigger_initial_analysis(
    website_id: UUID,
    request: TriggerRequest | None = None,
    db: Session = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_analysis_trigger_service),
) -> JobAcceptedResponse:
    request = request or TriggerRequest()
    return _accepted(
        service.trigger_initial_analysis(db=db, website_id=website_id, force=request.force)
    )


@router.post(
    "/websites/{website_id}/sitemap/analyze",
    status_code=status.HTTP_201_CREATED,
    response_model=JobAcceptedResponse,
)
def trigger_website_sitemap(
    website_id: UUID,
    request: SitemapTriggerRequest | None = None,
    db: Session = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_analysis_trigger_service),
) -> JobAcceptedResponse:
    request = request or SitemapTriggerRequest()
    result = service.trigger_sitemap(
        db=db,
        website_id=website_id,
        sitemap_url=request.sitemap_url,
        force=request.force,
    )
    return _accepted(result)


@router.post(
    "/websites/{website_id}/competitors/{competitor_id}/sitemap/analyze",
    status_code=status.HTTP_201_CREATED,
    response_model=JobAcceptedResponse,
)
def trigger_competitor_sitemap(
    website_id: UUID,
    competitor_id: UUID,
    request: SitemapTriggerRequest | None = None,
    db: Session = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_analysis_trigger_service),
) -> JobAcceptedResponse:
    request = request or SitemapTriggerRequest()
    result = service.trigger_sitemap(
        db=db,
        website_id=website_id,
        competitor_id=competitor_id,
        sitemap_url=request.sitemap_url,
        force=request.force,
    )
    return _accepted(result)


@router.post(
    "/websites/{website_id}/reports",
    status_code=status.HTTP_201_CREATED,
    response_model=JobAcceptedResponse,
)
def trigger_report(
    website_id: UUID,
    request: ReportTriggerRequest | None = None,
    db: Session = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_analysis_trigger_service),
) -> JobAcceptedResponse:
    request = request or ReportTriggerRequest()
    result = service.trigger_report(
        db=db,
        website_id=website_id,
        period_days=request.period_days,
        force=request.force,
    )
    return _accepted(result)


@router.get("/jobs/{job_id}", response_model=JobResponse)
def get_job(
    job_id: UUID,
    db: Session = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_analysis_trigger_service),
) -> JobResponse:
    return JobResponse.model_validate(service.get_job(db=db, job_id=job_id))


@router.get("/jobs", response_model=JobListResponse)
def list_jobs(
    website_id: UUID | None = Query(default=None, description="Optional website filter"),
    job_type: str | None = Query(default=None, description="Optional job type filter"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
    db: Session = Depends(get_db),
    service: AnalysisTriggerService = Depends(get_analysis_trigger_service),
) -> JobListResponse:
    jobs = service.list_jobs(
        db=db,
        website_id=website_id,
        job_type=job_type,
        status=status_filter,
        limit=limit,
    )
    return JobListResponse(jobs=[JobResponse.model_validate(job) for job in jobs])
