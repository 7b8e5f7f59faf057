"""
app/schemas package marker.
"""

from app.schemas.competitors import CompetitorScoreResponse
from app.schemas.cron import ProcessJobsResponse, ScheduleJobsResponse
from app.schemas.health import HealthResponse
from app.schemas.jobs import (
    AnalyzeQueriesRequest,
    AnalyzeQueriesResponse,
    JobAcceptedResponse,
    JobListResponse,
    JobResponse,
    ReportTriggerRequest,
    SitemapTriggerRequest,
    TriggerRequest,
)
from app.schemas.sitemaps import (
    SitemapDiffResponse,
    SitemapHistoryResponse,
    SitemapSnapshotResponse,
)

__all__ = [
    "AnalyzeQueriesRequest",
    "AnalyzeQueriesResponse",
    "CompetitorScoreResponse",
    "HealthResponse",
    "JobAcceptedResponse",
    "JobListResponse",
    "JobResponse",
    "ProcessJobsResponse",
    "ReportTriggerRequest",
    "ScheduleJobsResponse",
    "SitemapDiffResponse",
    "SitemapHistoryResponse",
    "SitemapSnapshotResponse",
    "SitemapTriggerRequest",
    "TriggerRequest",
]
