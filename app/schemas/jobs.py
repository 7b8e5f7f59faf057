"""
app/schemas/jobs.py

Request and response schemas for analysis job triggers and job status.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TriggerRequest(BaseModel):
    force: bool = False


class AnalyzeQueriesRequest(BaseModel):
    query_ids: list[UUID] = Field(..., min_length=1)
    force: bool = False


class SitemapTriggerRequest(BaseModel):
    sitemap_url: str | None = None
    force: bool = False


class ReportTriggerRequest(BaseModel):
    period_days: int | None = Field(default=None, ge=1, le=365)
    force: bool = False


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    website_id: UUID
    job_type: str
    status: str
    priority: int
    target_key: str
    attempts: int
    max_attempts: int
    payload: dict[str, Any] | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    scheduled_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime


class JobAcceptedResponse(BaseModel):
    success: bool = True
    job: JobResponse
    cancelled_count: int = Field(default=0, ge=0)


class SkippedQuery(BaseModel):
    query_id: UUID
    existing_job: dict[str, Any]


class AnalyzeQueriesResponse(BaseModel):
    success: bool = True
    jobs: list[JobResponse] = Field(default_factory=list)
    skipped: list[SkippedQuery] = Field(default_factory=list)
    cancelled_count: int = Field(default=0, ge=0)


class JobListResponse(BaseModel):
    jobs: list[JobResponse] = Field(default_factory=list)
