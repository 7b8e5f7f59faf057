"""
app/schemas/cron.py

Response schemas for the cron endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProcessJobsResponse(BaseModel):
    success: bool = True
    processed: int = Field(..., ge=0)
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class ScheduleJobsResponse(BaseModel):
    success: bool = True
    websites_checked: int = Field(..., ge=0)
    jobs_created: int = Field(..., ge=0)
    conflicts_skipped: int = Field(..., ge=0)
    errors: list[str] = Field(default_factory=list)
