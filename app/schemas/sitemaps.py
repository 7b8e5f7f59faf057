"""
app/schemas/sitemaps.py

Response schemas for sitemap snapshot history and diffs.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SitemapSnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    website_id: UUID
    competitor_id: UUID | None = None
    sitemap_url: str
    sitemap_type: str
    url_count: int
    blob_url: str | None = None
    fetched_at: datetime


class SitemapHistoryResponse(BaseModel):
    snapshots: list[SitemapSnapshotResponse] = Field(default_factory=list)


class SitemapDiffResponse(BaseModel):
    snapshot: SitemapSnapshotResponse
    compare_to: SitemapSnapshotResponse | None = None
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    added_count: int = Field(..., ge=0)
    removed_count: int = Field(..., ge=0)
    unchanged: int = Field(..., ge=0)
