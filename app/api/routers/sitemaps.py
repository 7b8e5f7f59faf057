"""
app/api/routers/sitemaps.py

Sitemap snapshot history and diff endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.schemas.sitemaps import (
    SitemapDiffResponse,
    SitemapHistoryResponse,
    SitemapSnapshotResponse,
)
from app.services.sitemap_history_service import (
    SitemapHistoryService,
    get_sitemap_history_service,
)
from db.session import get_db

router = APIRouter(tags=["sitemaps"])


@router.get("/websites/{website_id}/sitemap/history", response_model=SitemapHistoryResponse)
def get_website_sitemap_history(
    website_id: UUID,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    service: SitemapHistoryService = Depends(get_sitemap_history_service),
) -> SitemapHistoryResponse:
    snapshots = service.history(db=db, website_id=website_id, limit=limit)
    return SitemapHistoryResponse(
        snapshots=[SitemapSnapshotResponse.model_validate(item) for item in snapshots]
    )


@router.get(
    "/websites/{website_id}/competitors/{competitor_id}/sitemap/history",
    response_model=SitemapHistoryResponse,
)
def get_competitor_sitemap_history(
    website_id: UUID,
    competitor_id: UUID,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    service: SitemapHistoryService = Depends(get_sitemap_history_service),
) -> SitemapHistoryResponse:
    snapshots = service.history(
        db=db,
        website_id=website_id,
        competitor_id=competitor_id,
        limit=limit,
    )
    return SitemapHistoryResponse(
        snapshots=[SitemapSnapshotResponse.model_validate(item) for item in snapshots]
    )


@router.get("/websites/{website_id}/sitemap/diff", response_model=SitemapDiffResponse)
def get_sitemap_diff(
    website_id: UUID,
    snapshot_id: UUID = Query(..., description="Newer snapshot"),
    compare_to: UUID | None = Query(
        default=None,
        description="Older snapshot, defaults to the previous snapshot of the same owner",
    ),
    db: Session = Depends(get_db),
    service: SitemapHistoryService = Depends(get_sitemap_history_service),
) -> SitemapDiffResponse:
    comparison = service.compare(
        db=db,
        website_id=website_id,
        snapshot_id=snapshot_id,
        compare_to=compare_to,
    )
    baseline = comparison.compare_to
    return SitemapDiffResponse(
        snapshot=SitemapSnapshotResponse.model_validate(comparison.snapshot),
        compare_to=SitemapSnapshotResponse.model_validate(baseline) if baseline else None,
        added=comparison.changes.added,
        removed=comparison.changes.removed,
        added_count=len(comparison.changes.added),
        removed_count=len(comparison.changes.removed),
        unchanged=comparison.changes.unchanged,
    )
