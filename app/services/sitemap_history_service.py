"""
app/services/sitemap_history_service.py

Read side of sitemap snapshots: per-owner history and snapshot diffs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.orm import Session

from app.jobs.errors import NotFoundError, ValidationError
from db.models.sitemap_snapshot import SitemapSnapshot
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.sitemap_repository import SitemapRepository
from db.repositories.website_repository import WebsiteRepository
from ranking.sitemap_diff import SitemapDiff, diff


@dataclass(frozen=True)
class SnapshotComparison:
    snapshot: SitemapSnapshot
    compare_to: SitemapSnapshot | None
    changes: SitemapDiff


class SitemapHistoryService:
    def history(
        self,
        *,
        db: Session,
        website_id: uuid.UUID,
        competitor_id: uuid.UUID | None = None,
        limit: int = 50,
    ) -> list[SitemapSnapshot]:
        self._require_owner(db, website_id, competitor_id)
        return SitemapRepository(db).list_snapshots(
            website_id,
            competitor_id=competitor_id,
            limit=limit,
        )

    def compare(
        self,
        *,
        db: Session,
        website_id: uuid.UUID,
        snapshot_id: uuid.UUID,
        compare_to: uuid.UUID | None = None,
    ) -> SnapshotComparison:
        """
        Diff a snapshot against `compare_to`, or against the previous snapshot
        of the same owner when none is given. A first snapshot diffs against
        nothing, so all of its URLs are reported as added.
        """

        self._require_owner(db, website_id, None)
        sitemaps = SitemapRepository(db)
        snapshot = sitemaps.get_snapshot(website_id, snapshot_id)
        if snapshot is None:
            raise NotFoundError(f"Sitemap snapshot '{snapshot_id}' was not found.")

        if compare_to is not None:
            if compare_to == snapshot_id:
                raise ValidationError("A snapshot cannot be compared with itself.")
            baseline = sitemaps.get_snapshot(website_id, compare_to)
            if baseline is None:
                raise NotFoundError(f"Sitemap snapshot '{compare_to}' was not found.")
        else:
            baseline = sitemaps.previous_snapshot(snapshot)

        baseline_urls = sitemaps.list_urls(baseline.id) if baseline is not None else []
        return SnapshotComparison(
            snapshot=snapshot,
            compare_to=baseline,
            changes=diff(sitemaps.list_urls(snapshot.id), baseline_urls),
        )

    @staticmethod
    def _require_owner(
        db: Session,
        website_id: uuid.UUID,
        competitor_id: uuid.UUID | None,
    ) -> None:
        if WebsiteRepository(db).get_website(website_id) is None:
            raise NotFoundError(f"Website '{website_id}' was not found.")
        if competitor_id is not None:
            if CompetitorRepository(db).get_competitor(website_id, competitor_id) is None:
                raise NotFoundError(f"Competitor '{competitor_id}' was not found.")


@lru_cache(maxsize=1)
def get_sitemap_history_service() -> SitemapHistoryService:
    return SitemapHistoryService()
