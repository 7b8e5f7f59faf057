"""
Repository for immutable sitemap snapshots and their URLs.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.sitemap_snapshot import SitemapSnapshot, SitemapUrl


class SitemapRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_snapshot(
        self,
        *,
        website_id: uuid.UUID,
        competitor_id: uuid.UUID | None,
        sitemap_url: str,
        blob_url: str | None,
        sitemap_type: str,
        fetched_at: datetime,
        entries: Sequence[dict[str, Any]],
        metadata: dict[str, Any] | None = None,
    ) -> SitemapSnapshot:
        snapshot = SitemapSnapshot(
            website_id=website_id,
            competitor_id=competitor_id,
            sitemap_url=sitemap_url,
            blob_url=blob_url,
            sitemap_type=sitemap_type,
            fetched_at=fetched_at,
            url_count=len(entries),
            metadata_json=metadata,
        )
        snapshot.urls = [
            SitemapUrl(
                ordinal=index,
                url=entry["url"],
                lastmod=entry.get("lastmod"),
                changefreq=entry.get("changefreq"),
                priority=entry.get("priority"),
            )
            for index, entry in enumerate(entries)
        ]
        self._session.add(snapshot)
        self._session.flush()
        return snapshot

    def get_snapshot(
        self,
        website_id: uuid.UUID,
        snapshot_id: uuid.UUID,
    ) -> SitemapSnapshot | None:
        stmt = select(SitemapSnapshot).where(
            SitemapSnapshot.id == snapshot_id,
            SitemapSnapshot.website_id == website_id,
        )
        return self._session.scalars(stmt).first()

    def list_snapshots(
        self,
        website_id: uuid.UUID,
        *,
        competitor_id: uuid.UUID | None = None,
        limit: int = 50,
    ) -> list[SitemapSnapshot]:
        """Snapshots of one owner, newest first. competitor_id=None is the website itself."""
        stmt = select(SitemapSnapshot).where(SitemapSnapshot.website_id == website_id)
        if competitor_id is None:
            stmt = stmt.where(SitemapSnapshot.competitor_id.is_(None))
        else:
            stmt = stmt.where(SitemapSnapshot.competitor_id == competitor_id)
        stmt = stmt.order_by(SitemapSnapshot.fetched_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def previous_snapshot(self, snapshot: SitemapSnapshot) -> SitemapSnapshot | None:
        stmt = select(SitemapSnapshot).where(
            SitemapSnapshot.website_id == snapshot.website_id,
            SitemapSnapshot.id != snapshot.id,
            SitemapSnapshot.fetched_at <= snapshot.fetched_at,
        )
        if snapshot.competitor_id is None:
            stmt = stmt.where(SitemapSnapshot.competitor_id.is_(None))
        else:
            stmt = stmt.where(SitemapSnapshot.competitor_id == snapshot.competitor_id)
        stmt = stmt.order_by(SitemapSnapshot.fetched_at.desc()).limit(1)
        return self._session.scalars(stmt).first()

    def list_urls(self, snapshot_id: uuid.UUID) -> list[str]:
        stmt = (
            select(SitemapUrl.url)
            .where(SitemapUrl.snapshot_id == snapshot_id)
            .order_by(SitemapUrl.ordinal.asc())
        )
        return list(self._session.scalars(stmt).all())
