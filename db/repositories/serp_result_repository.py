"""
Repository for position samples.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.serp_result import SerpResult


class SerpResultRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add_sample(
        self,
        *,
        website_id: uuid.UUID,
        query: str,
        position: int | None,
        search_query_id: uuid.UUID | None = None,
        competitor_id: uuid.UUID | None = None,
        url: str | None = None,
        title: str | None = None,
        snippet: str | None = None,
        country: str = "FR",
        device: str = "desktop",
        raw_data_blob_url: str | None = None,
        observed_at: datetime | None = None,
    ) -> SerpResult:
        sample = SerpResult(
            website_id=website_id,
            search_query_id=search_query_id,
            competitor_id=competitor_id,
            query=query,
            position=position,
            url=url,
            title=title,
            snippet=snippet,
            search_engine="google",
            country=country.upper(),
            device=device,
            raw_data_blob_url=raw_data_blob_url,
        )
        if observed_at is not None:
            sample.created_at = observed_at
            sample.updated_at = observed_at
        self._session.add(sample)
        self._session.flush()
        return sample

    def list_self_samples(
        self,
        website_id: uuid.UUID,
        *,
        since: datetime | None = None,
    ) -> list[SerpResult]:
        stmt = select(SerpResult).where(
            SerpResult.website_id == website_id,
            SerpResult.competitor_id.is_(None),
        )
        if since is not None:
            stmt = stmt.where(SerpResult.created_at >= since)
        stmt = stmt.order_by(SerpResult.created_at.desc())
        return list(self._session.scalars(stmt).all())

    def list_competitor_samples(
        self,
        competitor_id: uuid.UUID,
        *,
        since: datetime | None = None,
    ) -> list[SerpResult]:
        stmt = select(SerpResult).where(SerpResult.competitor_id == competitor_id)
        if since is not None:
            stmt = stmt.where(SerpResult.created_at >= since)
        stmt = stmt.order_by(SerpResult.created_at.desc())
        return list(self._session.scalars(stmt).all())
