"""
Repository for organizations, websites and their tracked search queries.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db.models.organization import Organization, SearchQuery, Website, WebsiteStatus


class WebsiteRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_website(self, website_id: uuid.UUID) -> Website | None:
        return self._session.get(Website, website_id)

    def get_organization(self, organization_id: uuid.UUID) -> Organization | None:
        return self._session.get(Organization, organization_id)

    def list_organizations(self) -> list[Organization]:
        stmt = select(Organization).order_by(Organization.created_at.asc())
        return list(self._session.scalars(stmt).all())

    def list_active_websites(self, organization_id: uuid.UUID) -> list[Website]:
        stmt = (
            select(Website)
            .where(
                Website.organization_id == organization_id,
                Website.status == WebsiteStatus.ACTIVE,
            )
            .order_by(Website.created_at.asc())
        )
        return list(self._session.scalars(stmt).all())

    def set_status(self, website_id: uuid.UUID, status: str) -> Website | None:
        website = self.get_website(website_id)
        if website is None:
            return None
        website.status = status
        self._session.flush()
        return website

    def record_sitemap_fetch(
        self,
        website_id: uuid.UUID,
        *,
        sitemap_url: str,
        fetched_at: datetime,
    ) -> None:
        website = self.get_website(website_id)
        if website is None:
            return
        website.sitemap_url = sitemap_url
        website.last_sitemap_fetch = fetched_at
        self._session.flush()

    def get_search_query(
        self,
        website_id: uuid.UUID,
        search_query_id: uuid.UUID,
    ) -> SearchQuery | None:
        stmt = select(SearchQuery).where(
            SearchQuery.id == search_query_id,
            SearchQuery.website_id == website_id,
        )
        return self._session.scalars(stmt).first()

    def list_search_queries(
        self,
        website_id: uuid.UUID,
        *,
        active_only: bool = True,
        query_ids: list[uuid.UUID] | None = None,
    ) -> list[SearchQuery]:
        stmt = select(SearchQuery).where(SearchQuery.website_id == website_id)
        if active_only:
            stmt = stmt.where(SearchQuery.is_active.is_(True))
        if query_ids is not None:
            stmt = stmt.where(SearchQuery.id.in_(query_ids))
        stmt = stmt.order_by(SearchQuery.created_at.asc())
        return list(self._session.scalars(stmt).all())

    def find_search_query_by_text(
        self,
        website_id: uuid.UUID,
        query: str,
    ) -> SearchQuery | None:
        stmt = (
            select(SearchQuery)
            .where(
                SearchQuery.website_id == website_id,
                func.lower(func.trim(SearchQuery.query)) == query.strip().lower(),
            )
            .order_by(SearchQuery.created_at.asc())
        )
        return self._session.scalars(stmt).first()
