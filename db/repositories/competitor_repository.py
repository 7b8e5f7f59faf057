"""
Repository for competitors of a website.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.competitor import Competitor
from ranking.domains import domain_matches, normalize_domain


class CompetitorRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_competitor(
        self,
        website_id: uuid.UUID,
        competitor_id: uuid.UUID,
    ) -> Competitor | None:
        stmt = select(Competitor).where(
            Competitor.id == competitor_id,
            Competitor.website_id == website_id,
        )
        return self._session.scalars(stmt).first()

    def list_competitors(
        self,
        website_id: uuid.UUID,
        *,
        active_only: bool = False,
    ) -> list[Competitor]:
        stmt = select(Competitor).where(Competitor.website_id == website_id)
        if active_only:
            stmt = stmt.where(Competitor.is_active.is_(True))
        stmt = stmt.order_by(Competitor.created_at.asc())
        return list(self._session.scalars(stmt).all())

    def find_by_domain(self, website_id: uuid.UUID, domain: str) -> Competitor | None:
        """
        Return the first competitor, active or not, whose URL is on `domain`
        or on one of its subdomains.
        """

        for competitor in self.list_competitors(website_id):
            if domain_matches(competitor.url, domain) or domain_matches(domain, competitor.url):
                return competitor
        return None

    def create_competitor(
        self,
        *,
        website_id: uuid.UUID,
        name: str,
        url: str,
        description: str | None = None,
    ) -> Competitor:
        competitor = Competitor(
            website_id=website_id,
            name=name,
            url=url,
            description=description,
            is_active=True,
        )
        self._session.add(competitor)
        self._session.flush()
        return competitor

    def get_or_create_for_domain(
        self,
        *,
        website_id: uuid.UUID,
        domain: str,
        description: str,
    ) -> tuple[Competitor, bool]:
        normalized = normalize_domain(domain)
        existing = self.find_by_domain(website_id, normalized)
        if existing is not None:
            return existing, False
        created = self.create_competitor(
            website_id=website_id,
            name=normalized,
            url=f"https://{normalized}",
            description=description,
        )
        return created, True

    def record_sitemap_fetch(
        self,
        competitor: Competitor,
        *,
        sitemap_url: str,
        fetched_at: datetime,
    ) -> None:
        competitor.sitemap_url = sitemap_url
        competitor.last_sitemap_fetch = fetched_at
        self._session.flush()
