"""
db/models/organization.py

Organization, Website and SearchQuery: the tracked-site aggregate the job
engine operates on.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from db.models.competitor import Competitor


class WebsiteStatus:
    ACTIVE = "active"
    ANALYZING = "analyzing"
    ERROR = "error"
    PAUSED = "paused"


class Organization(Base, TimestampMixin):
    """
    Tenant owning websites. Carries the cadence used by the periodic planner.
    """

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    serp_frequency_hours: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=24,
        comment="Minimum hours between two completed periodic SERP runs",
    )
    ai_report_frequency_hours: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=168,
        comment="Minimum hours between two completed periodic AI reports",
    )

    websites: Mapped[list["Website"]] = relationship(
        "Website",
        back_populates="organization",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Organization id={self.id} slug={self.slug!r}>"


class Website(Base, TimestampMixin):
    __tablename__ = "websites"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=WebsiteStatus.ACTIVE,
        comment="active, analyzing, error, paused",
    )
    sitemap_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    last_sitemap_fetch: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    organization: Mapped[Organization] = relationship("Organization", back_populates="websites")
    search_queries: Mapped[list["SearchQuery"]] = relationship(
        "SearchQuery",
        back_populates="website",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    competitors: Mapped[list["Competitor"]] = relationship(
        "Competitor",
        back_populates="website",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_websites_organization_id", "organization_id"),
        Index("ix_websites_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Website id={self.id} url={self.url!r} status={self.status!r}>"


class SearchQuery(Base, TimestampMixin):
    """
    One search query tracked for a website.
    """

    __tablename__ = "search_queries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("websites.id", ondelete="CASCADE"),
        nullable=False,
    )
    query: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    website: Mapped[Website] = relationship("Website", back_populates="search_queries")

    __table_args__ = (
        Index("ix_search_queries_website_id", "website_id"),
        Index("ix_search_queries_website_active", "website_id", "is_active"),
    )
