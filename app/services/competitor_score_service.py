"""
app/services/competitor_score_service.py

Competitive score between a website and one of its competitors.

The website side is the latest position sample of each query. The competitor
side is read from the archived SERP behind that same sample, so a competitor
added after a query was analyzed is still placed on that results page. Stored
competitor samples are used only for queries whose archive is unreadable.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.config import get_blob_storage_settings
from app.jobs.errors import ExternalServiceError, NotFoundError
from app.storage.blob_store import BlobStore, LocalBlobStore
from db.models.serp_result import SerpResult
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.serp_result_repository import SerpResultRepository
from db.repositories.website_repository import WebsiteRepository
from ranking.domains import domain_matches
from ranking.scoring import (
    CompetitiveScore,
    PositionSample,
    latest_positions,
    normalize_query,
    score,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompetitorScoreResult:
    website_id: uuid.UUID
    competitor_id: uuid.UUID
    competitor_name: str
    score: CompetitiveScore
    self_positions: dict[str, int | None]
    competitor_positions: dict[str, int | None]


def to_position_samples(rows: Iterable[SerpResult]) -> list[PositionSample]:
    return [
        PositionSample(query=row.query, position=row.position, observed_at=row.created_at)
        for row in rows
    ]


def latest_samples(rows: Iterable[SerpResult]) -> dict[str, SerpResult]:
    """Most recent row per normalized query; on equal timestamps the first row wins."""
    latest: dict[str, SerpResult] = {}
    for row in rows:
        key = normalize_query(row.query)
        if not key:
            continue
        current = latest.get(key)
        if current is None or row.created_at > current.created_at:
            latest[key] = row
    return latest


def latest_self_positions(
    db: Session,
    website_id: uuid.UUID,
    *,
    since: datetime | None = None,
) -> dict[str, int | None]:
    rows = SerpResultRepository(db).list_self_samples(website_id, since=since)
    return latest_positions(to_position_samples(rows))


def latest_competitor_positions(
    db: Session,
    competitor_id: uuid.UUID,
    *,
    since: datetime | None = None,
) -> dict[str, int | None]:
    rows = SerpResultRepository(db).list_competitor_samples(competitor_id, since=since)
    return latest_positions(to_position_samples(rows))


def position_in_results(results: Iterable[dict[str, Any]], site_url: str) -> int | None:
    """Position of the first archived result on the domain of `site_url`."""
    for item in results:
        if domain_matches(item.get("domain") or item.get("url"), site_url):
            position = item.get("position")
            return position if isinstance(position, int) else None
    return None


class CompetitorScoreService:
    """
    Scores the latest self position of every query against the competitor's
    position on the same archived results page.
    """

    def __init__(self, blob_store: BlobStore | None = None) -> None:
        self._blob_store = blob_store

    def score_competitor(
        self,
        *,
        db: Session,
        website_id: uuid.UUID,
        competitor_id: uuid.UUID,
        since: datetime | None = None,
    ) -> CompetitorScoreResult:
        if WebsiteRepository(db).get_website(website_id) is None:
            raise NotFoundError(f"Website '{website_id}' was not found.")
        competitor = CompetitorRepository(db).get_competitor(website_id, competitor_id)
        if competitor is None:
            raise NotFoundError(f"Competitor '{competitor_id}' was not found.")

        self_rows = SerpResultRepository(db).list_self_samples(website_id, since=since)
        self_positions = latest_positions(to_position_samples(self_rows))
        competitor_positions = latest_competitor_positions(db, competitor_id, since=since)
        for key, row in latest_samples(self_rows).items():
            archived = self._archived_results(row.raw_data_blob_url)
            if archived is not None:
                competitor_positions[key] = position_in_results(archived, competitor.url)

        return CompetitorScoreResult(
            website_id=website_id,
            competitor_id=competitor_id,
            competitor_name=competitor.name,
            score=score(self_positions, competitor_positions),
            self_positions=self_positions,
            competitor_positions=competitor_positions,
        )

    def _archived_results(self, blob_url: str | None) -> list[dict[str, Any]] | None:
        if self._blob_store is None or not blob_url:
            return None
        try:
            data = json.loads(self._blob_store.load(blob_url))
        except (ExternalServiceError, ValueError) as exc:
            logger.warning("Skipping unreadable SERP archive %s: %s", blob_url, exc)
            return None
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return None
        return [item for item in results if isinstance(item, dict)]


@lru_cache(maxsize=1)
def get_competitor_score_service() -> CompetitorScoreService:
    return CompetitorScoreService(LocalBlobStore(get_blob_storage_settings().root_dir))
