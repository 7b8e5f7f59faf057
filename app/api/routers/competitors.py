"""
app/api/routers/competitors.py

Competitive score read endpoint.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.schemas.competitors import CompetitorScoreResponse
from app.services.competitor_score_service import (
    CompetitorScoreService,
    get_competitor_score_service,
)
from db.session import get_db

router = APIRouter(tags=["competitors"])


@router.get(
    "/websites/{website_id}/competitors/{competitor_id}/score",
    response_model=CompetitorScoreResponse,
)
def get_competitor_score(
    website_id: UUID,
    competitor_id: UUID,
    db: Session = Depends(get_db),
    service: CompetitorScoreService = Depends(get_competitor_score_service),
) -> CompetitorScoreResponse:
    """
    Compare the latest position of every query between the website and one
    competitor.
    """

    result = service.score_competitor(db=db, website_id=website_id, competitor_id=competitor_id)
    return CompetitorScoreResponse(
        website_id=result.website_id,
        competitor_id=result.competitor_id,
        competitor_name=result.competitor_name,
        better=result.score.better,
        worse=result.score.worse,
        total=result.score.total,
        net_score=result.score.net_score,
        self_positions=result.self_positions,
        competitor_positions=result.competitor_positions,
    )
