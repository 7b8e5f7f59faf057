"""
app/schemas/competitors.py

Response schema for the competitive score endpoint.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field


class CompetitorScoreResponse(BaseModel):
    website_id: UUID
    competitor_id: UUID
    competitor_name: str
    better: int = Field(..., ge=0)
    worse: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    net_score: int
    self_positions: dict[str, int | None] = Field(default_factory=dict)
    competitor_positions: dict[str, int | None] = Field(default_factory=dict)
