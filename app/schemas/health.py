"""
app/schemas/health.py
"""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    environment: str
    scheduler_enabled: bool
