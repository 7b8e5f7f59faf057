"""
app/api/routers package marker.
"""

from app.api.routers.competitors import router as competitors_router
from app.api.routers.cron import router as cron_router
from app.api.routers.jobs import router as jobs_router
from app.api.routers.sitemaps import router as sitemaps_router

__all__ = [
    "competitors_router",
    "cron_router",
    "jobs_router",
    "sitemaps_router",
]
