"""
Repository layer exports.
"""

from db.repositories.analysis_job_repository import FORCE_CANCEL_MESSAGE, AnalysisJobRepository
from db.repositories.analysis_repository import AnalysisRepository
from db.repositories.competitor_repository import CompetitorRepository
from db.repositories.serp_result_repository import SerpResultRepository
from db.repositories.sitemap_repository import SitemapRepository
from db.repositories.website_repository import WebsiteRepository

__all__ = [
    "AnalysisJobRepository",
    "AnalysisRepository",
    "CompetitorRepository",
    "SerpResultRepository",
    "SitemapRepository",
    "WebsiteRepository",
    "FORCE_CANCEL_MESSAGE",
]
