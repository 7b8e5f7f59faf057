"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.analysis import AIReport, AIReportType, PageAnalysis
from db.models.analysis_job import AnalysisJob, AnalysisJobStatus, AnalysisJobType
from db.models.competitor import Competitor
from db.models.organization import Organization, SearchQuery, Website, WebsiteStatus
from db.models.serp_result import SerpResult
from db.models.sitemap_snapshot import SitemapSnapshot, SitemapUrl

__all__ = [
    "Organization",
    "Website",
    "WebsiteStatus",
    "SearchQuery",
    "Competitor",
    "SerpResult",
    "SitemapSnapshot",
    "SitemapUrl",
    "PageAnalysis",
    "AIReport",
    "AIReportType",
    "AnalysisJob",
    "AnalysisJobStatus",
    "AnalysisJobType",
]
