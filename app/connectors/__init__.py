"""
app/connectors package marker.
"""

from app.connectors.base import ConnectorRequestError, HTTPConnector
from app.connectors.page_client import HTTPPageClient, PageFetcher
from app.connectors.serp_client import BrightDataSerpClient, SerpFetcher
from app.connectors.sitemap_client import HTTPSitemapClient, SitemapFetcher

__all__ = [
    "HTTPConnector",
    "ConnectorRequestError",
    "BrightDataSerpClient",
    "SerpFetcher",
    "HTTPSitemapClient",
    "SitemapFetcher",
    "HTTPPageClient",
    "PageFetcher",
]
