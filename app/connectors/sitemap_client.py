"""
app/connectors/sitemap_client.py

Sitemap discovery and parsing.

Discovery order: an explicit sitemap URL, the common locations, then the
`Sitemap:` lines of robots.txt. Sitemap indexes are followed one level deep
up to a configured number of child sitemaps.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urljoin
from urllib.robotparser import RobotFileParser

import requests

from app.config import ExternalHTTPSettings, SitemapSettings
from app.connectors.base import ConnectorRequestError, HTTPConnector
from app.logging_utils import log_event

logger = logging.getLogger(__name__)

COMMON_SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap/sitemap.xml")


class SitemapNotFoundError(ConnectorRequestError):
    """Raised when no sitemap can be located for a site."""


@dataclass(frozen=True)
class SitemapEntry:
    url: str
    lastmod: str | None = None
    changefreq: str | None = None
    priority: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "lastmod": self.lastmod,
            "changefreq": self.changefreq,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class ParsedSitemap:
    kind: str
    entries: list[SitemapEntry] = field(default_factory=list)
    child_sitemaps: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SitemapFetchResult:
    sitemap_url: str
    sitemap_type: str
    entries: list[SitemapEntry]
    documents: dict[str, str] = field(default_factory=dict)

    @property
    def urls(self) -> list[str]:
        return [entry.url for entry in self.entries]


class SitemapFetcher(Protocol):
    def fetch_sitemap(self, site_url: str, *, sitemap_url: str | None = None) -> SitemapFetchResult: ...


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower()


def _child_text(node: ET.Element, name: str) -> str | None:
    for child in node:
        if _local_name(child.tag) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def parse_sitemap_xml(document: str) -> ParsedSitemap:
    """
    Parse a `<urlset>` or `<sitemapindex>` document, ignoring namespaces.

    Raises ValueError for anything that is not one of the two sitemap roots.
    """

    try:
        root = ET.fromstring(document.strip().encode("utf-8"))
    except ET.ParseError as exc:
        raise ValueError(f"Invalid sitemap XML: {exc}") from exc

    root_name = _local_name(root.tag)
    if root_name == "sitemapindex":
        children = [
            loc
            for node in root
            if _local_name(node.tag) == "sitemap" and (loc := _child_text(node, "loc"))
        ]
        return ParsedSitemap(kind="index", child_sitemaps=children)

    if root_name != "urlset":
        raise ValueError(f"Unexpected sitemap root element <{root_name}>")

    entries: list[SitemapEntry] = []
    seen: set[str] = set()
    for node in root:
        if _local_name(node.tag) != "url":
            continue
        loc = _child_text(node, "loc")
        if not loc or loc in seen:
            continue
        seen.add(loc)
        raw_priority = _child_text(node, "priority")
        try:
            priority = float(raw_priority) if raw_priority is not None else None
        except ValueError:
            priority = None
        entries.append(
            SitemapEntry(
                url=loc,
                lastmod=_child_text(node, "lastmod"),
                changefreq=_child_text(node, "changefreq"),
                priority=priority,
            )
        )
    return ParsedSitemap(kind="single", entries=entries)


class HTTPSitemapClient(HTTPConnector):
    def __init__(
        self,
        *,
        sitemap_settings: SitemapSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="sitemap", http_settings=http_settings, session=session)
        self._settings = sitemap_settings

    def fetch_sitemap(self, site_url: str, *, sitemap_url: str | None = None) -> SitemapFetchResult:
        tried: set[str] = set()
        primary = ([sitemap_url] if sitemap_url else []) + [
            urljoin(site_url, path) for path in COMMON_SITEMAP_PATHS
        ]
        for candidate in primary:
            result = self._attempt(candidate, tried)
            if result is not None:
                return result

        # robots.txt is only consulted once the usual locations came up empty.
        for candidate in self._robots_sitemaps(site_url):
            result = self._attempt(candidate, tried)
            if result is not None:
                return result

        raise SitemapNotFoundError(
            f"No sitemap found for {site_url}",
            service=self.source,
        )

    def _attempt(self, candidate: str, tried: set[str]) -> SitemapFetchResult | None:
        if candidate in tried:
            return None
        tried.add(candidate)
        document = self._try_fetch(candidate)
        if document is None:
            return None
        try:
            parsed = parse_sitemap_xml(document)
        except ValueError as exc:
            logger.info("Skipping sitemap candidate url=%s: %s", candidate, exc)
            return None
        return self._resolve(candidate, document, parsed)

    def _robots_sitemaps(self, site_url: str) -> list[str]:
        robots_url = urljoin(site_url, "/robots.txt")
        document = self._try_fetch(robots_url)
        if not document:
            return []
        parser = RobotFileParser()
        parser.set_url(robots_url)
        parser.parse(document.splitlines())
        return list(parser.site_maps() or [])

    def _try_fetch(self, url: str) -> str | None:
        try:
            response = self._request_text(method="GET", url=url)
        except ConnectorRequestError as exc:
            logger.debug("Sitemap candidate unavailable url=%s: %s", url, exc)
            return None
        return response.text

    def _resolve(self, sitemap_url: str, document: str, parsed: ParsedSitemap) -> SitemapFetchResult:
        if parsed.kind == "single":
            limited = parsed.entries[: self._settings.max_urls]
            log_event(
                logger,
                logging.INFO,
                "sitemap_fetched",
                sitemap_url=sitemap_url,
                sitemap_type="single",
                url_count=len(limited),
            )
            return SitemapFetchResult(
                sitemap_url=sitemap_url,
                sitemap_type="single",
                entries=limited,
                documents={sitemap_url: document},
            )

        documents = {sitemap_url: document}
        entries: list[SitemapEntry] = []
        seen: set[str] = set()
        for child_url in parsed.child_sitemaps[: self._settings.max_child_sitemaps]:
            child_document = self._try_fetch(child_url)
            if child_document is None:
                continue
            try:
                child = parse_sitemap_xml(child_document)
            except ValueError as exc:
                logger.warning("Skipping child sitemap url=%s: %s", child_url, exc)
                continue
            documents[child_url] = child_document
            for entry in child.entries:
                if entry.url in seen:
                    continue
                seen.add(entry.url)
                entries.append(entry)
            if len(entries) >= self._settings.max_urls:
                break

        entries = entries[: self._settings.max_urls]
        log_event(
            logger,
            logging.INFO,
            "sitemap_fetched",
            sitemap_url=sitemap_url,
            sitemap_type="index",
            children=len(documents) - 1,
            url_count=len(entries),
        )
        return SitemapFetchResult(
            sitemap_url=sitemap_url,
            sitemap_type="index",
            entries=entries,
            documents=documents,
        )
