"""
app/connectors/page_client.py

HTML page fetching and on-page SEO extraction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests
from bs4 import BeautifulSoup

from app.config import ExternalHTTPSettings
from app.connectors.base import HTTPConnector

_WHITESPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"\w+", flags=re.UNICODE)


@dataclass(frozen=True)
class FetchedPage:
    url: str
    status_code: int
    html: str
    content_type: str | None = None


@dataclass(frozen=True)
class PageContent:
    title: str | None
    meta_description: str | None
    headings: dict[str, list[str]] = field(default_factory=dict)
    word_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "meta_description": self.meta_description,
            "headings": {level: list(items) for level, items in self.headings.items()},
            "word_count": self.word_count,
        }


class PageFetcher(Protocol):
    def fetch_page(self, url: str) -> FetchedPage: ...


def _clean_text(value: str | None) -> str:
    return _WHITESPACE_RE.sub(" ", value or "").strip()


def extract_page_content(html: str) -> PageContent:
    """
    Extract title, meta description, h1-h3 texts and visible word count.
    """

    soup = BeautifulSoup(html or "", "html.parser")

    title_tag = soup.find("title")
    title = _clean_text(title_tag.get_text()) if title_tag else ""

    meta_description = ""
    meta = soup.find("meta", attrs={"name": re.compile(r"^description$", re.IGNORECASE)})
    if meta is not None:
        meta_description = _clean_text(str(meta.get("content") or ""))

    headings: dict[str, list[str]] = {}
    for level in ("h1", "h2", "h3"):
        texts = [_clean_text(node.get_text(" ", strip=True)) for node in soup.find_all(level)]
        headings[level] = [text for text in texts if text]

    for node in soup(["script", "style", "noscript", "template"]):
        node.decompose()
    body = soup.body or soup
    word_count = len(_WORD_RE.findall(body.get_text(" ", strip=True)))

    return PageContent(
        title=title or None,
        meta_description=meta_description or None,
        headings=headings,
        word_count=word_count,
    )


class HTTPPageClient(HTTPConnector):
    def __init__(
        self,
        *,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="page", http_settings=http_settings, session=session)

    def fetch_page(self, url: str) -> FetchedPage:
        response = self._request_text(
            method="GET",
            url=url,
            headers={"Accept": "text/html,application/xhtml+xml"},
        )
        return FetchedPage(
            url=response.url or url,
            status_code=response.status_code,
            html=response.text,
            content_type=response.headers.get("Content-Type"),
        )
