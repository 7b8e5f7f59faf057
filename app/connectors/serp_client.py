"""
app/connectors/serp_client.py

SERP fetcher contract and its Bright Data SERP API implementation.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Protocol
from urllib.parse import urlencode

import requests

from app.config import ExternalHTTPSettings, SerpSettings
from app.connectors.base import ConnectorRequestError, HTTPConnector
from db.base import utc_now
from ranking.domains import normalize_domain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SerpResultItem:
    position: int
    url: str
    domain: str
    title: str = ""
    snippet: str = ""


@dataclass(frozen=True)
class SerpResponse:
    query: str
    results: list[SerpResultItem] = field(default_factory=list)
    country: str = "fr"
    language: str = "fr"
    device: str = "desktop"
    fetched_at: datetime = field(default_factory=utc_now)

    def to_json(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "country": self.country,
            "language": self.language,
            "device": self.device,
            "fetched_at": self.fetched_at.isoformat(),
            "total_results": len(self.results),
            "results": [asdict(item) for item in self.results],
        }


class SerpFetcher(Protocol):
    def search_serp(
        self,
        query: str,
        *,
        country: str,
        language: str,
        device: str,
        num_results: int,
    ) -> SerpResponse: ...


def parse_organic_results(data: Any) -> list[SerpResultItem]:
    """
    Convert a `parsed_light` SERP payload into ranked items.

    Items without a usable link are dropped. A missing or invalid
    `global_rank` falls back to the item's 1-based order in the list.
    """

    if not isinstance(data, dict) or not isinstance(data.get("organic"), list):
        raise ValueError("SERP payload has no organic results list")

    items: list[SerpResultItem] = []
    for index, raw in enumerate(data["organic"], start=1):
        if not isinstance(raw, dict):
            continue
        url = str(raw.get("link") or raw.get("url") or "").strip()
        if not url:
            continue
        rank = raw.get("global_rank") or raw.get("rank")
        try:
            position = int(rank) if rank is not None else index
        except (TypeError, ValueError):
            position = index
        items.append(
            SerpResultItem(
                position=position,
                url=url,
                domain=normalize_domain(url),
                title=str(raw.get("title") or ""),
                snippet=str(raw.get("description") or raw.get("snippet") or ""),
            )
        )
    items.sort(key=lambda item: item.position)
    return items


class BrightDataSerpClient(HTTPConnector):
    """
    Google SERP through the Bright Data request API (`parsed_light` format).
    """

    def __init__(
        self,
        *,
        serp_settings: SerpSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="brightdata_serp", http_settings=http_settings, session=session)
        self._settings = serp_settings

    def search_serp(
        self,
        query: str,
        *,
        country: str,
        language: str,
        device: str,
        num_results: int,
    ) -> SerpResponse:
        if not self._settings.api_key:
            raise ConnectorRequestError(
                "BRIGHTDATA_API_KEY is not configured.",
                service=self.source,
            )

        params = {"q": query, "gl": country.upper(), "hl": language, "num": num_results}
        if device == "mobile":
            params["brd_mobile"] = 1
        search_url = f"https://www.google.com/search?{urlencode(params)}"

        data = self._request_json(
            method="POST",
            url=self._settings.endpoint,
            headers={
                "Authorization": f"Bearer {self._settings.api_key}",
                "Content-Type": "application/json",
            },
            json_body={
                "zone": self._settings.zone,
                "url": search_url,
                "format": "raw",
                "data_format": "parsed_light",
            },
        )
        try:
            results = parse_organic_results(data)
        except ValueError as exc:
            raise ConnectorRequestError(
                f"{self.source}: {exc}",
                service=self.source,
            ) from exc

        logger.info(
            "SERP fetched query=%r results=%d country=%s device=%s",
            query,
            len(results),
            country,
            device,
        )
        return SerpResponse(
            query=query,
            results=results[:num_results],
            country=country,
            language=language,
            device=device,
        )
