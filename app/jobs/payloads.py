"""
app/jobs/payloads.py

Tagged job payloads. Each job type has one pydantic model, discriminated by
its `type` field, validated at enqueue time and again before dispatch.
"""

from __future__ import annotations

import hashlib
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from app.jobs.errors import ValidationError
from db.models.analysis_job import AnalysisJobType

PRIORITY_MANUAL = 8
PRIORITY_FOLLOWUP = 5
PRIORITY_PERIODIC_SERP = 3
PRIORITY_PERIODIC_REPORT = 2

WEBSITE_TARGET = "website"

_MAX_TARGET_KEY_LENGTH = 200


def _normalize_query_text(value: str) -> str:
    return value.strip().lower()


class _PayloadBase(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    def target_key(self) -> str:
        raise NotImplementedError

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class SerpAnalysisPayload(_PayloadBase):
    type: Literal["serp_analysis"] = AnalysisJobType.SERP_ANALYSIS
    search_query_id: UUID | None = None
    query: str | None = None
    queries: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def require_query(self) -> "SerpAnalysisPayload":
        if not self.all_queries():
            raise ValueError("serp_analysis requires at least one non-empty query")
        return self

    def all_queries(self) -> list[str]:
        """Query texts in submission order, blanks and repeats removed."""
        seen: set[str] = set()
        ordered: list[str] = []
        candidates = ([self.query] if self.query else []) + list(self.queries)
        for candidate in candidates:
            text = (candidate or "").strip()
            key = _normalize_query_text(text)
            if not key or key in seen:
                continue
            seen.add(key)
            ordered.append(text)
        return ordered

    def target_key(self) -> str:
        if self.search_query_id is not None:
            return f"query:{self.search_query_id}"
        joined = "|".join(sorted(_normalize_query_text(q) for q in self.all_queries()))
        if len(joined) > _MAX_TARGET_KEY_LENGTH:
            joined = "sha1:" + hashlib.sha1(joined.encode("utf-8")).hexdigest()
        return f"text:{joined}"


class SitemapFetchPayload(_PayloadBase):
    type: Literal["sitemap_fetch"] = AnalysisJobType.SITEMAP_FETCH
    competitor_id: UUID | None = None
    sitemap_url: str | None = None

    def target_key(self) -> str:
        if self.competitor_id is not None:
            return f"competitor:{self.competitor_id}"
        return WEBSITE_TARGET


class PageExtractionPayload(_PayloadBase):
    type: Literal["page_extraction"] = AnalysisJobType.PAGE_EXTRACTION
    urls: list[str] = Field(min_length=1)
    competitor_id: UUID | None = None

    @model_validator(mode="after")
    def require_urls(self) -> "PageExtractionPayload":
        self.urls = [url.strip() for url in self.urls if url and url.strip()]
        if not self.urls:
            raise ValueError("page_extraction requires at least one URL")
        return self

    def target_key(self) -> str:
        if self.competitor_id is not None:
            return f"competitor:{self.competitor_id}"
        return WEBSITE_TARGET


class AIReportPayload(_PayloadBase):
    type: Literal["ai_report"] = AnalysisJobType.AI_REPORT
    report_type: Literal["periodic_recap"] = "periodic_recap"
    period_days: int | None = Field(default=None, ge=1, le=365)

    def target_key(self) -> str:
        return f"report:{self.report_type}"


class InitialAnalysisPayload(_PayloadBase):
    type: Literal["initial_analysis"] = AnalysisJobType.INITIAL_ANALYSIS

    def target_key(self) -> str:
        return WEBSITE_TARGET


JobPayload = Annotated[
    Union[
        SerpAnalysisPayload,
        SitemapFetchPayload,
        PageExtractionPayload,
        AIReportPayload,
        InitialAnalysisPayload,
    ],
    Field(discriminator="type"),
]

_payload_adapter: TypeAdapter[Any] = TypeAdapter(JobPayload)


def parse_payload(job_type: str, payload: dict[str, Any] | BaseModel | None) -> JobPayload:
    """
    Validate a raw payload for `job_type` into its tagged model.

    A missing `type` is filled from `job_type`; a mismatching one is rejected.
    Raises the job engine's ValidationError on any failure.
    """

    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    data = dict(payload or {})
    declared = data.setdefault("type", job_type)
    if declared != job_type:
        raise ValidationError(
            f"Payload type '{declared}' does not match job type '{job_type}'."
        )
    try:
        return _payload_adapter.validate_python(data)
    except PydanticValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'payload'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ValidationError(f"Invalid {job_type} payload: {details}") from exc
