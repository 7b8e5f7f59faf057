"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class JobQueueSettings:
    """
    Dispatcher and retry settings for the analysis job queue.
    """

    max_concurrent_jobs: int = 5
    job_timeout_seconds: float = 300.0
    max_attempts: int = 3
    backoff_base_seconds: float = 60.0


@dataclass(frozen=True)
class SchedulerSettings:
    """
    In-process APScheduler wiring for the dispatcher and the periodic planner.
    """

    enabled: bool = True
    dispatch_interval_seconds: int = 60
    planner_hour: int = 2
    planner_minute: int = 0


@dataclass(frozen=True)
class CronSettings:
    """
    Shared secret guarding the externally triggered cron endpoints.
    """

    secret: str | None = None


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for external connectors.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0
    user_agent: str = "SerpTrackerBot/1.0"


@dataclass(frozen=True)
class SerpSettings:
    """
    SERP provider settings and per-query analysis defaults.
    """

    api_key: str | None = None
    zone: str = "serp_api1"
    endpoint: str = "https://api.brightdata.com/request"
    country: str = "fr"
    language: str = "fr"
    device: str = "desktop"
    num_results: int = 20
    competitor_candidates: int = 10
    auto_add_competitors: int = 3


@dataclass(frozen=True)
class SitemapSettings:
    """
    Sitemap discovery limits and initial analysis page selection.
    """

    max_child_sitemaps: int = 10
    max_urls: int = 50000
    key_pages_limit: int = 20


@dataclass(frozen=True)
class BlobStorageSettings:
    """
    Filesystem root used by the default blob store.
    """

    root_dir: Path = Path("storage/blobs")


@dataclass(frozen=True)
class ReportSettings:
    """
    Periodic recap settings.
    """

    period_days: int = 30


@lru_cache(maxsize=1)
def get_job_queue_settings() -> JobQueueSettings:
    """
    Return cached job queue settings from environment variables.
    """

    return JobQueueSettings(
        max_concurrent_jobs=max(1, _get_int_env("MAX_CONCURRENT_JOBS", 5)),
        job_timeout_seconds=max(1.0, _get_float_env("JOB_TIMEOUT_SECONDS", 300.0)),
        max_attempts=max(1, _get_int_env("JOB_MAX_ATTEMPTS", 3)),
        backoff_base_seconds=max(1.0, _get_float_env("JOB_BACKOFF_BASE_SECONDS", 60.0)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        dispatch_interval_seconds=max(5, _get_int_env("JOB_DISPATCH_INTERVAL_SECONDS", 60)),
        planner_hour=min(23, max(0, _get_int_env("PLANNER_CRON_HOUR", 2))),
        planner_minute=min(59, max(0, _get_int_env("PLANNER_CRON_MINUTE", 0))),
    )


@lru_cache(maxsize=1)
def get_cron_settings() -> CronSettings:
    return CronSettings(secret=_get_optional_str_env("CRON_SECRET"))


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
        user_agent=_get_str_env("EXTERNAL_HTTP_USER_AGENT", "SerpTrackerBot/1.0"),
    )


@lru_cache(maxsize=1)
def get_serp_settings() -> SerpSettings:
    """
    Return SERP provider settings from environment variables.
    """

    return SerpSettings(
        api_key=_get_optional_str_env("BRIGHTDATA_API_KEY"),
        zone=_get_str_env("BRIGHTDATA_SERP_ZONE", "serp_api1"),
        endpoint=_get_str_env("BRIGHTDATA_ENDPOINT", "https://api.brightdata.com/request"),
        country=_get_str_env("SERP_COUNTRY", "fr").lower(),
        language=_get_str_env("SERP_LANGUAGE", "fr").lower(),
        device=_get_str_env("SERP_DEVICE", "desktop").lower(),
        num_results=min(100, max(1, _get_int_env("SERP_NUM_RESULTS", 20))),
        competitor_candidates=max(0, _get_int_env("SERP_COMPETITOR_CANDIDATES", 10)),
        auto_add_competitors=max(0, _get_int_env("SERP_AUTO_ADD_COMPETITORS", 3)),
    )


@lru_cache(maxsize=1)
def get_sitemap_settings() -> SitemapSettings:
    return SitemapSettings(
        max_child_sitemaps=max(1, _get_int_env("SITEMAP_MAX_CHILD_SITEMAPS", 10)),
        max_urls=max(1, _get_int_env("SITEMAP_MAX_URLS", 50000)),
        key_pages_limit=max(1, _get_int_env("INITIAL_ANALYSIS_KEY_PAGES", 20)),
    )


@lru_cache(maxsize=1)
def get_blob_storage_settings() -> BlobStorageSettings:
    return BlobStorageSettings(
        root_dir=Path(_get_str_env("BLOB_STORAGE_DIR", "storage/blobs")),
    )


@lru_cache(maxsize=1)
def get_report_settings() -> ReportSettings:
    return ReportSettings(
        period_days=max(1, _get_int_env("AI_REPORT_PERIOD_DAYS", 30)),
    )


@dataclass(frozen=True)
class LLMSettings:
    """
    Report generator adapter settings. adapter is "openai" or "mock".
    """

    adapter: str = "openai"
    api_key: str | None = None
    model: str = "gpt-4o"
    base_url: str | None = None
    max_tokens: int = 4096
    temperature: float = 0.4
    max_retries: int = 2


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    return LLMSettings(
        adapter=_get_str_env("LLM_ADAPTER", "openai").lower(),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        model=_get_str_env("LLM_MODEL", "gpt-4o"),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
        max_tokens=max(256, _get_int_env("LLM_MAX_TOKENS", 4096)),
        temperature=min(2.0, max(0.0, _get_float_env("LLM_TEMPERATURE", 0.4))),
        max_retries=max(0, _get_int_env("LLM_MAX_RETRIES", 2)),
    )
