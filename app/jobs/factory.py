"""
app/jobs/factory.py

Production wiring of the job engine: store, queue, handlers, executor,
dispatcher and planner built from environment settings.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from app.config import (
    get_blob_storage_settings,
    get_external_http_settings,
    get_job_queue_settings,
    get_llm_settings,
    get_report_settings,
    get_serp_settings,
    get_sitemap_settings,
)
from app.connectors.page_client import HTTPPageClient
from app.connectors.serp_client import BrightDataSerpClient
from app.connectors.sitemap_client import HTTPSitemapClient
from app.jobs.clock import Clock, system_clock
from app.jobs.dispatcher import JobDispatcher
from app.jobs.executor import JobExecutor, JobHandler
from app.jobs.handlers.ai_report import AIReportHandler
from app.jobs.handlers.initial_analysis import InitialAnalysisHandler
from app.jobs.handlers.page_extraction import PageExtractionHandler
from app.jobs.handlers.serp_analysis import SerpAnalysisHandler
from app.jobs.handlers.sitemap_fetch import SitemapFetchHandler
from app.jobs.planner import PeriodicJobPlanner
from app.jobs.queue import JobQueue
from app.jobs.store import JobStore, SessionFactory, SQLAlchemyJobStore
from app.storage.blob_store import LocalBlobStore
from db.models.analysis_job import AnalysisJobType
from db.session import SessionLocal
from llm_synthesis.adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter
from llm_synthesis.generator import LLMReportGenerator, ReportGenerator


def build_report_generator() -> ReportGenerator:
    settings = get_llm_settings()
    adapter: BaseLLMAdapter
    if settings.adapter == "mock":
        adapter = MockLLMAdapter()
    else:
        adapter = OpenAILLMAdapter(
            model=settings.model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            api_key=settings.api_key,
            base_url=settings.base_url,
        )
    return LLMReportGenerator(adapter, max_retries=settings.max_retries)


def build_job_queue(
    store: JobStore | None = None,
    *,
    session_factory: SessionFactory = SessionLocal,
    clock: Clock = system_clock,
) -> JobQueue:
    return JobQueue(
        store or SQLAlchemyJobStore(session_factory),
        clock=clock,
        default_max_attempts=get_job_queue_settings().max_attempts,
    )


def build_handlers(
    *,
    session_factory: SessionFactory,
    store: JobStore,
    queue: JobQueue,
    clock: Clock = system_clock,
    report_generator: ReportGenerator | None = None,
) -> dict[str, JobHandler]:
    http_settings = get_external_http_settings()
    sitemap_settings = get_sitemap_settings()
    blob_store = LocalBlobStore(get_blob_storage_settings().root_dir)
    generator = report_generator or build_report_generator()

    sitemap_handler = SitemapFetchHandler(
        session_factory=session_factory,
        store=store,
        fetcher=HTTPSitemapClient(sitemap_settings=sitemap_settings, http_settings=http_settings),
        blob_store=blob_store,
        clock=clock,
    )
    page_handler = PageExtractionHandler(
        session_factory=session_factory,
        store=store,
        fetcher=HTTPPageClient(http_settings=http_settings),
        blob_store=blob_store,
        clock=clock,
    )
    return {
        AnalysisJobType.SERP_ANALYSIS: SerpAnalysisHandler(
            session_factory=session_factory,
            store=store,
            fetcher=BrightDataSerpClient(
                serp_settings=get_serp_settings(),
                http_settings=http_settings,
            ),
            blob_store=blob_store,
            settings=get_serp_settings(),
            clock=clock,
        ),
        AnalysisJobType.SITEMAP_FETCH: sitemap_handler,
        AnalysisJobType.PAGE_EXTRACTION: page_handler,
        AnalysisJobType.AI_REPORT: AIReportHandler(
            session_factory=session_factory,
            store=store,
            generator=generator,
            default_period_days=get_report_settings().period_days,
            clock=clock,
        ),
        AnalysisJobType.INITIAL_ANALYSIS: InitialAnalysisHandler(
            session_factory=session_factory,
            store=store,
            sitemap_handler=sitemap_handler,
            page_handler=page_handler,
            generator=generator,
            queue=queue,
            key_pages_limit=sitemap_settings.key_pages_limit,
        ),
    }


def build_dispatcher(
    *,
    session_factory: SessionFactory = SessionLocal,
    clock: Clock = system_clock,
) -> JobDispatcher:
    settings = get_job_queue_settings()
    store = SQLAlchemyJobStore(session_factory)
    queue = build_job_queue(store, clock=clock)
    executor = JobExecutor(
        build_handlers(session_factory=session_factory, store=store, queue=queue, clock=clock)
    )
    return JobDispatcher(
        store,
        executor,
        clock=clock,
        max_concurrent_jobs=settings.max_concurrent_jobs,
        job_timeout_seconds=settings.job_timeout_seconds,
        backoff_base=timedelta(seconds=settings.backoff_base_seconds),
    )


def build_planner(
    *,
    session_factory: SessionFactory = SessionLocal,
    clock: Clock = system_clock,
) -> PeriodicJobPlanner:
    return PeriodicJobPlanner(
        session_factory,
        build_job_queue(session_factory=session_factory, clock=clock),
        clock=clock,
    )


@lru_cache(maxsize=1)
def get_job_dispatcher() -> JobDispatcher:
    return build_dispatcher()


@lru_cache(maxsize=1)
def get_job_planner() -> PeriodicJobPlanner:
    return build_planner()
