"""
app/jobs/handlers/base.py

Helpers shared by the job handlers.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from app.jobs.errors import NotFoundError
from app.jobs.executor import JobContext, JobResult
from app.jobs.store import SessionFactory
from app.logging_utils import log_event
from db.repositories.website_repository import WebsiteRepository

logger = logging.getLogger(__name__)

CANCELLED_ERROR = "Job was cancelled before its results were persisted"


@dataclass(frozen=True)
class WebsiteRef:
    id: uuid.UUID
    name: str
    url: str
    sitemap_url: str | None


def load_website(session_factory: SessionFactory, website_id: uuid.UUID) -> WebsiteRef:
    """Snapshot the website fields a handler needs, outside of any long session."""
    with session_factory() as db:
        website = WebsiteRepository(db).get_website(website_id)
        if website is None:
            raise NotFoundError(f"Website '{website_id}' was not found.")
        return WebsiteRef(
            id=website.id,
            name=website.name,
            url=website.url,
            sitemap_url=website.sitemap_url,
        )


def cancelled_result(context: JobContext, **fields: object) -> JobResult:
    log_event(
        logger,
        logging.INFO,
        "job_cancelled_midway",
        job_id=context.job_id,
        website_id=context.website_id,
        **fields,
    )
    return JobResult(success=False, error=CANCELLED_ERROR, retryable=False)
