"""
app/jobs/executor.py

Dispatch table from job type to handler.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from app.jobs.errors import UnknownJobTypeError, ValidationError
from app.jobs.payloads import JobPayload, parse_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobResult:
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    retryable: bool = True

    def to_json(self) -> dict[str, Any]:
        return dict(self.data or {})


@dataclass(frozen=True)
class JobContext:
    """Identity of the job a handler runs for."""

    job_id: uuid.UUID
    website_id: uuid.UUID
    attempt: int = 1


JobHandler = Callable[[JobContext, JobPayload], JobResult]


class JobExecutor:
    """
    Routes a claimed job to its handler.

    Unknown types and invalid payloads produce a non-retryable failed
    JobResult without calling any handler. Exceptions raised by a handler
    propagate to the caller, which owns the retry decision.
    """

    def __init__(self, handlers: Mapping[str, JobHandler]) -> None:
        self._handlers = dict(handlers)

    @property
    def job_types(self) -> list[str]:
        return sorted(self._handlers)

    def execute(
        self,
        *,
        job_id: uuid.UUID,
        website_id: uuid.UUID,
        job_type: str,
        payload: dict[str, Any] | None,
        attempt: int = 1,
    ) -> JobResult:
        handler = self._handlers.get(job_type)
        if handler is None:
            error = UnknownJobTypeError(f"No handler registered for job type '{job_type}'.")
            logger.error("Job %s rejected: %s", job_id, error)
            return JobResult(
                success=False,
                error=f"UnknownJobTypeError: {error}",
                retryable=False,
            )

        try:
            parsed = parse_payload(job_type, payload)
        except ValidationError as exc:
            logger.error("Job %s rejected: %s", job_id, exc)
            return JobResult(success=False, error=f"ValidationError: {exc}", retryable=False)

        context = JobContext(job_id=job_id, website_id=website_id, attempt=attempt)
        return handler(context, parsed)
