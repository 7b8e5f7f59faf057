"""
app/jobs/queue.py

Enqueue entry point shared by manual triggers, the periodic planner and
follow-up jobs scheduled from inside handlers.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from app.jobs.clock import Clock, system_clock
from app.jobs.errors import ValidationError
from app.jobs.payloads import parse_payload
from app.jobs.store import EnqueueResult, JobStore
from app.logging_utils import log_event
from db.models.analysis_job import AnalysisJobType

logger = logging.getLogger(__name__)


class JobQueue:
    """
    Validates payloads, derives the deduplication target and delegates the
    conflict check plus insert to the store as one transaction.
    """

    def __init__(
        self,
        store: JobStore,
        *,
        clock: Clock = system_clock,
        default_max_attempts: int = 3,
    ) -> None:
        self._store = store
        self._clock = clock
        self._default_max_attempts = default_max_attempts

    def enqueue(
        self,
        *,
        website_id: uuid.UUID,
        job_type: str,
        payload: dict[str, Any] | BaseModel | None,
        priority: int,
        scheduled_at: datetime | None = None,
        force: bool = False,
        max_attempts: int | None = None,
    ) -> EnqueueResult:
        if job_type not in AnalysisJobType.ALL:
            raise ValidationError(f"Unknown job type '{job_type}'.")
        attempts_budget = max_attempts if max_attempts is not None else self._default_max_attempts
        if attempts_budget < 1:
            raise ValidationError("max_attempts must be at least 1.")

        parsed = parse_payload(job_type, payload)
        now = self._clock()
        result = self._store.enqueue(
            website_id=website_id,
            job_type=job_type,
            payload=parsed.to_json(),
            target_key=parsed.target_key(),
            priority=priority,
            scheduled_at=scheduled_at or now,
            max_attempts=attempts_budget,
            force=force,
            now=now,
        )
        log_event(
            logger,
            logging.INFO,
            "job_enqueued",
            job_id=result.job.id,
            website_id=website_id,
            job_type=job_type,
            priority=priority,
            force=force,
            cancelled=result.cancelled_count,
        )
        return result
