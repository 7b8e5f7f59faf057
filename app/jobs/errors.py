"""
app/jobs/errors.py

Error taxonomy shared by the job engine, its handlers and the HTTP surface.
"""

from __future__ import annotations

from typing import Any


class JobError(Exception):
    """Base exception for job engine failures."""


class ValidationError(JobError):
    """Raised when a job payload or trigger input is malformed."""


class NotFoundError(JobError):
    """Raised when a referenced website, query, competitor or job does not exist."""


class ConflictError(JobError):
    """
    Raised when an active job already targets the same logical work item.

    `existing_job` is a plain descriptor (id, status, created_at) of the first
    conflicting job so callers can decide whether to retry with force.
    """

    def __init__(self, message: str, *, existing_job: dict[str, Any]) -> None:
        super().__init__(message)
        self.existing_job = existing_job


class JobTimeoutError(JobError, TimeoutError):
    """Raised when a handler exceeds its wall-clock budget."""


class ExternalServiceError(JobError):
    """Raised when a fetch, storage or report collaborator fails."""

    def __init__(self, message: str, *, service: str | None = None) -> None:
        super().__init__(message)
        self.service = service


class UnknownJobTypeError(JobError):
    """Raised when no handler is registered for a job type."""
