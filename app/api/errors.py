"""
app/api/errors.py

Maps the job engine's error taxonomy to HTTP responses. Every error body is
`{"success": false, "error": "..."}`, conflicts also carry `existing_job`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.jobs.errors import (
    ConflictError,
    ExternalServiceError,
    JobError,
    NotFoundError,
    UnknownJobTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[JobError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UnknownJobTypeError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
)


def _error_body(message: str, **extra: object) -> dict[str, object]:
    return {"success": False, "error": message, **extra}


def status_for(exc: JobError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _handle_job_error(request: Request, exc: JobError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
    if isinstance(exc, ConflictError):
        return JSONResponse(
            status_code=status_code,
            content=_error_body(str(exc), existing_job=exc.existing_job),
        )
    return JSONResponse(status_code=status_code, content=_error_body(str(exc)))


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ())) or 'request'}: {error.get('msg')}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(f"Invalid request: {details}"),
    )


async def _handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error"),
    )


def register_error_handlers(application: FastAPI) -> None:
    application.add_exception_handler(JobError, _handle_job_error)
    application.add_exception_handler(RequestValidationError, _handle_request_validation)
    application.add_exception_handler(HTTPException, _handle_http_exception)
    application.add_exception_handler(Exception, _handle_unexpected)
