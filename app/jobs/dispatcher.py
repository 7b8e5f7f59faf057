"""
app/jobs/dispatcher.py

Bounded batch dispatcher for due analysis jobs.

One `run_once()` call picks up to `max_concurrent_jobs` due jobs ordered by
priority then schedule time, claims each with a compare-and-set, and runs it
through the executor under a wall-clock timeout. Jobs of a batch run one
after another; the worker pool only exists so a stuck handler can be
abandoned when its timeout expires. An abandoned worker keeps running in the
background and whatever it writes afterwards is not rolled back. Pool threads
are not daemons, so the interpreter waits for abandoned workers at exit;
`abandoned_workers` lets one-shot callers detect that and exit without them.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import timedelta

from app.jobs.backoff import DEFAULT_BACKOFF_BASE, decide
from app.jobs.clock import Clock, system_clock
from app.jobs.errors import JobTimeoutError, NotFoundError, ValidationError
from app.jobs.executor import JobExecutor, JobResult
from app.jobs.store import JobStore
from app.logging_utils import log_event
from db.models.analysis_job import AnalysisJob

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchSummary:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


class JobDispatcher:
    def __init__(
        self,
        store: JobStore,
        executor: JobExecutor,
        *,
        clock: Clock = system_clock,
        max_concurrent_jobs: int = 5,
        job_timeout_seconds: float = 300.0,
        backoff_base: timedelta = DEFAULT_BACKOFF_BASE,
    ) -> None:
        if max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be at least 1")
        self._store = store
        self._executor = executor
        self._clock = clock
        self._max_concurrent_jobs = max_concurrent_jobs
        self._job_timeout_seconds = job_timeout_seconds
        self._backoff_base = backoff_base
        self._abandoned: list[Future] = []

    @property
    def abandoned_workers(self) -> int:
        """Timed-out handlers whose worker thread is still running."""
        self._abandoned = [future for future in self._abandoned if not future.done()]
        return len(self._abandoned)

    def run_once(self) -> BatchSummary:
        due = self._store.list_due(now=self._clock(), limit=self._max_concurrent_jobs)
        if not due:
            logger.debug("No due jobs")
            return BatchSummary()

        log_event(logger, logging.INFO, "job_batch_started", due=len(due))
        processed = succeeded = failed = 0

        pool = ThreadPoolExecutor(
            max_workers=self._max_concurrent_jobs,
            thread_name_prefix="analysis-job",
        )
        try:
            for candidate in due:
                claimed = self._store.mark_running(candidate.id, now=self._clock())
                if claimed is None:
                    logger.info("Job %s was claimed elsewhere or cancelled, skipping", candidate.id)
                    continue

                processed += 1
                if self._run_claimed(pool, claimed):
                    succeeded += 1
                else:
                    failed += 1
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        summary = BatchSummary(processed=processed, succeeded=succeeded, failed=failed)
        log_event(logger, logging.INFO, "job_batch_finished", **summary.to_dict())
        return summary

    def _run_claimed(self, pool: ThreadPoolExecutor, job: AnalysisJob) -> bool:
        log_event(
            logger,
            logging.INFO,
            "job_started",
            job_id=job.id,
            job_type=job.job_type,
            attempt=job.attempts,
            max_attempts=job.max_attempts,
        )
        future = pool.submit(
            self._executor.execute,
            job_id=job.id,
            website_id=job.website_id,
            job_type=job.job_type,
            payload=job.payload,
            attempt=job.attempts,
        )
        try:
            result: JobResult = future.result(timeout=self._job_timeout_seconds)
        except FutureTimeoutError:
            self._abandoned.append(future)
            error = JobTimeoutError(
                f"Job exceeded its {self._job_timeout_seconds:g}s time budget"
            )
            self._handle_failure(job, f"JobTimeoutError: {error}", retryable=True)
            return False
        except (ValidationError, NotFoundError) as exc:
            logger.error("Job %s rejected: %s", job.id, exc)
            self._handle_failure(job, f"{type(exc).__name__}: {exc}", retryable=False)
            return False
        except Exception as exc:  # noqa: BLE001
            logger.exception("Job %s raised %s", job.id, type(exc).__name__)
            self._handle_failure(job, f"{type(exc).__name__}: {exc}", retryable=True)
            return False

        if not result.success:
            self._handle_failure(
                job,
                result.error or "Handler reported failure",
                retryable=result.retryable,
            )
            return False

        stored = self._store.mark_terminal(
            job.id,
            success=True,
            now=self._clock(),
            result=result.to_json(),
        )
        log_event(
            logger,
            logging.INFO,
            "job_completed",
            job_id=job.id,
            job_type=job.job_type,
            stored=stored,
        )
        return True

    def _handle_failure(self, job: AnalysisJob, error: str, *, retryable: bool) -> None:
        now = self._clock()
        decision = decide(job.attempts, job.max_attempts, base=self._backoff_base)

        if retryable and decision.retry:
            scheduled_at = now + decision.delay
            requeued = self._store.requeue(job.id, scheduled_at=scheduled_at, error=error, now=now)
            log_event(
                logger,
                logging.WARNING,
                "job_requeued",
                job_id=job.id,
                job_type=job.job_type,
                attempt=job.attempts,
                max_attempts=job.max_attempts,
                scheduled_at=scheduled_at,
                stored=requeued,
                error=error,
            )
            return

        stored = self._store.mark_terminal(job.id, success=False, now=now, error=error)
        log_event(
            logger,
            logging.ERROR,
            "job_failed",
            job_id=job.id,
            job_type=job.job_type,
            attempt=job.attempts,
            max_attempts=job.max_attempts,
            stored=stored,
            error=error,
        )
