"""
app/jobs/backoff.py

Retry decision for failed jobs: exponential backoff in whole base units.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

DEFAULT_BACKOFF_BASE = timedelta(minutes=1)


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay: timedelta = timedelta(0)


def decide(
    attempts: int,
    max_attempts: int,
    base: timedelta = DEFAULT_BACKOFF_BASE,
) -> RetryDecision:
    """
    Decide whether a failed job is requeued.

    `attempts` already counts the failure just observed, so the first failure
    arrives with attempts=1 and waits `base`, the second waits `2 * base`, and
    so on. Once attempts reaches max_attempts the failure is terminal.
    """

    if attempts < max_attempts:
        exponent = max(0, attempts - 1)
        return RetryDecision(retry=True, delay=base * (2**exponent))
    return RetryDecision(retry=False)
