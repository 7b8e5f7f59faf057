"""
tests/test_backoff.py

Retry decisions for failed jobs.
"""

from __future__ import annotations

from datetime import timedelta

from app.jobs.backoff import DEFAULT_BACKOFF_BASE, decide


class TestDecide:
    def test_first_failure_waits_one_base_unit(self) -> None:
        decision = decide(1, 3)
        assert decision.retry
        assert decision.delay == DEFAULT_BACKOFF_BASE

    def test_delay_doubles_per_attempt(self) -> None:
        base = timedelta(seconds=30)
        assert decide(2, 5, base=base).delay == timedelta(seconds=60)
        assert decide(3, 5, base=base).delay == timedelta(seconds=120)
        assert decide(4, 5, base=base).delay == timedelta(seconds=240)

    def test_last_attempt_is_terminal(self) -> None:
        decision = decide(3, 3)
        assert not decision.retry
        assert decision.delay == timedelta(0)

    def test_single_attempt_budget_never_retries(self) -> None:
        assert not decide(1, 1).retry
