"""
Domain-aware request rate limiter.
"""

from __future__ import annotations

import threading
import time
from urllib.parse import urlparse


class DomainRateLimiter:
    """
    Enforces minimum interval between requests per domain.

    Shared across worker threads, so state is guarded by a lock.
    """

    def __init__(self, *, default_rate_limit_per_second: float) -> None:
        self._default_rate_limit_per_second = max(0.1, default_rate_limit_per_second)
        self._last_request_by_domain: dict[str, float] = {}
        self._lock = threading.Lock()

    def wait(self, *, url: str, rate_limit_per_second: float | None = None) -> None:
        parsed = urlparse(url)
        domain = parsed.netloc.lower() or parsed.path.lower()
        if not domain:
            return

        effective_rps = max(0.1, rate_limit_per_second or self._default_rate_limit_per_second)
        min_interval = 1.0 / effective_rps

        with self._lock:
            now = time.monotonic()
            last_time = self._last_request_by_domain.get(domain, 0.0)
            wait_seconds = min_interval - (now - last_time)
            if wait_seconds > 0:
                time.sleep(wait_seconds)
            self._last_request_by_domain[domain] = time.monotonic()
