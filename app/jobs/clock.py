"""
app/jobs/clock.py

Injectable time source for the job engine.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from db.base import utc_now

Clock = Callable[[], datetime]

system_clock: Clock = utc_now
