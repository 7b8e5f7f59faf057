"""
app/api/dependencies.py

Shared FastAPI dependencies for request authorization.
"""

from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from app.config import get_cron_settings
from db.config import current_environment


def verify_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """
    Require `Authorization: Bearer <CRON_SECRET>` outside development.

    A missing CRON_SECRET locks the cron endpoints instead of opening them.
    """

    if current_environment() == "development":
        return

    secret = get_cron_settings().secret
    expected = f"Bearer {secret}" if secret else None
    if expected is None or not hmac.compare_digest(authorization or "", expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
