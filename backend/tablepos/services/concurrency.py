# Overview: Bounded retry for store operations that hit transient lock errors.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError

from ..extensions import db


# "database is locked", deadlock victims, dropped connections
TRANSIENT_ERRORS = (OperationalError,)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on=TRANSIENT_ERRORS):
    """
    Run one store operation, retrying transient lock failures.

    The session is rolled back after each failed attempt, then the caller
    waits backoff_base * 2**n before trying again. The last failure is
    re-raised unchanged.

    ConflictError and the other domain errors are never caught here: a stale
    version is an answer the caller must see, not a transient failure.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            if attempt >= attempts:
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            current_app.logger.warning(
                "Transient store error (attempt %d/%d), retrying in %.2fs: %s",
                attempt, attempts, delay, exc,
            )
            time.sleep(delay)
