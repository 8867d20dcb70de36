# Overview: Row locking and transient-error retry shared by storage mutations.

from __future__ import annotations

import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

T = TypeVar("T")

# Lock timeouts, deadlocks and version-counter mismatches
TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE on the selected rows (a no-op on SQLite)."""
    return query.with_for_update()


def backoff_delay(attempt: int, base: float) -> float:
    """Exponential delay before retry number `attempt` (0-based)."""
    return base * (2 ** attempt)


def run_with_retry(func: Callable[[], T], *, attempts: int = 3, backoff_base: float = 0.1) -> T:
    """
    Call func() until it succeeds or fails with a non-transient error.

    The session is rolled back after every transient failure so the next
    call starts a fresh transaction. Once attempts are exhausted the last
    transient error propagates.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    failures = 0
    while True:
        try:
            return func()
        except TRANSIENT_ERRORS as exc:
            db.session.rollback()
            failures += 1
            if failures >= attempts:
                current_app.logger.error("Database operation failed after %d attempts", attempts)
                raise
            current_app.logger.warning(
                "Transient database error (%s), retry %d/%d", type(exc).__name__, failures, attempts - 1
            )
            time.sleep(backoff_delay(failures - 1, backoff_base))
