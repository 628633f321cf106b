# Overview: Row locking and retry helpers for stock-moving operations.

"""
Inventory rows and batches are read with SELECT ... FOR UPDATE before any
quantity change (order allocation, cancellation restore, adjustment,
transfer). Units of work that lose a lock race are retried from scratch.

NOTE: SQLite ignores FOR UPDATE; PostgreSQL and MySQL honor it.
"""

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func() until it succeeds or attempts run out.

    func owns its reads, writes and commit. The session is rolled back
    before every retry, so func must not rely on state from a failed run.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            logger.warning("Stock update conflict, retry %s/%s in %.2fs: %s", attempt, attempts - 1, delay, exc)
            time.sleep(delay)
