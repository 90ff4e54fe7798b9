# Overview: Row locking and retry helpers shared by payment and order writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Lock the selected rows until the surrounding transaction ends.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; PostgreSQL and MySQL honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a unit of database work, retrying lock and stale-row failures.

    The session is rolled back before each retry so func always starts
    from a clean transaction. Validation and lookup errors are not retried.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts:
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            current_app.logger.warning(
                "Retrying database operation after %s (attempt %d/%d, sleeping %.2fs)",
                type(exc).__name__, attempt, attempts, delay,
            )
            time.sleep(delay)
