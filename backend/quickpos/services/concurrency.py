# Overview: Service-layer operations for concurrency; encapsulates locking, retries and write transactions.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PersistenceError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, see begin_write_transaction().
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the database write lock up front.

    SQLite has no row locks, so BEGIN IMMEDIATE serializes writers for the
    whole checkout instead. Other databases rely on lock_for_update().
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Once attempts are exhausted the last
    failure is raised as PersistenceError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise PersistenceError(f"Database write failed after {attempts} attempts") from exc
            time.sleep(backoff_base * (2 ** attempt))
    raise PersistenceError("Database write was not attempted")
