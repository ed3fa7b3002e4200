# Overview: Retry and timeout helpers around persistence flushes.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError


def run_with_retry(func, *, session, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks, busy timeouts) and
    StaleDataError (optimistic locking conflicts). The session is rolled back
    between attempts; the final failure is re-raised.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def apply_statement_timeout(session, timeout_seconds: float | None) -> None:
    """
    Bound how long the current transaction may wait on locks.

    SQLite: busy_timeout (connection-level). PostgreSQL: SET LOCAL statement_timeout.
    Other dialects are left alone.
    """
    if not timeout_seconds:
        return
    millis = int(timeout_seconds * 1000)
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        session.execute(text(f"PRAGMA busy_timeout = {millis}"))
    elif dialect == "postgresql":
        session.execute(text(f"SET LOCAL statement_timeout = {millis}"))
