# Overview: Transaction helpers shared by the service layer (locking, retry).

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; use begin_write_transaction.
    """
    return query.with_for_update()


def begin_write_transaction(session) -> None:
    """
    Take the database write lock before any quantity is read.

    SQLite has no row locks, so the whole checkout runs under
    BEGIN IMMEDIATE: a second terminal blocks (then retries) instead of
    reading a batch quantity that is about to change. Other engines rely
    on lock_for_update on the batch rows.
    """
    connection = session.connection()
    if connection.dialect.name != "sqlite":
        return
    raw = connection.connection.dbapi_connection
    if not raw.in_transaction:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def run_with_retry(session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (database locked, deadlocks) and
    StaleDataError (optimistic locking conflicts). The session is rolled
    back before each retry so func always starts from a clean transaction.
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
