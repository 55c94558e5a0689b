# Overview: Storage-level concurrency primitives shared by the pin services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import case
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import StoreError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def decrement_with_floor(column, amount: int):
    """
    SQL expression for ``max(0, column - amount)``.

    Evaluated by the database inside a single UPDATE, so two concurrent
    decrements of the same row can never lose an update or go negative.
    CASE is used instead of GREATEST/MAX because their spelling differs
    between PostgreSQL and SQLite.
    """
    return case((column > amount, column - amount), else_=0)


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). func must be safe to re-run after a
    rollback.
    """
    if attempts is None:
        attempts = current_app.config.get("STORE_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("STORE_RETRY_BACKOFF_SECONDS", 0.1)

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying store operation after %s (attempt %d/%d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_store_write(func, *, description: str):
    """
    Run a primary write with retries and translate persistence failures.

    On any SQLAlchemyError the session is rolled back and StoreError is raised
    with the underlying message. Domain errors raised by func propagate
    unchanged after the rollback.
    """
    try:
        return run_with_retry(func)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Store failure during %s: %s", description, exc)
        raise StoreError(f"Failed to {description}: {exc}", original=exc) from exc
    except Exception:
        db.session.rollback()
        raise
