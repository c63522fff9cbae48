# Overview: Service-layer helpers for serializing writes to the same product.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    begin_write() covers SQLite.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Take the database write lock for the current unit of work.

    Only meaningful on SQLite, where row locks do not exist: BEGIN IMMEDIATE
    makes a second writer wait (and eventually raise OperationalError, which
    run_with_retry absorbs) instead of reading a ledger that is about to change.
    """
    if db.engine.dialect.name != "sqlite":
        return
    if not current_app.config.get("SQLITE_BEGIN_IMMEDIATE", True):
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back before propagating, so a failed mutation never leaves a ledger row
    written without its recalculated product.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
