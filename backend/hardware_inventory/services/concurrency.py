# Overview: Row locking and retry helpers for stock mutations.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import update

from ..errors import StoreError


def lock_for_update(statement, *, of=None):
    """
    Apply row-level locking (SELECT ... FOR UPDATE) to a select statement.

    NOTE: SQLite ignores FOR UPDATE. Callers on SQLite take the database
    write lock first with claim_write_lock().
    """
    if of is not None:
        return statement.with_for_update(of=of)
    return statement.with_for_update()


def claim_write_lock(session, table, key_column, key) -> None:
    """
    Take SQLite's database write lock before the first read of a transaction.

    pysqlite opens its transaction lazily at the first write, so a plain
    SELECT leaves two writers free to read the same row. A no-op UPDATE as
    the opening statement makes the second writer wait in the busy handler
    until the first commits. Other dialects rely on FOR UPDATE instead.
    """
    if session.get_bind().dialect.name != "sqlite":
        return
    session.execute(update(table).where(key_column == key).values({key_column.name: key_column}))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a transactional unit of work, retrying retryable store failures.

    The store has already rolled the transaction back by the time a
    StoreError reaches this loop, so each attempt starts clean.
    Non-retryable errors (validation, not found, timeouts) propagate at once.
    """
    for attempt in range(attempts):
        try:
            return func()
        except StoreError as exc:
            if not exc.retryable or attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            current_app.logger.warning(
                "Retrying after concurrency failure (attempt %d/%d, sleeping %.2fs): %s",
                attempt + 1,
                attempts,
                delay,
                exc.__cause__ or exc,
            )
            time.sleep(delay)
