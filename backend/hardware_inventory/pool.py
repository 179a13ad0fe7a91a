# Overview: Connection pool options, idle expiry, and leak detection for the SQLAlchemy engine.

from __future__ import annotations

import time
from logging import Logger
from typing import Mapping

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError

_CHECKOUT_KEY = "checked_out_at"
_IDLE_SINCE_KEY = "idle_since"


def engine_options(config: Mapping) -> dict:
    """
    Translate the DB_* pool settings into create_engine() keyword arguments.

    - DB_POOL_MIN_IDLE persistent connections, up to DB_POOL_MAX_SIZE in total
      (the difference becomes overflow, closed again on check-in).
    - DB_CONNECTION_TIMEOUT bounds the wait for a free connection.
    - DB_MAX_LIFETIME recycles connections older than the limit.

    SQLite URLs get pre-ping only: its single-thread and static pools reject sizing args.
    """
    options: dict = {"pool_pre_ping": True}
    uri = str(config.get("SQLALCHEMY_DATABASE_URI", ""))
    if uri.startswith("sqlite"):
        return options

    max_size = int(config.get("DB_POOL_MAX_SIZE") or 10)
    min_idle = min(int(config.get("DB_POOL_MIN_IDLE") or 0), max_size)
    options.update(
        pool_size=min_idle,
        max_overflow=max_size - min_idle,
        pool_timeout=int(config.get("DB_CONNECTION_TIMEOUT") or 30),
        pool_recycle=int(config.get("DB_MAX_LIFETIME") or 1800),
    )

    isolation = config.get("DB_ISOLATION_LEVEL")
    if isolation:
        options["isolation_level"] = isolation
    return options


def watch_connection_leaks(engine: Engine, threshold_seconds: int | None, logger: Logger) -> None:
    """Warn when a pooled connection is held longer than threshold_seconds."""
    if not threshold_seconds or threshold_seconds <= 0:
        return

    @event.listens_for(engine, "checkout")
    def _on_checkout(dbapi_connection, connection_record, connection_proxy):
        connection_record.info[_CHECKOUT_KEY] = time.monotonic()

    @event.listens_for(engine, "checkin")
    def _on_checkin(dbapi_connection, connection_record):
        started = connection_record.info.pop(_CHECKOUT_KEY, None)
        if started is None:
            return
        held = time.monotonic() - started
        if held > threshold_seconds:
            logger.warning(
                "Connection held for %.1fs (leak detection threshold %ss)",
                held,
                threshold_seconds,
            )


def expire_idle_connections(engine: Engine, idle_seconds: int | None) -> None:
    """
    Replace pooled connections that sat unused longer than idle_seconds.

    Raising DisconnectionError from a checkout listener makes the pool discard
    the connection and retry the checkout with a fresh one.
    """
    if not idle_seconds or idle_seconds <= 0:
        return

    @event.listens_for(engine, "checkin")
    def _mark_idle(dbapi_connection, connection_record):
        connection_record.info[_IDLE_SINCE_KEY] = time.monotonic()

    @event.listens_for(engine, "checkout")
    def _check_idle(dbapi_connection, connection_record, connection_proxy):
        idle_since = connection_record.info.pop(_IDLE_SINCE_KEY, None)
        if idle_since is not None and time.monotonic() - idle_since > idle_seconds:
            raise DisconnectionError("connection idle past DB_IDLE_TIMEOUT")
