# backend/hardware_inventory/config.py
from __future__ import annotations

import os

from sqlalchemy.engine import URL


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def build_database_url() -> str:
    """
    Resolve the SQLAlchemy database URL.

    DATABASE_URL wins when set. Otherwise the URL is assembled from the
    discrete DB_DRIVER / DB_HOST / DB_PORT / DB_NAME / DB_USER / DB_PASSWORD
    settings, and a local SQLite file is used when no driver is configured.
    """
    explicit = os.environ.get("DATABASE_URL")
    if explicit:
        return explicit

    driver = os.environ.get("DB_DRIVER")
    if not driver:
        return "sqlite:///inventory.sqlite3"

    url = URL.create(
        drivername=driver,
        username=os.environ.get("DB_USER"),
        password=os.environ.get("DB_PASSWORD"),
        host=os.environ.get("DB_HOST", "localhost"),
        port=_env_int("DB_PORT", None),
        database=os.environ.get("DB_NAME", "inventario"),
    )
    return url.render_as_string(hide_password=False)


class Config:
    # "development" enables the seeded user fallback; anything else is treated as production
    APP_ENV = os.environ.get("APP_ENV", "production")

    SQLALCHEMY_DATABASE_URI = build_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Connection pool (seconds for every duration)
    DB_POOL_MAX_SIZE = _env_int("DB_POOL_MAX_SIZE", 10)
    DB_POOL_MIN_IDLE = _env_int("DB_POOL_MIN_IDLE", 2)
    DB_CONNECTION_TIMEOUT = _env_int("DB_CONNECTION_TIMEOUT", 30)
    DB_IDLE_TIMEOUT = _env_int("DB_IDLE_TIMEOUT", 600)
    DB_MAX_LIFETIME = _env_int("DB_MAX_LIFETIME", 1800)
    DB_LEAK_DETECTION_THRESHOLD = _env_int("DB_LEAK_DETECTION_THRESHOLD", 60)
    DB_ISOLATION_LEVEL = os.environ.get("DB_ISOLATION_LEVEL", "READ COMMITTED")

    HTTP_HOST = os.environ.get("HTTP_HOST", "0.0.0.0")
    HTTP_PORT = _env_int("HTTP_PORT", 8080)
    SOAP_ENDPOINT = os.environ.get("SOAP_ENDPOINT", "/InventarioService")

    # "database" loads app_users through the store; "seed" installs the development users
    AUTH_USER_SOURCE = os.environ.get("AUTH_USER_SOURCE", "database")
    # Seconds before a request re-reads app_users (database source only)
    AUTH_RELOAD_INTERVAL = _env_int("AUTH_RELOAD_INTERVAL", 30)
    AUTO_CREATE_SCHEMA = _env_bool("AUTO_CREATE_SCHEMA", False)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
