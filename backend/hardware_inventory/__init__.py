# backend/hardware_inventory/__init__.py
from __future__ import annotations

from flask import Flask

from .config import Config
from .extensions import db, migrate
from .pool import engine_options, expire_idle_connections, watch_connection_leaks

__version__ = "1.0.0"


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    app.config.from_pyfile("config.py", silent=True)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(str(app.config.get("LOG_LEVEL", "INFO")).upper())

    # Pool options must be in place before the engine is created
    app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", engine_options(app.config))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.auth_service import Authenticator
    from .services.facade import ServiceFacade
    from .services.inventory_service import InventoryService
    from .services.store import InventoryStore

    store = InventoryStore()
    with app.app_context():
        watch_connection_leaks(db.engine, app.config.get("DB_LEAK_DETECTION_THRESHOLD"), app.logger)
        # SQLite pools hold the only connection to an in-memory database
        if not str(app.config["SQLALCHEMY_DATABASE_URI"]).startswith("sqlite"):
            expire_idle_connections(db.engine, app.config.get("DB_IDLE_TIMEOUT"))
        if app.config.get("AUTO_CREATE_SCHEMA"):
            db.create_all()
        authenticator = Authenticator.from_config(app.config, store)

    app.extensions["inventory_facade"] = ServiceFacade(InventoryService(store), authenticator)

    # Register blueprints
    from .routes.soap import soap_bp
    from .routes.system import system_bp

    app.register_blueprint(soap_bp, url_prefix=app.config["SOAP_ENDPOINT"])
    app.register_blueprint(system_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
