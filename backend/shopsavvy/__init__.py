# backend/shopsavvy/__init__.py
from __future__ import annotations

import logging

from flask import Flask, current_app

from .config import Config
from .extensions import db, migrate

LEDGER_EXTENSION_KEY = "store_ledger"


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.getLogger("shopsavvy").setLevel(app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # One ledger per app; state is loaded lazily inside an app context
    from .services.persistence_service import PersistenceAdapter
    from .services.store_ledger import StoreLedger
    from .services.user_directory import SqlUserDirectory

    adapter = PersistenceAdapter(
        flush_timeout=app.config["LEDGER_FLUSH_TIMEOUT_SECONDS"],
        retry_attempts=app.config["LEDGER_FLUSH_RETRY_ATTEMPTS"],
    )
    app.extensions[LEDGER_EXTENSION_KEY] = StoreLedger(
        adapter,
        users=SqlUserDirectory(),
        seed_demo_data=app.config["LEDGER_SEED_DEMO_DATA"],
        low_stock_threshold=app.config["LOW_STOCK_THRESHOLD"],
        expiry_warning_days=app.config["EXPIRY_WARNING_DAYS"],
    )

    # Register blueprints
    from .routes.system import system_bp

    app.register_blueprint(system_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def get_ledger():
    """The current app's StoreLedger, loaded on first use. Needs an app context."""
    return current_app.extensions[LEDGER_EXTENSION_KEY].ensure_loaded()
