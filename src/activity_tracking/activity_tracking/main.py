from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.http import register_error_handlers
from .container import Container, build_container
from .core.constants import MAX_RECEIPT_BYTES
from .core.logging_config import configure_logging
from .database.bootstrap import (
    apply_schema,
    apply_seed_sql,
    ensure_demo_users,
    ensure_roles_and_permissions,
    list_tables,
)
from .dropdowns.controller import register as register_dropdowns
from .expenses.controller import register as register_expenses
from .imports.controller import register as register_imports
from .receipts.controller import register as register_receipts
from .reports.controller import register as register_reports
from .roles.controller import register as register_roles
from .security.guards import init_auth
from .security.rate_limit import LoginRateLimiter
from .tasks.controller import register as register_tasks
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def _prepare_database(settings, db_config: dict) -> None:
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
        logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
        ensure_roles_and_permissions(db_config)
        ensure_demo_users(db_config)
        logger.info("Demo seed ready")


def _register_commands(app: Flask, container: Container) -> None:
    @app.cli.command("notify-password-expiration")
    def notify_password_expiration():
        """Send password expiry warnings and notices."""
        summary = container.password_expiration_service.run()
        click.echo(
            f"checked={summary.checked} warnings={summary.warnings_sent} expired={summary.expired_sent}"
        )

    @app.cli.command("cleanup-revoked-tokens")
    def cleanup_revoked_tokens():
        """Delete revoked-token rows whose tokens have expired anyway."""
        removed = container.token_revocation_service.cleanup_expired_tokens()
        click.echo(f"removed={removed}")


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY", "")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    # Multipart overhead on top of the largest accepted upload.
    app.config["MAX_CONTENT_LENGTH"] = MAX_RECEIPT_BYTES + 1024 * 1024

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        _prepare_database(settings, db_config)
        container = build_container(db_config=db_config, settings=settings)

    app.extensions["container"] = container
    register_error_handlers(app)

    if bool(getattr(settings, "RATE_LIMIT_ENABLED", True)):
        LoginRateLimiter(
            capacity=int(getattr(settings, "RATE_LIMIT_CAPACITY", 5)),
            refill_minutes=int(getattr(settings, "RATE_LIMIT_REFILL_MINUTES", 1)),
        ).init_app(app)

    init_auth(app, container)

    register_users(app, container)
    register_roles(app, container)
    register_dropdowns(app, container)
    register_tasks(app, container)
    register_expenses(app, container)
    register_receipts(app, container)
    register_imports(app, container)
    register_reports(app, container)

    _register_commands(app, container)
    return app
