from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from config import load_settings

from .auth.controller import register as register_auth
from .common.http import register_error_handlers
from .complaints.controller import register as register_complaints
from .configurations.controller import register as register_configurations
from .container import Container, build_container
from .core.constants import (
    DEFAULT_MAX_CONTENT_LENGTH,
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_TOKEN_MAX_AGE,
    DEFAULT_TOKEN_REFRESH_GRACE,
)
from .dashboard.controller import register as register_dashboard
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_default_users, list_tables
from .deletion_requests.controller import register as register_deletion_requests
from .edit_requests.controller import register as register_edit_requests
from .feedback.controller import register as register_feedback
from .health.controller import register as register_health
from .logging_setup import setup_logging
from .lost_items.controller import register as register_lost_items
from .reports.controller import register as register_reports
from .users.controller import register as register_users
from .visitors.controller import register as register_visitors

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]


def register_routes(app: Flask, container: Container) -> None:
    register_error_handlers(app)
    register_health(app, container)
    register_auth(app, container)
    register_users(app, container)
    register_visitors(app, container)
    register_deletion_requests(app, container)
    register_edit_requests(app, container)
    register_configurations(app, container)
    register_complaints(app, container)
    register_feedback(app, container)
    register_lost_items(app, container)
    register_dashboard(app, container)
    register_reports(app, container)


def create_app(*, container: Optional[Container] = None) -> Flask:
    """Application factory.

    Passing ``container`` skips database bootstrap and wiring (used by tests).
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings = load_settings()
    settings_module = settings.__name__
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", None))

    secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.secret_key = secret_key
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["APP_ENV"] = settings_module.rsplit(".", 1)[-1]
    app.config["SECRET_KEY_CONFIGURED"] = bool(getattr(settings, "SECRET_KEY_CONFIGURED", False))
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_CONTENT_LENGTH", DEFAULT_MAX_CONTENT_LENGTH))
    app.json.sort_keys = False

    logger.info(
        "Starting with settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
            created = ensure_default_users(db_config)
            logger.info("Seed data ready (new users: %s)", ", ".join(created) or "none")

        container = build_container(
            db_config=db_config,
            secret_key=secret_key,
            token_max_age=int(getattr(settings, "TOKEN_MAX_AGE", DEFAULT_TOKEN_MAX_AGE)),
            refresh_grace=int(getattr(settings, "TOKEN_REFRESH_GRACE", DEFAULT_TOKEN_REFRESH_GRACE)),
            upload_root=getattr(settings, "UPLOAD_PATH", "uploads"),
            max_upload_bytes=int(getattr(settings, "MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)),
        )

    register_routes(app, container)
    CORS(
        app,
        resources={r"/api/*": {"origins": list(getattr(settings, "CORS_ORIGINS", []))}},
        supports_credentials=True,
    )
    return app
