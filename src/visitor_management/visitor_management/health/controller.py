from __future__ import annotations

import logging
from pathlib import Path

import mysql.connector
from flask import Flask, jsonify, send_from_directory

from ..common.datetime_utils import now_local, to_json_value
from ..common.http import ok
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    svc = container.health_service

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        body = {
            "timestamp": to_json_value(now_local()),
            "environment": app.config.get("APP_ENV"),
            "secretKeyConfigured": bool(app.config.get("SECRET_KEY_CONFIGURED")),
        }
        try:
            database = svc.check_database()
        except mysql.connector.Error as exc:
            logger.error("Health check failed: %s", exc)
            body.update({"success": False, "status": "unhealthy", "database": {"connected": False, "error": str(exc)}})
            return jsonify(body), 500
        body.update({"success": True, "status": "healthy", "database": database})
        return jsonify(body), 200

    @app.route("/api/ping", methods=["GET"], endpoint="ping")
    def ping():
        return ok(svc.ping())

    @app.route("/api/db-test", methods=["GET"], endpoint="db_test")
    def db_test():
        return ok(svc.database_time(), message="Database connection OK")

    @app.route("/uploads/<path:filename>", methods=["GET"], endpoint="uploads")
    def uploads(filename: str):
        return send_from_directory(Path(container.upload_root).resolve(), filename)
