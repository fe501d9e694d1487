"""JSON envelope, error mapping and auth guards shared by all controllers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, DomainError, ValidationError
from .datetime_utils import to_json_value

logger = logging.getLogger(__name__)


def ok(data: Any = None, *, message: Optional[str] = None, status: int = 200, **extra: Any):
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = to_json_value(data)
    for key, value in extra.items():
        body[key] = to_json_value(value)
    return jsonify(body), status


def fail(message: str, *, status: int = 400, **extra: Any):
    body: dict[str, Any] = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def register_error_handlers(app: Flask) -> None:
    def _domain_error(exc: DomainError):
        extra: dict[str, Any] = {}
        if isinstance(exc, AuthenticationError):
            extra["code"] = exc.code
        if isinstance(exc, ValidationError) and exc.errors:
            extra["errors"] = exc.errors
        if exc.status_code >= 401:
            logger.warning("%s %s -> %s: %s", request.method, request.path, exc.status_code, exc)
        return fail(str(exc), status=exc.status_code, **extra)

    def _http_error(exc: HTTPException):
        return fail(exc.description or exc.name, status=exc.code or 500)

    def _unexpected(exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        error = str(exc) if app.config.get("DEBUG") else None
        return fail("Internal server error", status=500, error=error)

    app.register_error_handler(DomainError, _domain_error)
    app.register_error_handler(HTTPException, _http_error)
    app.register_error_handler(Exception, _unexpected)


@dataclass(frozen=True)
class Guards:
    login_required: Callable
    roles_required: Callable


def make_guards(container) -> Guards:
    """Build decorators that resolve the bearer token into ``g.current_user``."""

    def _authenticate():
        token = bearer_token()
        if not token:
            raise AuthenticationError("Access token required", code="NO_TOKEN")
        g.current_user = container.auth_service.verify(token)
        return g.current_user

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            _authenticate()
            return view(*args, **kwargs)

        return wrapper

    def roles_required(*roles: Role):
        allowed = {Role(r) for r in roles}

        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                user = _authenticate()
                if user.role not in allowed:
                    raise AuthorizationError("Insufficient permissions")
                return view(*args, **kwargs)

            return wrapper

        return decorator

    return Guards(login_required=login_required, roles_required=roles_required)
