from __future__ import annotations

from flask import Flask, g

from ..common.http import bearer_token, json_body, make_guards, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        body = json_body()
        session = container.auth_service.login(body.get("email", ""), body.get("password", ""))
        return ok(session, message="Login successful")

    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    def register_account():
        body = json_body()
        token = bearer_token()
        current_user = container.auth_service.verify(token) if token else None
        session = container.auth_service.register(
            name=body.get("name", ""),
            email=body.get("email", ""),
            password=body.get("password", ""),
            role=body.get("role"),
            current_user=current_user,
        )
        return ok(session, message="User registered successfully", status=201)

    @app.route("/api/auth/verify", methods=["GET"], endpoint="auth_verify")
    @guards.login_required
    def verify():
        return ok({"user": g.current_user.to_public()})

    @app.route("/api/auth/refresh", methods=["POST"], endpoint="auth_refresh")
    def refresh():
        body = json_body()
        token = body.get("token") or bearer_token() or ""
        session = container.auth_service.refresh(token)
        return ok(session, message="Token refreshed")

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    def logout():
        # Tokens are stateless; the client drops its copy.
        return ok(message="Logged out")
