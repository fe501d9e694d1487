from __future__ import annotations

from flask import Flask, g, request

from ..common.http import json_body, make_guards, ok
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    approver_required = guards.roles_required(Role.ADMIN, Role.MANAGER)
    svc = container.deletion_request_service

    @app.route("/api/deletion-requests", methods=["GET"], endpoint="deletion_requests_list")
    @guards.login_required
    def list_requests():
        return ok(svc.list_requests(actor=g.current_user, status=request.args.get("status")))

    @app.route("/api/deletion-requests/stats", methods=["GET"], endpoint="deletion_requests_stats")
    @guards.login_required
    def stats():
        return ok(svc.stats())

    @app.route("/api/deletion-requests/<int:request_id>", methods=["GET"], endpoint="deletion_requests_get")
    @guards.login_required
    def get_request(request_id: int):
        return ok(svc.get_request(request_id, actor=g.current_user))

    @app.route("/api/deletion-requests/<int:request_id>/approve", methods=["PATCH", "POST"], endpoint="deletion_requests_approve")
    @approver_required
    def approve(request_id: int):
        req = svc.approve(request_id=request_id, actor=g.current_user)
        return ok(req, message="Deletion request approved and visitor deleted")

    @app.route("/api/deletion-requests/<int:request_id>/reject", methods=["PATCH", "POST"], endpoint="deletion_requests_reject")
    @approver_required
    def reject(request_id: int):
        body = json_body()
        reason = body.get("rejection_reason") or body.get("reason") or ""
        req = svc.reject(request_id=request_id, actor=g.current_user, reason=reason)
        return ok(req, message="Deletion request rejected")

    @app.route("/api/deletion-requests/visitor/<int:visitor_id>", methods=["GET"], endpoint="deletion_requests_for_visitor")
    @guards.login_required
    def for_visitor(visitor_id: int):
        req = svc.status_for_visitor(visitor_id)
        return ok({"request": req, "status": req.status.value if req else None})

    @app.route("/api/deletion-requests/batch-status", methods=["POST"], endpoint="deletion_requests_batch_status")
    @guards.login_required
    def batch_status():
        statuses = svc.batch_status(json_body().get("visitor_ids") or [])
        return ok({str(k): v for k, v in statuses.items()})
