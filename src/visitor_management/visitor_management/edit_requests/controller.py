from __future__ import annotations

from flask import Flask, g, request

from ..common.http import json_body, make_guards, ok
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    approver_required = guards.roles_required(Role.ADMIN, Role.MANAGER)
    svc = container.edit_request_service

    @app.route("/api/edit-requests", methods=["GET"], endpoint="edit_requests_list")
    @guards.login_required
    def list_requests():
        return ok(svc.list_requests(actor=g.current_user, status=request.args.get("status")))

    @app.route("/api/edit-requests", methods=["POST"], endpoint="edit_requests_submit")
    @guards.login_required
    def submit():
        req = svc.submit(actor=g.current_user, payload=json_body())
        return ok(req, message="Edit request submitted. Waiting for approval.", status=201)

    @app.route("/api/edit-requests/stats", methods=["GET"], endpoint="edit_requests_stats")
    @guards.login_required
    def stats():
        return ok(svc.stats())

    @app.route("/api/edit-requests/<int:request_id>", methods=["GET"], endpoint="edit_requests_get")
    @guards.login_required
    def get_request(request_id: int):
        return ok(svc.get_request(request_id, actor=g.current_user))

    @app.route("/api/edit-requests/<int:request_id>/approve", methods=["PATCH", "POST"], endpoint="edit_requests_approve")
    @approver_required
    def approve(request_id: int):
        req = svc.approve(request_id=request_id, actor=g.current_user)
        return ok(req, message="Edit request approved and visitor updated")

    @app.route("/api/edit-requests/<int:request_id>/reject", methods=["PATCH", "POST"], endpoint="edit_requests_reject")
    @approver_required
    def reject(request_id: int):
        body = json_body()
        req = svc.reject(
            request_id=request_id,
            actor=g.current_user,
            reason=body.get("rejection_reason") or body.get("reason"),
        )
        return ok(req, message="Edit request rejected")
