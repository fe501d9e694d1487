from __future__ import annotations

from flask import Flask, g, request

from ..common.http import json_body, make_guards, ok
from ..common.validators import parse_bool
from ..container import Container
from ..core.enums import Role
from .service import parse_filters


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    svc = container.visitor_service

    @app.route("/api/visitors", methods=["GET"], endpoint="visitors_list")
    @guards.login_required
    def list_visitors():
        filters = parse_filters(request.args)
        items, total = svc.list_visitors(filters)
        return ok(
            items,
            pagination={
                "total": total,
                "limit": filters.limit,
                "offset": filters.offset,
                "hasMore": bool(filters.limit) and filters.offset + len(items) < total,
            },
        )

    @app.route("/api/visitors/stats", methods=["GET"], endpoint="visitors_stats")
    @guards.login_required
    def stats():
        return ok(svc.stats())

    @app.route("/api/visitors/<int:visitor_id>", methods=["GET"], endpoint="visitors_get")
    @guards.login_required
    def get_visitor(visitor_id: int):
        include_deleted = parse_bool(request.args.get("include_deleted")) and g.current_user.role in {
            Role.ADMIN,
            Role.MANAGER,
        }
        return ok(svc.get_visitor(visitor_id, include_deleted=include_deleted))

    @app.route("/api/visitors/check-in", methods=["POST"], endpoint="visitors_check_in")
    @guards.login_required
    def check_in():
        visitor = svc.check_in(operator=g.current_user, payload=json_body())
        return ok(visitor, message="Visitor checked in successfully", status=201)

    @app.route("/api/visitors/<int:visitor_id>", methods=["PUT"], endpoint="visitors_update")
    @guards.login_required
    def update_visitor(visitor_id: int):
        visitor = svc.update_visitor(visitor_id=visitor_id, operator=g.current_user, payload=json_body())
        return ok(visitor, message="Visitor updated successfully")

    @app.route("/api/visitors/<int:visitor_id>/checkout", methods=["PATCH"], endpoint="visitors_checkout")
    @app.route("/api/visitors/<int:visitor_id>/check-out", methods=["PUT"], endpoint="visitors_check_out")
    @guards.login_required
    def check_out(visitor_id: int):
        visitor = svc.check_out(visitor_id=visitor_id, operator=g.current_user, payload=json_body())
        return ok(visitor, message="Visitor checked out successfully")

    @app.route("/api/visitors/<int:visitor_id>/edit-history", methods=["GET"], endpoint="visitors_edit_history")
    @guards.login_required
    def edit_history(visitor_id: int):
        result = svc.edit_history(visitor_id, limit=request.args.get("limit"), offset=request.args.get("offset"))
        return ok(result["items"], pagination=result["pagination"])

    @app.route("/api/visitors/<int:visitor_id>", methods=["DELETE"], endpoint="visitors_request_deletion")
    @guards.login_required
    def request_deletion(visitor_id: int):
        body = json_body()
        req = svc.request_deletion(visitor_id=visitor_id, operator=g.current_user, reason=body.get("reason", ""))
        return ok(req, message="Deletion request submitted and awaiting approval", status=201)

    @app.route("/api/visitors/<int:visitor_id>/soft-delete", methods=["PATCH"], endpoint="visitors_soft_delete")
    @guards.roles_required(Role.ADMIN, Role.MANAGER)
    def soft_delete(visitor_id: int):
        visitor = svc.soft_delete(visitor_id=visitor_id, operator=g.current_user)
        return ok(visitor, message="Visitor deleted")

    @app.route("/api/visitors/<int:visitor_id>/restore", methods=["PATCH"], endpoint="visitors_restore")
    @guards.roles_required(Role.ADMIN, Role.MANAGER)
    def restore(visitor_id: int):
        visitor = svc.restore(visitor_id=visitor_id, operator=g.current_user)
        return ok(visitor, message="Visitor restored")

    @app.route("/api/visitors/<int:visitor_id>/permanent", methods=["DELETE"], endpoint="visitors_delete_permanent")
    @guards.roles_required(Role.ADMIN)
    def delete_permanent(visitor_id: int):
        svc.delete_permanently(visitor_id=visitor_id, operator=g.current_user)
        return ok(message="Visitor permanently deleted")
