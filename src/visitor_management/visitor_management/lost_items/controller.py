from __future__ import annotations

from flask import Flask, g, request

from ..common.http import json_body, make_guards, ok
from ..container import Container
from ..core.enums import Role
from .service import parse_filters


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    svc = container.lost_item_service

    @app.route("/api/lost-items", methods=["GET"], endpoint="lost_items_list")
    @guards.login_required
    def list_items():
        filters = parse_filters(request.args)
        items, total = svc.list_items(filters)
        return ok(
            items,
            pagination={
                "total": total,
                "limit": filters.limit,
                "offset": filters.offset,
                "hasMore": filters.offset + len(items) < total,
            },
        )

    @app.route("/api/lost-items/stats/overview", methods=["GET"], endpoint="lost_items_stats")
    @guards.login_required
    def stats():
        return ok(svc.stats())

    @app.route("/api/lost-items", methods=["POST"], endpoint="lost_items_register")
    @guards.login_required
    def register_item():
        item = svc.register(operator=g.current_user, payload=json_body())
        return ok(item, message="Lost item registered successfully", status=201)

    @app.route("/api/lost-items/<int:item_id>", methods=["GET"], endpoint="lost_items_get")
    @guards.login_required
    def get_item(item_id: int):
        return ok(svc.get_item(item_id))

    @app.route("/api/lost-items/<int:item_id>", methods=["PUT"], endpoint="lost_items_update")
    @guards.login_required
    def update_item(item_id: int):
        item = svc.update(item_id=item_id, operator=g.current_user, payload=json_body())
        return ok(item, message="Lost item updated successfully")

    @app.route("/api/lost-items/<int:item_id>", methods=["DELETE"], endpoint="lost_items_delete")
    @guards.roles_required(Role.ADMIN)
    def delete_item(item_id: int):
        svc.delete(item_id=item_id, operator=g.current_user)
        return ok(message="Lost item deleted successfully")

    @app.route("/api/lost-items/<int:item_id>/return", methods=["POST"], endpoint="lost_items_return")
    @guards.login_required
    def return_item(item_id: int):
        item = svc.return_item(item_id=item_id, operator=g.current_user, payload=json_body())
        return ok(item, message="Item returned successfully")

    @app.route("/api/lost-items/<int:item_id>/return", methods=["PUT"], endpoint="lost_items_update_return")
    @guards.login_required
    def update_return(item_id: int):
        item = svc.update_return(item_id=item_id, operator=g.current_user, payload=json_body())
        return ok(item, message="Return details updated successfully")

    @app.route("/api/lost-items/<int:item_id>/history", methods=["GET"], endpoint="lost_items_history")
    @guards.login_required
    def history(item_id: int):
        return ok(svc.history(item_id))

    @app.route("/api/lost-items/<int:item_id>/revert/<int:history_id>", methods=["POST"], endpoint="lost_items_revert")
    @guards.login_required
    def revert(item_id: int, history_id: int):
        item = svc.revert(item_id=item_id, history_id=history_id, operator=g.current_user)
        return ok(item, message="Item successfully reverted to previous state")
