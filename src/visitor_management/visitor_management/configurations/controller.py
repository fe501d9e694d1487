from __future__ import annotations

from flask import Flask, g, request

from ..common.http import json_body, make_guards, ok
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    admin_required = guards.roles_required(Role.ADMIN)
    svc = container.configuration_service

    @app.route("/api/configurations", methods=["GET"], endpoint="configurations_dropdowns")
    def dropdowns():
        return ok(svc.dropdowns())

    @app.route("/api/configurations/categories", methods=["GET"], endpoint="configurations_categories")
    @guards.login_required
    def categories():
        include_inactive = request.args.get("include_inactive") in {"1", "true"}
        return ok(svc.categories(include_inactive=include_inactive))

    @app.route("/api/configurations/categories", methods=["POST"], endpoint="configurations_create_category")
    @admin_required
    def create_category():
        category = svc.create_category(actor=g.current_user, payload=json_body())
        return ok(category, message="Category created successfully", status=201)

    @app.route("/api/configurations/categories/<int:category_id>", methods=["PUT"], endpoint="configurations_update_category")
    @admin_required
    def update_category(category_id: int):
        category = svc.update_category(actor=g.current_user, category_id=category_id, payload=json_body())
        return ok(category, message="Category updated successfully")

    @app.route("/api/configurations/categories/<int:category_id>", methods=["DELETE"], endpoint="configurations_delete_category")
    @admin_required
    def delete_category(category_id: int):
        svc.delete_category(actor=g.current_user, category_id=category_id)
        return ok(message="Category deleted successfully")

    @app.route("/api/configurations/search", methods=["GET"], endpoint="configurations_search")
    @guards.login_required
    def search():
        return ok(svc.search(request.args.get("q") or request.args.get("term") or ""))

    @app.route("/api/configurations/options", methods=["POST"], endpoint="configurations_create_option")
    @admin_required
    def create_option():
        option = svc.create_option(actor=g.current_user, payload=json_body())
        return ok(option, message="Option created successfully", status=201)

    @app.route("/api/configurations/options/<int:option_id>", methods=["GET"], endpoint="configurations_get_option")
    @guards.login_required
    def get_option(option_id: int):
        return ok(svc.get_option(option_id))

    @app.route("/api/configurations/options/<int:option_id>", methods=["PUT"], endpoint="configurations_update_option")
    @admin_required
    def update_option(option_id: int):
        option = svc.update_option(actor=g.current_user, option_id=option_id, payload=json_body())
        return ok(option, message="Option updated successfully")

    @app.route("/api/configurations/options/<int:option_id>", methods=["DELETE"], endpoint="configurations_delete_option")
    @admin_required
    def delete_option(option_id: int):
        svc.delete_option(actor=g.current_user, option_id=option_id)
        return ok(message="Option deleted successfully")

    @app.route("/api/configurations/manage/<category>", methods=["GET"], endpoint="configurations_manage")
    @admin_required
    def manage(category: str):
        return ok(svc.options_for(category, include_inactive=True))

    @app.route("/api/configurations/<category>", methods=["GET"], endpoint="configurations_options")
    def options(category: str):
        return ok(svc.options_for(category))

    @app.route("/api/configurations/<category>/tree", methods=["GET"], endpoint="configurations_tree")
    def tree(category: str):
        return ok(svc.tree(category))

    @app.route("/api/configurations/<category>/order", methods=["PATCH"], endpoint="configurations_reorder")
    @admin_required
    def reorder(category: str):
        updated = svc.reorder(actor=g.current_user, category=category, option_ids=json_body().get("option_ids") or [])
        return ok({"updated": updated}, message="Order updated successfully")
