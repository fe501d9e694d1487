from __future__ import annotations

from flask import Flask, g, request

from ..common.http import json_body, make_guards, ok
from ..container import Container
from ..core.enums import Role
from .service import parse_filters


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    admin_required = guards.roles_required(Role.ADMIN)
    svc = container.complaint_service

    @app.route("/api/complaints/submit", methods=["POST"], endpoint="complaints_submit")
    def submit():
        complaint = svc.submit(json_body())
        return ok(
            complaint,
            message=f"Complaint submitted. Your ticket number is {complaint.ticket_number}",
            status=201,
        )

    @app.route("/api/complaints/categories/list", methods=["GET"], endpoint="complaints_categories")
    def categories():
        return ok(svc.categories())

    @app.route("/api/complaints/categories/all", methods=["GET"], endpoint="complaints_categories_all")
    @admin_required
    def all_categories():
        return ok(svc.all_categories(actor=g.current_user))

    @app.route("/api/complaints/categories", methods=["POST"], endpoint="complaints_create_category")
    @admin_required
    def create_category():
        category = svc.create_category(actor=g.current_user, payload=json_body())
        return ok(category, message="Category created successfully", status=201)

    @app.route("/api/complaints/categories/<int:category_id>", methods=["PUT"], endpoint="complaints_update_category")
    @admin_required
    def update_category(category_id: int):
        category = svc.update_category(actor=g.current_user, category_id=category_id, payload=json_body())
        return ok(category, message="Category updated successfully")

    @app.route("/api/complaints/categories/<int:category_id>", methods=["DELETE"], endpoint="complaints_delete_category")
    @admin_required
    def delete_category(category_id: int):
        svc.delete_category(actor=g.current_user, category_id=category_id)
        return ok(message="Category deleted successfully")

    @app.route("/api/complaints/fields/list", methods=["GET"], endpoint="complaints_fields_active")
    def active_fields():
        return ok(svc.active_fields())

    @app.route("/api/complaints", methods=["GET"], endpoint="complaints_list")
    @guards.login_required
    def list_complaints():
        filters = parse_filters(request.args)
        items, total = svc.list_complaints(filters)
        return ok(
            items,
            pagination={
                "total": total,
                "limit": filters.limit,
                "offset": filters.offset,
                "hasMore": filters.offset + len(items) < total,
            },
        )

    @app.route("/api/complaints/stats/overview", methods=["GET"], endpoint="complaints_stats")
    @guards.login_required
    def stats():
        return ok(svc.stats())

    @app.route("/api/complaints/<int:complaint_id>", methods=["GET"], endpoint="complaints_get")
    @guards.login_required
    def get_complaint(complaint_id: int):
        return ok(svc.get_complaint(complaint_id))

    @app.route("/api/complaints/<int:complaint_id>/status", methods=["PATCH"], endpoint="complaints_update_status")
    @guards.login_required
    def update_status(complaint_id: int):
        body = json_body()
        complaint = svc.update_status(
            complaint_id=complaint_id,
            actor=g.current_user,
            status=body.get("status"),
            assigned_to=body.get("assigned_to"),
        )
        return ok(complaint, message="Complaint status updated")

    @app.route("/api/complaints/<int:complaint_id>/responses", methods=["POST"], endpoint="complaints_add_response")
    @guards.login_required
    def add_response(complaint_id: int):
        body = json_body()
        response = svc.add_response(
            complaint_id=complaint_id,
            responder=g.current_user,
            text=body.get("response_text") or body.get("response"),
            is_internal=body.get("is_internal", False),
        )
        return ok(response, message="Response added", status=201)

    @app.route("/api/complaints/fields/all", methods=["GET"], endpoint="complaints_fields_all")
    @admin_required
    def all_fields():
        return ok(svc.all_fields(actor=g.current_user))

    @app.route("/api/complaints/fields/columns", methods=["GET"], endpoint="complaints_fields_columns")
    @guards.login_required
    def columns():
        return ok(svc.columns())

    @app.route("/api/complaints/fields", methods=["POST"], endpoint="complaints_create_field")
    @admin_required
    def create_field():
        field = svc.create_field(actor=g.current_user, payload=json_body())
        return ok(field, message="Field created successfully", status=201)

    @app.route("/api/complaints/fields/order", methods=["PATCH"], endpoint="complaints_reorder_fields")
    @admin_required
    def reorder_fields():
        count = svc.reorder_fields(actor=g.current_user, field_ids=json_body().get("field_ids"))
        return ok({"updated": count}, message="Field order updated")

    @app.route("/api/complaints/fields/<int:field_id>", methods=["PUT"], endpoint="complaints_update_field")
    @admin_required
    def update_field(field_id: int):
        field = svc.update_field(actor=g.current_user, field_id=field_id, payload=json_body())
        return ok(field, message="Field updated successfully")

    @app.route("/api/complaints/fields/<int:field_id>", methods=["DELETE"], endpoint="complaints_delete_field")
    @admin_required
    def delete_field(field_id: int):
        svc.delete_field(actor=g.current_user, field_id=field_id)
        return ok(message="Field deleted successfully")

    @app.route("/api/complaints/fields/<int:field_id>/toggle", methods=["PATCH"], endpoint="complaints_toggle_field")
    @admin_required
    def toggle_field(field_id: int):
        field = svc.toggle_field(actor=g.current_user, field_id=field_id)
        state = "activated" if field.is_active else "deactivated"
        return ok(field, message=f"Field {state}")
