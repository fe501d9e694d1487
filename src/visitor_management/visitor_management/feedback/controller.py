from __future__ import annotations

from flask import Flask, request

from ..common.http import json_body, make_guards, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    svc = container.feedback_service

    @app.route("/api/feedback", methods=["POST"], endpoint="feedback_submit")
    def submit():
        feedback = svc.submit(json_body())
        return ok(feedback, message="Thank you for your feedback", status=201)

    @app.route("/api/feedback/public", methods=["GET"], endpoint="feedback_public")
    def public_feed():
        return ok(svc.public_feed(limit=request.args.get("limit")))

    @app.route("/api/feedback/categories", methods=["GET"], endpoint="feedback_categories")
    def categories():
        return ok(svc.categories())

    @app.route("/api/feedback", methods=["GET"], endpoint="feedback_list")
    @guards.login_required
    def list_feedback():
        items, total, limit, offset = svc.list_feedback(
            rating=request.args.get("rating"),
            category=request.args.get("category"),
            limit=request.args.get("limit"),
            offset=request.args.get("offset"),
        )
        return ok(
            items,
            pagination={"total": total, "limit": limit, "offset": offset, "hasMore": offset + len(items) < total},
        )

    @app.route("/api/feedback/stats", methods=["GET"], endpoint="feedback_stats")
    @guards.login_required
    def stats():
        return ok(svc.stats())

    @app.route("/api/feedback/<int:feedback_id>/status", methods=["PATCH"], endpoint="feedback_update_status")
    @guards.login_required
    def update_status(feedback_id: int):
        feedback = svc.update_status(feedback_id=feedback_id, status=json_body().get("status"))
        return ok(feedback, message="Feedback status updated")
