from __future__ import annotations

from flask import Flask, request

from ..common.http import make_guards, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    svc = container.dashboard_service

    @app.route("/api/dashboard/stats", methods=["GET"], endpoint="dashboard_stats")
    @guards.login_required
    def stats():
        return ok(svc.statistics())

    @app.route("/api/dashboard/recent-visitors", methods=["GET"], endpoint="dashboard_recent_visitors")
    @guards.login_required
    def recent_visitors():
        return ok(svc.recent_visitors(limit=request.args.get("limit")))

    @app.route("/api/dashboard/feedback-stats", methods=["GET"], endpoint="dashboard_feedback_stats")
    @guards.login_required
    def feedback_stats():
        return ok(svc.feedback_stats())

    @app.route("/api/dashboard/complaint-stats", methods=["GET"], endpoint="dashboard_complaint_stats")
    @guards.login_required
    def complaint_stats():
        return ok(svc.complaint_stats())

    @app.route("/api/dashboard/lost-items-stats", methods=["GET"], endpoint="dashboard_lost_items_stats")
    @guards.login_required
    def lost_items_stats():
        return ok(svc.lost_item_stats())
