from __future__ import annotations

from flask import Flask, g, request

from ..common.http import json_body, make_guards, ok
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    guards = make_guards(container)
    admin_required = guards.roles_required(Role.ADMIN)
    svc = container.user_service

    @app.route("/api/users/profile", methods=["GET"], endpoint="users_profile")
    @guards.login_required
    def profile():
        return ok(svc.profile(g.current_user.id).to_public())

    @app.route("/api/users/profile", methods=["PUT"], endpoint="users_update_profile")
    @guards.login_required
    def update_profile():
        user = svc.update_profile(g.current_user.id, json_body())
        return ok(user.to_public(), message="Profile updated successfully")

    @app.route("/api/users/profile/password", methods=["PUT"], endpoint="users_change_password")
    @guards.login_required
    def change_password():
        body = json_body()
        svc.change_password(
            g.current_user.id,
            current_password=body.get("currentPassword") or body.get("current_password") or "",
            new_password=body.get("newPassword") or body.get("new_password") or "",
        )
        return ok(message="Password changed successfully")

    @app.route("/api/users/profile/avatar", methods=["POST"], endpoint="users_update_avatar")
    @guards.login_required
    def update_avatar():
        body = json_body()
        user = svc.update_avatar(g.current_user.id, body.get("photo") or body.get("avatar") or "")
        return ok(user.to_public(), message="Profile photo updated successfully")

    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @admin_required
    def list_users():
        users = svc.list_users(actor=g.current_user, role=request.args.get("role"), search=request.args.get("search"))
        return ok([u.to_public() for u in users])

    @app.route("/api/users", methods=["POST"], endpoint="users_create")
    @admin_required
    def create_user():
        user = svc.create_user(actor=g.current_user, payload=json_body())
        return ok(user.to_public(), message="User created successfully", status=201)

    @app.route("/api/users/stats/overview", methods=["GET"], endpoint="users_stats")
    @admin_required
    def stats():
        return ok(svc.stats(actor=g.current_user))

    @app.route("/api/users/<int:user_id>", methods=["GET"], endpoint="users_get")
    @admin_required
    def get_user(user_id: int):
        return ok(svc.get_user(actor=g.current_user, user_id=user_id).to_public())

    @app.route("/api/users/<int:user_id>", methods=["PUT"], endpoint="users_update")
    @admin_required
    def update_user(user_id: int):
        user = svc.update_user(actor=g.current_user, user_id=user_id, payload=json_body())
        return ok(user.to_public(), message="User updated successfully")

    @app.route("/api/users/<int:user_id>/password", methods=["PUT"], endpoint="users_reset_password")
    @admin_required
    def reset_password(user_id: int):
        svc.reset_password(actor=g.current_user, user_id=user_id, password=json_body().get("password"))
        return ok(message="Password updated successfully")

    @app.route("/api/users/<int:user_id>/photo", methods=["PUT"], endpoint="users_set_photo")
    @guards.login_required
    def set_photo(user_id: int):
        body = json_body()
        user = svc.set_user_avatar(actor=g.current_user, user_id=user_id, data_url=body.get("photo") or body.get("avatar") or "")
        return ok(user.to_public(), message="Profile photo updated successfully")

    @app.route("/api/users/<int:user_id>/role", methods=["PATCH"], endpoint="users_change_role")
    @admin_required
    def change_role(user_id: int):
        user = svc.change_role(actor=g.current_user, user_id=user_id, role=json_body().get("role", ""))
        return ok(user.to_public(), message="User role updated successfully")

    @app.route("/api/users/<int:user_id>/deactivate", methods=["PATCH"], endpoint="users_deactivate")
    @admin_required
    def deactivate(user_id: int):
        user = svc.set_active(actor=g.current_user, user_id=user_id, is_active=False)
        return ok(user.to_public(), message="User deactivated successfully")

    @app.route("/api/users/<int:user_id>/reactivate", methods=["PATCH"], endpoint="users_reactivate")
    @admin_required
    def reactivate(user_id: int):
        user = svc.set_active(actor=g.current_user, user_id=user_id, is_active=True)
        return ok(user.to_public(), message="User reactivated successfully")

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="users_delete")
    @admin_required
    def delete_user(user_id: int):
        svc.delete_user(actor=g.current_user, user_id=user_id)
        return ok(message="User deleted successfully")

    @app.route("/api/users/<int:user_id>/visitor-count", methods=["GET"], endpoint="users_visitor_count")
    @admin_required
    def visitor_count(user_id: int):
        return ok(svc.visitor_count(actor=g.current_user, user_id=user_id))

    @app.route(
        "/api/users/<int:from_user_id>/transfer-visitors/<int:to_user_id>",
        methods=["POST"],
        endpoint="users_transfer_visitors",
    )
    @admin_required
    def transfer_visitors(from_user_id: int, to_user_id: int):
        result = svc.transfer_visitors(actor=g.current_user, from_user_id=from_user_id, to_user_id=to_user_id)
        count = result["transferCount"]
        plural = "s" if count != 1 else ""
        message = (
            f"Successfully transferred {count} visitor record{plural} "
            f"from {result['fromUser']['name']} to {result['toUser']['name']}"
        )
        return ok(result, message=message)
