from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local
from ..common.uploads import delete_upload, save_data_url
from ..common.validators import optional_str, require_email, require_min_length
from ..core.constants import DEFAULT_MAX_UPLOAD_BYTES, MIN_NAME_LENGTH, MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


def parse_role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError("Invalid role")


def require_role(actor: User, *roles: Role, message: str = "Insufficient permissions") -> None:
    if actor.role not in roles:
        raise AuthorizationError(message)


def require_admin(actor: User) -> None:
    require_role(actor, Role.ADMIN, message="Admin access required")


class UserService:
    """Use cases: own profile, and account management for admins."""

    def __init__(
        self,
        users: UserRepository,
        *,
        upload_root: str | Path = "uploads",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self._users = users
        self._upload_root = upload_root
        self._max_upload_bytes = max_upload_bytes

    def _get(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def _ensure_email_free(self, email: str, *, user_id: Optional[int] = None) -> None:
        existing = self._users.get_by_email(email)
        if existing and existing.id != user_id:
            raise ConflictError("Email is already in use")

    def _profile_changes(self, payload: dict, *, user_id: Optional[int]) -> dict:
        changes: dict = {}
        if "name" in payload:
            changes["name"] = require_min_length(payload.get("name"), "Name", MIN_NAME_LENGTH)
        if "email" in payload:
            email = require_email(payload.get("email"))
            self._ensure_email_free(email, user_id=user_id)
            changes["email"] = email
        for key in ("phone", "study_program", "cohort"):
            if key in payload:
                changes[key] = optional_str(payload.get(key))
        return changes

    # --- own profile ---

    def profile(self, user_id: int) -> User:
        return self._get(user_id)

    def update_profile(self, user_id: int, payload: dict) -> User:
        self._get(user_id)
        changes = self._profile_changes(payload, user_id=int(user_id))
        if not changes:
            raise ValidationError("Nothing to update")
        self._users.update_user(int(user_id), changes)
        return self._get(user_id)

    def change_password(self, user_id: int, *, current_password: str, new_password: str) -> None:
        user = self._get(user_id)
        if not check_password_hash(user.password_hash, current_password or ""):
            raise ValidationError("Current password is incorrect")
        require_min_length(new_password, "New password", MIN_PASSWORD_LENGTH)
        self._users.update_user(user.id, {"password": generate_password_hash(new_password)})
        logger.info("User %s changed password", user.id)

    def _store_avatar(self, user: User, data_url: str) -> User:
        path = save_data_url(
            data_url,
            root=self._upload_root,
            subdir="profiles",
            prefix="profile",
            max_bytes=self._max_upload_bytes,
        )
        self._users.update_user(user.id, {"avatar_url": path})
        delete_upload(user.avatar_url, root=self._upload_root)
        return self._get(user.id)

    def update_avatar(self, user_id: int, data_url: str) -> User:
        return self._store_avatar(self._get(user_id), data_url)

    # --- admin ---

    def list_users(self, *, actor: User, role: Optional[str] = None, search: Optional[str] = None) -> list[User]:
        require_admin(actor)
        role_filter = parse_role(role) if role else None
        return list(self._users.list_users(role=role_filter, search=optional_str(search)))

    def get_user(self, *, actor: User, user_id: int) -> User:
        require_admin(actor)
        return self._get(user_id)

    def create_user(self, *, actor: User, payload: dict) -> User:
        require_admin(actor)
        name = require_min_length(payload.get("name"), "Name", MIN_NAME_LENGTH)
        email = require_email(payload.get("email"))
        password = str(payload.get("password") or "")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        role = parse_role(payload.get("role") or Role.RECEPTIONIST.value)
        self._ensure_email_free(email)

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            phone=optional_str(payload.get("phone")),
            study_program=optional_str(payload.get("study_program")),
            cohort=optional_str(payload.get("cohort")),
        )
        logger.info("Admin %s created user %s (%s)", actor.id, user_id, role.value)
        return self._get(user_id)

    def update_user(self, *, actor: User, user_id: int, payload: dict) -> User:
        require_admin(actor)
        self._get(user_id)
        changes = self._profile_changes(payload, user_id=int(user_id))
        if "role" in payload:
            changes["role"] = parse_role(payload.get("role"))
            if int(user_id) == actor.id and changes["role"] != Role.ADMIN:
                raise ValidationError("You cannot remove your own admin role")
        if payload.get("password"):
            password = str(payload["password"])
            require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
            changes["password"] = generate_password_hash(password)
        if not changes:
            raise ValidationError("Nothing to update")
        self._users.update_user(int(user_id), changes)
        return self._get(user_id)

    def reset_password(self, *, actor: User, user_id: int, password: Any) -> None:
        require_admin(actor)
        target = self._get(user_id)
        password = str(password or "")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        self._users.update_user(target.id, {"password": generate_password_hash(password)})
        logger.info("Admin %s reset the password of user %s", actor.id, target.id)

    def set_user_avatar(self, *, actor: User, user_id: int, data_url: str) -> User:
        """Admins may replace anyone's photo; other users only their own."""
        if actor.role != Role.ADMIN and actor.id != int(user_id):
            raise AuthorizationError("You can only update your own photo")
        return self._store_avatar(self._get(user_id), data_url)

    def change_role(self, *, actor: User, user_id: int, role: str) -> User:
        require_admin(actor)
        target = self._get(user_id)
        new_role = parse_role(role)
        if target.id == actor.id and new_role != Role.ADMIN:
            raise ValidationError("You cannot remove your own admin role")
        self._users.update_user(target.id, {"role": new_role})
        logger.info("Admin %s changed role of user %s to %s", actor.id, target.id, new_role.value)
        return self._get(target.id)

    def set_active(self, *, actor: User, user_id: int, is_active: bool) -> User:
        require_admin(actor)
        target = self._get(user_id)
        if target.id == actor.id and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        self._users.update_user(target.id, {"is_active": bool(is_active)})
        logger.info("Admin %s set user %s active=%s", actor.id, target.id, bool(is_active))
        return self._get(target.id)

    def delete_user(self, *, actor: User, user_id: int) -> None:
        require_admin(actor)
        target = self._get(user_id)
        if target.id == actor.id:
            raise ValidationError("You cannot delete your own account")

        visitor_count = self._users.count_visitors(target.id)
        if visitor_count > 0:
            plural = "s" if visitor_count != 1 else ""
            raise ValidationError(
                f"Cannot delete user. This user has created {visitor_count} visitor record{plural}. "
                "Please transfer the records to another user first."
            )

        if not self._users.delete_by_id(target.id):
            raise ValidationError("Failed to delete user")
        logger.info("Admin %s deleted user %s", actor.id, target.id)

    def stats(self, *, actor: User) -> dict:
        require_admin(actor)
        by_role = self._users.count_by_role()
        month_start = now_local().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return {
            "total": sum(by_role.values()),
            "byRole": {r.value: int(by_role.get(r.value, 0)) for r in Role},
            "newThisMonth": self._users.count_created_since(month_start),
        }

    def visitor_count(self, *, actor: User, user_id: int) -> dict:
        require_admin(actor)
        user = self._get(user_id)
        count = self._users.count_visitors(user.id)
        return {
            "user": {"id": user.id, "name": user.name, "email": user.email},
            "visitorCount": count,
            "recentVisitors": list(self._users.recent_visitors(user.id, limit=5)),
            "canDelete": count == 0,
        }

    def transfer_visitors(self, *, actor: User, from_user_id: int, to_user_id: int) -> dict:
        require_admin(actor)
        source = self._users.get_by_id(int(from_user_id))
        if not source:
            raise NotFoundError("Source user not found")
        target = self._users.get_by_id(int(to_user_id))
        if not target:
            raise NotFoundError("Target user not found")
        if source.id == target.id:
            raise ValidationError("Source and target user must differ")

        if self._users.count_visitors(source.id) == 0:
            raise ValidationError("Source user has no visitor records to transfer")

        moved = self._users.transfer_visitors(from_user_id=source.id, to_user_id=target.id, to_user_name=target.name)
        logger.info("Transferred %d visitors from user %s to %s", moved, source.id, target.id)
        return {
            "transferCount": moved,
            "fromUser": {"id": source.id, "name": source.name},
            "toUser": {"id": target.id, "name": target.name},
        }
