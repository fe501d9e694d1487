from __future__ import annotations

import logging
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_email, require_min_length
from ..core.constants import MIN_NAME_LENGTH, MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ConflictError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .tokens import TokenService

logger = logging.getLogger(__name__)

_REGISTRABLE_ROLES = {Role.ADMIN, Role.RECEPTIONIST}


class AuthService:
    """Use cases: login, self-registration, token verification and refresh."""

    def __init__(self, users: UserRepository, tokens: TokenService):
        self._users = users
        self._tokens = tokens

    def _session(self, user: User) -> dict:
        return {"user": user.to_public(), "token": self._tokens.issue(user)}

    def login(self, email: str, password: str) -> dict:
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self._users.get_by_email(email)
        if not user or not user.is_active or not check_password_hash(user.password_hash, password):
            logger.warning("Failed login for %s", email)
            raise AuthenticationError("Invalid email or password")

        logger.info("User %s logged in", user.id)
        return self._session(user)

    def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None,
        current_user: Optional[User] = None,
    ) -> dict:
        name = require_min_length(name, "Name", MIN_NAME_LENGTH)
        email = require_email(email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        try:
            new_role = Role(role or Role.RECEPTIONIST.value)
        except ValueError:
            raise ValidationError("Role must be Admin or Receptionist")
        if new_role not in _REGISTRABLE_ROLES:
            raise ValidationError("Role must be Admin or Receptionist")
        if new_role == Role.ADMIN and (current_user is None or current_user.role != Role.ADMIN):
            raise AuthorizationError("Only an admin can register another admin")

        if self._users.get_by_email(email):
            raise ConflictError("User already exists with this email")

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=new_role,
        )
        user = self._users.get_by_id(user_id)
        if not user:
            raise ValidationError("Registration failed")
        logger.info("Registered user %s (%s)", user.id, new_role.value)
        return self._session(user)

    def _user_from_payload(self, payload: dict) -> User:
        user = self._users.get_by_id(int(payload["id"]))
        if not user or not user.is_active:
            raise AuthenticationError("User not found", code="USER_NOT_FOUND")
        return user

    def verify(self, token: str) -> User:
        return self._user_from_payload(self._tokens.decode(token))

    def refresh(self, token: str) -> dict:
        if not token:
            raise AuthenticationError("Token is required", code="NO_TOKEN")
        user = self._user_from_payload(self._tokens.decode_for_refresh(token))
        return self._session(user)
