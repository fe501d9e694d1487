from __future__ import annotations

from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..core.constants import DEFAULT_TOKEN_MAX_AGE, DEFAULT_TOKEN_REFRESH_GRACE, TOKEN_SALT
from ..core.exceptions import AuthenticationError
from ..users.model import User


class TokenService:
    """Signed, timestamped bearer tokens carrying ``{id, email, role}``."""

    def __init__(
        self,
        secret_key: str,
        *,
        max_age: int = DEFAULT_TOKEN_MAX_AGE,
        refresh_grace: int = DEFAULT_TOKEN_REFRESH_GRACE,
    ):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        self._max_age = int(max_age)
        self._refresh_grace = int(refresh_grace)

    @property
    def max_age(self) -> int:
        return self._max_age

    def issue(self, user: User) -> str:
        return self._serializer.dumps({"id": user.id, "email": user.email, "role": user.role.value})

    def _loads(self, token: str, max_age: int) -> dict[str, Any]:
        try:
            payload = self._serializer.loads(token, max_age=max_age)
        except SignatureExpired:
            raise AuthenticationError("Token expired", code="TOKEN_EXPIRED")
        except BadSignature:
            raise AuthenticationError("Invalid token", code="INVALID_TOKEN")
        if not isinstance(payload, dict) or "id" not in payload:
            raise AuthenticationError("Invalid token", code="INVALID_TOKEN")
        return payload

    def decode(self, token: str) -> dict[str, Any]:
        return self._loads(token, self._max_age)

    def decode_for_refresh(self, token: str) -> dict[str, Any]:
        """Like ``decode`` but still accepts tokens expired less than ``refresh_grace`` ago."""
        return self._loads(token, self._max_age + self._refresh_grace)
