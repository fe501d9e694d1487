from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for operator accounts.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def list_users(self, *, role: Optional[Role] = None, search: Optional[str] = None) -> Sequence[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        phone: Optional[str] = None,
        study_program: Optional[str] = None,
        cohort: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_user(self, user_id: int, changes: dict) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def count_by_role(self) -> dict[str, int]:
        raise NotImplementedError

    def count_created_since(self, since: datetime) -> int:
        raise NotImplementedError

    def count_visitors(self, user_id: int) -> int:
        raise NotImplementedError

    def recent_visitors(self, user_id: int, *, limit: int = 5) -> Sequence[dict]:
        raise NotImplementedError

    def transfer_visitors(self, *, from_user_id: int, to_user_id: int, to_user_name: str) -> int:
        raise NotImplementedError
