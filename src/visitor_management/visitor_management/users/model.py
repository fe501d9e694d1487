from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: an operator account (front desk, manager, admin).

    Note: plain data object, no DB access here.
    """

    id: int
    name: str
    email: str
    password_hash: str
    role: Role
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    study_program: Optional[str] = None
    cohort: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_public(self) -> dict:
        """Serializable view without the password hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "avatar_url": self.avatar_url,
            "photo_url": self.avatar_url,
            "phone": self.phone,
            "study_program": self.study_program,
            "cohort": self.cohort,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
