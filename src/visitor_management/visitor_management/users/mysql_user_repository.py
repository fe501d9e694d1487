from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_COLUMNS = (
    "id, name, email, password, role, avatar_url, phone, study_program, cohort, is_active, created_at, updated_at"
)
_UPDATABLE = ("name", "email", "password", "role", "avatar_url", "phone", "study_program", "cohort", "is_active")


def _row_to_user(row: dict) -> User:
    return User(
        id=int(row["id"]),
        name=row["name"],
        email=row["email"],
        password_hash=row["password"],
        role=Role(row["role"]),
        avatar_url=row.get("avatar_url"),
        phone=row.get("phone"),
        study_program=row.get("study_program"),
        cohort=row.get("cohort"),
        is_active=bool(row.get("is_active", True)),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE id=%s", (user_id,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def list_users(self, *, role: Optional[Role] = None, search: Optional[str] = None) -> Sequence[User]:
        clauses = ["1=1"]
        params: list = []
        if role:
            clauses.append("role=%s")
            params.append(role.value)
        if search:
            like = f"%{search}%"
            clauses.append("(name LIKE %s OR email LIKE %s OR study_program LIKE %s)")
            params.extend([like, like, like])

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {where} ORDER BY created_at DESC", tuple(params))
            return [_row_to_user(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(name, email, password, role, phone, study_program, cohort, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (name, email, password_hash, role.value, phone, study_program, cohort),
            )
            return int(cur.lastrowid)

    def update_user(self, user_id: int, changes: dict) -> bool:
        values = dict(changes)
        if isinstance(values.get("role"), Role):
            values["role"] = values["role"].value
        if "is_active" in values:
            values["is_active"] = 1 if values["is_active"] else 0

        sql, params = build_update("users", values, allowed=_UPDATABLE, where="id=%s", where_params=[user_id])
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE id=%s", (user_id,))
            return cur.rowcount > 0

    def count_by_role(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT role, COUNT(*) AS cnt FROM users GROUP BY role")
            return {r["role"]: int(r["cnt"]) for r in fetchall(cur)}

    def count_created_since(self, since: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM users WHERE created_at >= %s", (since,))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def count_visitors(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM visitors WHERE input_by_user_id=%s", (user_id,))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def recent_visitors(self, user_id: int, *, limit: int = 5) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, full_name, check_in_time
                FROM visitors
                WHERE input_by_user_id=%s
                ORDER BY check_in_time DESC
                LIMIT %s
                """,
                (user_id, int(limit)),
            )
            return fetchall(cur)

    def transfer_visitors(self, *, from_user_id: int, to_user_id: int, to_user_name: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE visitors SET input_by_user_id=%s, input_by_name=%s WHERE input_by_user_id=%s",
                (to_user_id, to_user_name, from_user_id),
            )
            return int(cur.rowcount)
