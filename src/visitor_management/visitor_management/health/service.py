from __future__ import annotations

import logging
from typing import Any

from ..common.datetime_utils import now_local
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone

logger = logging.getLogger(__name__)


class HealthService:
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def check_database(self) -> dict[str, Any]:
        """Check the database; raises the driver error when it is unreachable."""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS ok")
            fetchone(cur)
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM information_schema.tables WHERE table_schema=DATABASE() AND table_name='users'"
            )
            row = fetchone(cur)
            users_table = bool(row and int(row["cnt"]))
            user_count = None
            if users_table:
                cur.execute("SELECT COUNT(*) AS cnt FROM users")
                row = fetchone(cur)
                user_count = int(row["cnt"]) if row else 0
        return {"connected": True, "usersTable": users_table, "userCount": user_count}

    def database_time(self) -> dict[str, Any]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT NOW() AS now, DATABASE() AS db")
            row = fetchone(cur) or {}
        return {"currentTime": row.get("now"), "database": row.get("db") or self._conn_factory.database}

    @staticmethod
    def ping() -> dict[str, Any]:
        return {"message": "pong", "timestamp": now_local()}
