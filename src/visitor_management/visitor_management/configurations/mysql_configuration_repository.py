from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone
from .model import ConfigCategory, ConfigOption
from .repository import ConfigurationRepository

_OPTION_SELECT = """
    SELECT o.id, o.category_id, o.option_value, o.display_text, o.group_id, o.sort_order, o.is_active,
           c.key_name AS category_key
    FROM configuration_options o
    JOIN configuration_categories c ON c.id = o.category_id
"""


def _row_to_category(row: dict) -> ConfigCategory:
    return ConfigCategory(
        id=int(row["id"]),
        key_name=row["key_name"],
        display_name=row["display_name"],
        description=row.get("description"),
        is_active=bool(row.get("is_active", True)),
        created_at=row.get("created_at"),
    )


def _row_to_option(row: dict) -> ConfigOption:
    return ConfigOption(
        id=int(row["id"]),
        category_id=int(row["category_id"]),
        option_value=row["option_value"],
        display_text=row.get("display_text"),
        group_id=row.get("group_id"),
        sort_order=int(row.get("sort_order") or 0),
        is_active=bool(row.get("is_active", True)),
        category_key=row.get("category_key"),
    )


class MySQLConfigurationRepository(ConfigurationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_categories(self, *, include_inactive: bool = False) -> Sequence[ConfigCategory]:
        where = "1=1" if include_inactive else "is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM configuration_categories WHERE {where} ORDER BY display_name")
            return [_row_to_category(r) for r in fetchall(cur)]

    def get_category(self, category_id: int) -> Optional[ConfigCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM configuration_categories WHERE id=%s", (category_id,))
            row = fetchone(cur)
            return _row_to_category(row) if row else None

    def get_category_by_key(self, key_name: str) -> Optional[ConfigCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM configuration_categories WHERE key_name=%s", (key_name,))
            row = fetchone(cur)
            return _row_to_category(row) if row else None

    def create_category(self, *, key_name: str, display_name: str, description: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO configuration_categories(key_name, display_name, description) VALUES(%s,%s,%s)",
                (key_name, display_name, description),
            )
            return int(cur.lastrowid)

    def update_category(self, category_id: int, changes: dict) -> bool:
        sql, params = build_update(
            "configuration_categories",
            changes,
            allowed=("display_name", "description", "is_active"),
            where="id=%s",
            where_params=[category_id],
        )
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def delete_category(self, category_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM configuration_options WHERE category_id=%s", (category_id,))
            cur.execute("DELETE FROM configuration_categories WHERE id=%s", (category_id,))
            return cur.rowcount > 0

    def list_options(self, category_id: int, *, include_inactive: bool = False) -> Sequence[ConfigOption]:
        clauses = ["o.category_id=%s"]
        if not include_inactive:
            clauses.append("o.is_active=1")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_OPTION_SELECT} WHERE {' AND '.join(clauses)} ORDER BY o.sort_order, o.option_value",
                (category_id,),
            )
            return [_row_to_option(r) for r in fetchall(cur)]

    def get_option(self, option_id: int) -> Optional[ConfigOption]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_OPTION_SELECT} WHERE o.id=%s", (option_id,))
            row = fetchone(cur)
            return _row_to_option(row) if row else None

    def create_option(
        self,
        *,
        category_id: int,
        option_value: str,
        display_text: Optional[str],
        group_id: Optional[int],
        sort_order: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO configuration_options(category_id, option_value, display_text, group_id, sort_order)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (category_id, option_value, display_text, group_id, sort_order),
            )
            return int(cur.lastrowid)

    def update_option(self, option_id: int, changes: dict) -> bool:
        values = dict(changes)
        if "is_active" in values:
            values["is_active"] = 1 if values["is_active"] else 0
        sql, params = build_update(
            "configuration_options",
            values,
            allowed=("option_value", "display_text", "group_id", "sort_order", "is_active"),
            where="id=%s",
            where_params=[option_id],
        )
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def delete_option(self, option_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM configuration_options WHERE id=%s", (option_id,))
            return cur.rowcount > 0

    def max_sort_order(self, category_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(MAX(sort_order), 0) AS max_order FROM configuration_options WHERE category_id=%s",
                (category_id,),
            )
            row = fetchone(cur)
            return int(row["max_order"]) if row else 0

    def set_sort_orders(self, category_id: int, orders: Sequence[tuple[int, int]]) -> int:
        updated = 0
        with db_cursor(self._conn_factory) as (_, cur):
            for option_id, sort_order in orders:
                cur.execute(
                    "UPDATE configuration_options SET sort_order=%s WHERE id=%s AND category_id=%s",
                    (sort_order, option_id, category_id),
                )
                updated += cur.rowcount
        return updated

    def search_options(self, term: str) -> Sequence[ConfigOption]:
        like = f"%{term}%"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_OPTION_SELECT}
                WHERE o.option_value LIKE %s OR o.display_text LIKE %s
                ORDER BY c.key_name, o.sort_order
                LIMIT 100
                """,
                (like, like),
            )
            return [_row_to_option(r) for r in fetchall(cur)]
