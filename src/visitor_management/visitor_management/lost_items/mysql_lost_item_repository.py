from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Any, Optional, Sequence

from ..core.enums import HistoryAction, ItemCondition, LostItemStatus, ReturnRelationship
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, dumps_json, fetchall, fetchone, loads_json
from .model import HistoryEntry, ItemReturn, LostItem, LostItemFilters
from .repository import LostItemRepository

_SELECT = """
    SELECT li.*, u.name AS input_by_name
    FROM lost_items li
    LEFT JOIN users u ON u.id = li.input_by_user_id
"""

_ITEM_COLUMNS = (
    "item_name",
    "description",
    "category",
    "found_location",
    "found_date",
    "found_time",
    "finder_name",
    "finder_contact",
    "condition_status",
    "handover_photo_url",
    "handover_signature_url",
    "status",
    "notes",
    "input_by_user_id",
)
_RETURN_COLUMNS = (
    "claimer_name",
    "claimer_contact",
    "claimer_id_number",
    "relationship_to_owner",
    "proof_of_ownership",
    "return_date",
    "return_time",
    "returned_by",
    "return_operator",
    "return_photo_url",
    "return_signature_url",
    "notes",
)


def _as_time(value: Any) -> Any:
    # mysql-connector returns TIME columns as timedelta
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds()) % 86400
        return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)
    return value


def _db_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def _row_to_item(row: dict) -> LostItem:
    return LostItem(
        id=int(row["id"]),
        item_name=row["item_name"],
        found_location=row["found_location"],
        found_date=row["found_date"],
        found_time=_as_time(row["found_time"]),
        description=row.get("description"),
        category=row.get("category"),
        finder_name=row.get("finder_name"),
        finder_contact=row.get("finder_contact"),
        condition_status=ItemCondition(row.get("condition_status") or ItemCondition.GOOD.value),
        handover_photo_url=row.get("handover_photo_url"),
        handover_signature_url=row.get("handover_signature_url"),
        status=LostItemStatus(row.get("status") or LostItemStatus.FOUND.value),
        notes=row.get("notes"),
        input_by_user_id=row.get("input_by_user_id"),
        input_by_name=row.get("input_by_name"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _row_to_return(row: dict) -> ItemReturn:
    return ItemReturn(
        id=int(row["id"]),
        lost_item_id=int(row["lost_item_id"]),
        claimer_name=row["claimer_name"],
        return_date=row["return_date"],
        return_time=_as_time(row["return_time"]),
        relationship_to_owner=ReturnRelationship(row.get("relationship_to_owner") or ReturnRelationship.OWNER.value),
        claimer_contact=row.get("claimer_contact"),
        claimer_id_number=row.get("claimer_id_number"),
        proof_of_ownership=row.get("proof_of_ownership"),
        returned_by=row.get("returned_by"),
        return_operator=row.get("return_operator"),
        return_photo_url=row.get("return_photo_url"),
        return_signature_url=row.get("return_signature_url"),
        notes=row.get("notes"),
        created_at=row.get("created_at"),
    )


def _row_to_history(row: dict) -> HistoryEntry:
    changed = loads_json(row.get("changed_fields"), [])
    return HistoryEntry(
        id=int(row["id"]),
        lost_item_id=int(row["lost_item_id"]),
        action_type=HistoryAction(row["action_type"]),
        old_data=loads_json(row.get("old_data")),
        new_data=loads_json(row.get("new_data")),
        changed_fields=list(changed) if isinstance(changed, list) else [],
        user_id=row.get("user_id"),
        user_name=row.get("user_name"),
        notes=row.get("notes"),
        created_at=row.get("created_at"),
    )


def _filter_clause(filters: LostItemFilters) -> tuple[str, list]:
    clauses = ["1=1"]
    params: list = []
    if filters.status:
        clauses.append("li.status=%s")
        params.append(filters.status.value)
    if filters.category:
        clauses.append("li.category=%s")
        params.append(filters.category)
    if filters.search:
        like = f"%{filters.search}%"
        clauses.append("(li.item_name LIKE %s OR li.description LIKE %s OR li.found_location LIKE %s)")
        params.extend([like, like, like])
    return " AND ".join(clauses), params


_INSERT_HISTORY = """
    INSERT INTO lost_item_history(
        lost_item_id, action_type, old_data, new_data, changed_fields, user_id, user_name, notes
    ) VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
"""


def _history_params(item_id: int, h: dict) -> tuple:
    return (
        item_id,
        _db_value(h["action"]),
        dumps_json(h.get("old_data")),
        dumps_json(h.get("new_data")),
        dumps_json(list(h.get("changed_fields") or [])),
        h.get("user_id"),
        h.get("user_name"),
        h.get("notes"),
    )


class MySQLLostItemRepository(LostItemRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, data: dict) -> int:
        cols = [k for k in _ITEM_COLUMNS if k in data]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO lost_items({', '.join(cols)}) VALUES({','.join(['%s'] * len(cols))})",
                tuple(_db_value(data[k]) for k in cols),
            )
            return int(cur.lastrowid)

    def get_by_id(self, item_id: int) -> Optional[LostItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE li.id=%s", (item_id,))
            row = fetchone(cur)
            return _row_to_item(row) if row else None

    def list(self, filters: LostItemFilters) -> Sequence[LostItem]:
        where, params = _filter_clause(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {where} ORDER BY li.found_date DESC, li.found_time DESC, li.id DESC LIMIT %s OFFSET %s",
                tuple(params + [filters.limit, filters.offset]),
            )
            return [_row_to_item(r) for r in fetchall(cur)]

    def count(self, filters: LostItemFilters) -> int:
        where, params = _filter_clause(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS cnt FROM lost_items li WHERE {where}", tuple(params))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def update(self, item_id: int, changes: dict) -> bool:
        values = {k: _db_value(v) for k, v in changes.items()}
        sql, params = build_update("lost_items", values, allowed=_ITEM_COLUMNS, where="id=%s", where_params=[item_id])
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def delete(self, item_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM lost_items WHERE id=%s", (item_id,))
            return cur.rowcount > 0

    def get_return(self, item_id: int) -> Optional[ItemReturn]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM item_returns WHERE lost_item_id=%s ORDER BY id DESC LIMIT 1",
                (item_id,),
            )
            row = fetchone(cur)
            return _row_to_return(row) if row else None

    def record_return(self, item_id: int, *, return_data: dict, history: dict) -> bool:
        cols = [k for k in _RETURN_COLUMNS if k in return_data]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE lost_items SET status=%s WHERE id=%s AND status=%s",
                (LostItemStatus.RETURNED.value, item_id, LostItemStatus.FOUND.value),
            )
            if cur.rowcount == 0:
                return False
            cur.execute(
                f"INSERT INTO item_returns(lost_item_id, {', '.join(cols)}) "
                f"VALUES(%s,{','.join(['%s'] * len(cols))})",
                (item_id, *(_db_value(return_data[k]) for k in cols)),
            )
            cur.execute(_INSERT_HISTORY, _history_params(item_id, history))
            return True

    def update_return(self, return_id: int, changes: dict, *, history: dict) -> bool:
        values = {k: _db_value(v) for k, v in changes.items()}
        sql, params = build_update(
            "item_returns", values, allowed=_RETURN_COLUMNS, where="id=%s", where_params=[return_id]
        )
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT lost_item_id FROM item_returns WHERE id=%s", (return_id,))
            row = fetchone(cur)
            if not row:
                return False
            cur.execute(sql, tuple(params))
            cur.execute(_INSERT_HISTORY, _history_params(int(row["lost_item_id"]), history))
            return True

    def add_history(
        self,
        *,
        item_id: int,
        action: HistoryAction,
        old_data: Optional[dict],
        new_data: Optional[dict],
        changed_fields: Sequence[str],
        user_id: Optional[int],
        user_name: Optional[str],
        notes: Optional[str] = None,
    ) -> int:
        history = {
            "action": action,
            "old_data": old_data,
            "new_data": new_data,
            "changed_fields": changed_fields,
            "user_id": user_id,
            "user_name": user_name,
            "notes": notes,
        }
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_INSERT_HISTORY, _history_params(item_id, history))
            return int(cur.lastrowid)

    def list_history(self, item_id: int) -> Sequence[HistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM lost_item_history WHERE lost_item_id=%s ORDER BY created_at DESC, id DESC",
                (item_id,),
            )
            return [_row_to_history(r) for r in fetchall(cur)]

    def get_history(self, history_id: int) -> Optional[HistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM lost_item_history WHERE id=%s", (history_id,))
            row = fetchone(cur)
            return _row_to_history(row) if row else None

    def counts_by_status(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS cnt FROM lost_items GROUP BY status")
            counts = {s.value: 0 for s in LostItemStatus}
            for r in fetchall(cur):
                counts[r["status"]] = int(r["cnt"])
            return counts

    def count_created_since(self, since: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM lost_items WHERE created_at >= %s", (since,))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def count_returns_since(self, since: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM item_returns WHERE created_at >= %s", (since,))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0
