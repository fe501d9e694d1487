from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import ComplaintPriority, ComplaintStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, dumps_json, fetchall, fetchone, loads_json
from .fields import normalize_field
from .model import Complaint, ComplaintCategory, ComplaintField, ComplaintFilters, ComplaintResponse
from .repository import ComplaintFieldRepository, ComplaintRepository

_SELECT = """
    SELECT c.*, cc.name AS category_name, cc.color AS category_color, u.name AS assigned_to_name
    FROM complaints c
    LEFT JOIN complaint_categories cc ON cc.id = c.category_id
    LEFT JOIN users u ON u.id = c.assigned_to
"""

_INSERTABLE = (
    "ticket_number",
    "visitor_id",
    "complainant_name",
    "complainant_email",
    "complainant_phone",
    "category_id",
    "subject",
    "description",
    "priority",
    "status",
    "form_data",
    "photo_urls",
)
_UPDATABLE = ("status", "priority", "assigned_to", "resolved_at", "category_id")
_JSON_COLUMNS = {"form_data", "photo_urls", "field_options", "validation_rules"}
_FIELD_COLUMNS = (
    "field_name",
    "field_label",
    "field_type",
    "field_options",
    "is_required",
    "field_order",
    "is_active",
    "placeholder",
    "help_text",
    "validation_rules",
)
_CATEGORY_COLUMNS = ("name", "description", "color", "is_active")


def _db_value(key: str, value):
    if key in _JSON_COLUMNS:
        return dumps_json(value)
    if hasattr(value, "value"):
        return value.value
    return value


def _row_to_category(row: dict) -> ComplaintCategory:
    return ComplaintCategory(
        id=int(row["id"]),
        name=row["name"],
        description=row.get("description"),
        color=row.get("color") or "#6b7280",
        is_active=bool(row.get("is_active", 1)),
    )


def _row_to_complaint(row: dict) -> Complaint:
    return Complaint(
        id=int(row["id"]),
        ticket_number=row["ticket_number"],
        complainant_name=row["complainant_name"],
        subject=row["subject"],
        description=row["description"],
        priority=ComplaintPriority(row.get("priority") or ComplaintPriority.MEDIUM.value),
        status=ComplaintStatus(row.get("status") or ComplaintStatus.OPEN.value),
        complainant_email=row.get("complainant_email"),
        complainant_phone=row.get("complainant_phone"),
        category_id=row.get("category_id"),
        category_name=row.get("category_name"),
        category_color=row.get("category_color"),
        visitor_id=row.get("visitor_id"),
        form_data=loads_json(row.get("form_data"), {}) or {},
        photo_urls=loads_json(row.get("photo_urls"), []) or [],
        assigned_to=row.get("assigned_to"),
        assigned_to_name=row.get("assigned_to_name"),
        resolved_at=row.get("resolved_at"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _filter_clause(filters: ComplaintFilters) -> tuple[str, list]:
    clauses = ["1=1"]
    params: list = []
    if filters.status:
        clauses.append("c.status=%s")
        params.append(filters.status.value)
    if filters.priority:
        clauses.append("c.priority=%s")
        params.append(filters.priority.value)
    if filters.category_id is not None:
        clauses.append("c.category_id=%s")
        params.append(filters.category_id)
    if filters.search:
        like = f"%{filters.search}%"
        clauses.append("(c.ticket_number LIKE %s OR c.subject LIKE %s OR c.complainant_name LIKE %s)")
        params.extend([like, like, like])
    return " AND ".join(clauses), params


class MySQLComplaintRepository(ComplaintRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def next_sequence(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COALESCE(MAX(id), 0) + 1 AS seq FROM complaints")
            row = fetchone(cur)
            return int(row["seq"]) if row else 1

    def create(self, data: dict) -> int:
        cols = [k for k in _INSERTABLE if k in data]
        placeholders = ",".join(["%s"] * len(cols))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO complaints({', '.join(cols)}) VALUES({placeholders})",
                tuple(_db_value(k, data[k]) for k in cols),
            )
            return int(cur.lastrowid)

    def get_by_id(self, complaint_id: int) -> Optional[Complaint]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE c.id=%s", (complaint_id,))
            row = fetchone(cur)
            return _row_to_complaint(row) if row else None

    def list(self, filters: ComplaintFilters) -> Sequence[Complaint]:
        where, params = _filter_clause(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {where} ORDER BY c.created_at DESC, c.id DESC LIMIT %s OFFSET %s",
                tuple(params + [filters.limit, filters.offset]),
            )
            return [_row_to_complaint(r) for r in fetchall(cur)]

    def count(self, filters: ComplaintFilters) -> int:
        where, params = _filter_clause(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS cnt FROM complaints c WHERE {where}", tuple(params))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def update(self, complaint_id: int, changes: dict) -> bool:
        values = {k: _db_value(k, v) for k, v in changes.items()}
        sql, params = build_update("complaints", values, allowed=_UPDATABLE, where="id=%s", where_params=[complaint_id])
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def add_response(self, *, complaint_id: int, responder_id: Optional[int], text: str, is_internal: bool) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO complaint_responses(complaint_id, responder_id, response_text, is_internal)
                VALUES(%s,%s,%s,%s)
                """,
                (complaint_id, responder_id, text, 1 if is_internal else 0),
            )
            return int(cur.lastrowid)

    def list_responses(self, complaint_id: int) -> Sequence[ComplaintResponse]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT r.*, u.name AS responder_name
                FROM complaint_responses r
                LEFT JOIN users u ON u.id = r.responder_id
                WHERE r.complaint_id=%s
                ORDER BY r.created_at ASC, r.id ASC
                """,
                (complaint_id,),
            )
            return [
                ComplaintResponse(
                    id=int(r["id"]),
                    complaint_id=int(r["complaint_id"]),
                    responder_id=r.get("responder_id"),
                    response_text=r["response_text"],
                    is_internal=bool(r.get("is_internal")),
                    responder_name=r.get("responder_name"),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    def list_categories(self, *, active_only: bool = True) -> Sequence[ComplaintCategory]:
        where = "WHERE is_active=1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM complaint_categories {where} ORDER BY name")
            return [_row_to_category(r) for r in fetchall(cur)]

    def category_exists(self, category_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS found FROM complaint_categories WHERE id=%s", (category_id,))
            return fetchone(cur) is not None

    def get_category(self, category_id: int) -> Optional[ComplaintCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM complaint_categories WHERE id=%s", (category_id,))
            row = fetchone(cur)
            return _row_to_category(row) if row else None

    def get_category_by_name(self, name: str) -> Optional[ComplaintCategory]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM complaint_categories WHERE LOWER(name)=LOWER(%s)", (name,))
            row = fetchone(cur)
            return _row_to_category(row) if row else None

    def create_category(self, *, name: str, description: Optional[str], color: str, is_active: bool) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO complaint_categories(name, description, color, is_active) VALUES(%s,%s,%s,%s)",
                (name, description, color, 1 if is_active else 0),
            )
            return int(cur.lastrowid)

    def update_category(self, category_id: int, changes: dict) -> bool:
        values = dict(changes)
        if "is_active" in values:
            values["is_active"] = 1 if values["is_active"] else 0
        sql, params = build_update(
            "complaint_categories", values, allowed=_CATEGORY_COLUMNS, where="id=%s", where_params=[category_id]
        )
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def delete_category(self, category_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM complaint_categories WHERE id=%s", (category_id,))
            return cur.rowcount > 0

    def counts_by_status(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS cnt FROM complaints GROUP BY status")
            counts = {s.value: 0 for s in ComplaintStatus}
            for r in fetchall(cur):
                counts[r["status"]] = int(r["cnt"])
            return counts

    def count_created_since(self, since: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM complaints WHERE created_at >= %s", (since,))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0


class MySQLComplaintFieldRepository(ComplaintFieldRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_fields(self, *, active_only: bool = False) -> Sequence[ComplaintField]:
        where = "WHERE is_active=1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM complaint_fields {where} ORDER BY field_order ASC, field_name ASC")
            return [normalize_field(r) for r in fetchall(cur)]

    def get_field(self, field_id: int) -> Optional[ComplaintField]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM complaint_fields WHERE id=%s", (field_id,))
            row = fetchone(cur)
            return normalize_field(row) if row else None

    def get_field_by_name(self, field_name: str) -> Optional[ComplaintField]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM complaint_fields WHERE field_name=%s", (field_name,))
            row = fetchone(cur)
            return normalize_field(row) if row else None

    def create_field(self, data: dict) -> int:
        cols = [k for k in _FIELD_COLUMNS if k in data]
        placeholders = ",".join(["%s"] * len(cols))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO complaint_fields({', '.join(cols)}) VALUES({placeholders})",
                tuple(_db_value(k, data[k]) for k in cols),
            )
            return int(cur.lastrowid)

    def update_field(self, field_id: int, changes: dict) -> bool:
        values = {k: _db_value(k, v) for k, v in changes.items()}
        sql, params = build_update(
            "complaint_fields", values, allowed=_FIELD_COLUMNS, where="id=%s", where_params=[field_id]
        )
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def delete_field(self, field_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM complaint_fields WHERE id=%s", (field_id,))
            return cur.rowcount > 0

    def set_field_orders(self, orders: Iterable[tuple[int, int]]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            for field_id, order in orders:
                cur.execute("UPDATE complaint_fields SET field_order=%s WHERE id=%s", (order, field_id))
