from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from ..core.enums import VisitorStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, dumps_json, fetchall, fetchone, loads_json
from .model import EditHistoryEntry, Visitor, VisitorFilters
from .repository import VisitorRepository

_INSERTABLE = (
    "full_name",
    "email",
    "phone_number",
    "address",
    "institution",
    "purpose",
    "person_to_meet",
    "unit",
    "id_number",
    "id_type",
    "photo_url",
    "signature_url",
    "request_document",
    "document_type",
    "document_name",
    "document_number",
    "check_in_time",
    "input_by_user_id",
    "input_by_name",
)
_UPDATABLE = _INSERTABLE


def _row_to_visitor(row: dict) -> Visitor:
    return Visitor(
        id=int(row["id"]),
        full_name=row["full_name"],
        phone_number=row["phone_number"],
        institution=row["institution"],
        purpose=row["purpose"],
        unit=row["unit"],
        check_in_time=row["check_in_time"],
        status=VisitorStatus(row.get("status") or VisitorStatus.CHECKED_IN.value),
        email=row.get("email"),
        address=row.get("address"),
        person_to_meet=row.get("person_to_meet"),
        id_number=row.get("id_number"),
        id_type=row.get("id_type"),
        photo_url=row.get("photo_url"),
        signature_url=row.get("signature_url"),
        request_document=bool(row.get("request_document")),
        document_type=row.get("document_type"),
        document_name=row.get("document_name"),
        document_number=row.get("document_number"),
        check_out_time=row.get("check_out_time"),
        input_by_user_id=row.get("input_by_user_id"),
        input_by_name=row.get("input_by_name"),
        checkout_by_user_id=row.get("checkout_by_user_id"),
        checkout_by_name=row.get("checkout_by_name"),
        deleted_at=row.get("deleted_at"),
        deleted_by=row.get("deleted_by"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _filter_clause(filters: VisitorFilters) -> tuple[str, list]:
    clauses = ["1=1"]
    params: list = []

    if filters.only_deleted:
        clauses.append("deleted_at IS NOT NULL")
    elif not filters.include_deleted:
        clauses.append("deleted_at IS NULL")

    if filters.start_date:
        clauses.append("check_in_time >= %s")
        params.append(datetime.combine(filters.start_date, time.min))
    if filters.end_date:
        clauses.append("check_in_time < %s")
        params.append(datetime.combine(filters.end_date + timedelta(days=1), time.min))
    if filters.location:
        clauses.append("unit LIKE %s")
        params.append(f"%{filters.location}%")
    if filters.purpose:
        clauses.append("purpose LIKE %s")
        params.append(f"%{filters.purpose}%")
    if filters.search:
        like = f"%{filters.search}%"
        clauses.append("(full_name LIKE %s OR institution LIKE %s OR purpose LIKE %s)")
        params.extend([like, like, like])
    if filters.status == "active":
        clauses.append("check_out_time IS NULL")
    elif filters.status == "completed":
        clauses.append("check_out_time IS NOT NULL")

    return " AND ".join(clauses), params


class MySQLVisitorRepository(VisitorRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, data: dict) -> int:
        cols = [c for c in _INSERTABLE if c in data]
        placeholders = ",".join(["%s"] * len(cols))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO visitors({', '.join(cols)}, status) VALUES({placeholders}, %s)",
                tuple(data[c] for c in cols) + (VisitorStatus.CHECKED_IN.value,),
            )
            return int(cur.lastrowid)

    def get_by_id(self, visitor_id: int) -> Optional[Visitor]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM visitors WHERE id=%s", (visitor_id,))
            row = fetchone(cur)
            return _row_to_visitor(row) if row else None

    def list(self, filters: VisitorFilters) -> Sequence[Visitor]:
        where, params = _filter_clause(filters)
        sql = f"SELECT * FROM visitors WHERE {where} ORDER BY check_in_time DESC"
        if filters.limit:
            sql += " LIMIT %s OFFSET %s"
            params.extend([int(filters.limit), int(filters.offset)])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_visitor(r) for r in fetchall(cur)]

    def count(self, filters: VisitorFilters) -> int:
        where, params = _filter_clause(filters)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS cnt FROM visitors WHERE {where}", tuple(params))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def update(self, visitor_id: int, changes: dict) -> bool:
        sql, params = build_update("visitors", changes, allowed=_UPDATABLE, where="id=%s", where_params=[visitor_id])
        if not sql:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def check_out(
        self,
        visitor_id: int,
        *,
        check_out_time: datetime,
        operator_id: Optional[int],
        operator_name: Optional[str],
        extra: dict,
    ) -> bool:
        values = {k: v for k, v in extra.items() if k in _UPDATABLE}
        values.update(
            {
                "check_out_time": check_out_time,
                "status": VisitorStatus.CHECKED_OUT.value,
                "checkout_by_user_id": operator_id,
                "checkout_by_name": operator_name,
            }
        )
        sql, params = build_update(
            "visitors",
            values,
            allowed=set(_UPDATABLE) | {"check_out_time", "status", "checkout_by_user_id", "checkout_by_name"},
            where="id=%s AND check_out_time IS NULL",
            where_params=[visitor_id],
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def add_edit_history(
        self,
        *,
        visitor_id: int,
        edited_by: Optional[int],
        edited_by_name: Optional[str],
        changes: dict,
        original_data: Optional[dict],
        reason: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO visitor_edit_history(visitor_id, edited_by, edited_by_name, changes, original_data, reason)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (visitor_id, edited_by, edited_by_name, dumps_json(changes), dumps_json(original_data), reason),
            )
            return int(cur.lastrowid)

    def list_edit_history(self, visitor_id: int, *, limit: int, offset: int) -> Sequence[EditHistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, visitor_id, edited_by, edited_by_name, changes, original_data, reason, created_at
                FROM visitor_edit_history
                WHERE visitor_id=%s
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                (visitor_id, int(limit), int(offset)),
            )
            return [
                EditHistoryEntry(
                    id=int(r["id"]),
                    visitor_id=int(r["visitor_id"]),
                    edited_by=r.get("edited_by"),
                    edited_by_name=r.get("edited_by_name"),
                    changes=loads_json(r.get("changes"), {}),
                    original_data=loads_json(r.get("original_data")),
                    reason=r.get("reason"),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]

    def count_edit_history(self, visitor_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM visitor_edit_history WHERE visitor_id=%s", (visitor_id,))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def soft_delete(self, visitor_id: int, *, deleted_by: Optional[int], deleted_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE visitors SET deleted_at=%s, deleted_by=%s WHERE id=%s AND deleted_at IS NULL",
                (deleted_at, deleted_by, visitor_id),
            )
            return cur.rowcount > 0

    def restore(self, visitor_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE visitors SET deleted_at=NULL, deleted_by=NULL WHERE id=%s AND deleted_at IS NOT NULL",
                (visitor_id,),
            )
            return cur.rowcount > 0

    def delete_permanently(self, visitor_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM visitors WHERE id=%s", (visitor_id,))
            return cur.rowcount > 0

    def counts(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN deleted_at IS NULL THEN 1 ELSE 0 END), 0) AS active,
                       COALESCE(SUM(CASE WHEN deleted_at IS NOT NULL THEN 1 ELSE 0 END), 0) AS deleted
                FROM visitors
                """
            )
            row = fetchone(cur) or {}
            return {k: int(row.get(k) or 0) for k in ("total", "active", "deleted")}

    def count_checked_in_between(self, start: datetime, end: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS cnt FROM visitors
                WHERE deleted_at IS NULL AND check_in_time >= %s AND check_in_time < %s
                """,
                (start, end),
            )
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def count_on_site(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS cnt FROM visitors WHERE deleted_at IS NULL AND check_out_time IS NULL")
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def counts_by_unit(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT unit, COUNT(*) AS count FROM visitors
                WHERE deleted_at IS NULL
                GROUP BY unit
                ORDER BY count DESC, unit
                """
            )
            return [{"unit": r["unit"], "count": int(r["count"])} for r in fetchall(cur)]

    def daily_counts(self, since: date) -> dict[date, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DATE(check_in_time) AS day, COUNT(*) AS cnt FROM visitors
                WHERE deleted_at IS NULL AND check_in_time >= %s
                GROUP BY DATE(check_in_time)
                """,
                (datetime.combine(since, time.min),),
            )
            return {r["day"]: int(r["cnt"]) for r in fetchall(cur)}

    def top_purposes(self, *, limit: int) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT purpose, COUNT(*) AS count FROM visitors
                WHERE deleted_at IS NULL
                GROUP BY purpose
                ORDER BY count DESC, purpose
                LIMIT %s
                """,
                (int(limit),),
            )
            return [{"purpose": r["purpose"], "count": int(r["count"])} for r in fetchall(cur)]

    def recent(self, *, limit: int, since: Optional[datetime] = None) -> Sequence[Visitor]:
        clauses = ["deleted_at IS NULL"]
        params: list = []
        if since:
            clauses.append("check_in_time >= %s")
            params.append(since)
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT * FROM visitors WHERE {' AND '.join(clauses)} ORDER BY check_in_time DESC LIMIT %s",
                tuple(params),
            )
            return [_row_to_visitor(r) for r in fetchall(cur)]
