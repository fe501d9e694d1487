from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import EditRequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps_json, fetchall, fetchone, loads_json
from .model import EditRequest
from .repository import EditRequestRepository

_SELECT = """
    SELECT er.*, v.full_name AS visitor_name, u.name AS requested_by_name, p.name AS processed_by_name
    FROM visitor_edit_requests er
    LEFT JOIN visitors v ON v.id = er.visitor_id
    LEFT JOIN users u ON u.id = er.requested_by
    LEFT JOIN users p ON p.id = er.processed_by
"""


def _row_to_request(row: dict) -> EditRequest:
    return EditRequest(
        id=int(row["id"]),
        visitor_id=int(row["visitor_id"]),
        requested_by=row.get("requested_by"),
        reason=row["reason"],
        status=EditRequestStatus(row["status"]),
        proposed_data=loads_json(row.get("proposed_data"), {}),
        original_data=loads_json(row.get("original_data"), {}),
        processed_by=row.get("processed_by"),
        processed_at=row.get("processed_at"),
        rejection_reason=row.get("rejection_reason"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        visitor_name=row.get("visitor_name"),
        requested_by_name=row.get("requested_by_name"),
        processed_by_name=row.get("processed_by_name"),
    )


class MySQLEditRequestRepository(EditRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        visitor_id: int,
        requested_by: Optional[int],
        reason: str,
        original_data: dict,
        proposed_data: dict,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO visitor_edit_requests(visitor_id, requested_by, reason, original_data, proposed_data, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    visitor_id,
                    requested_by,
                    reason,
                    dumps_json(original_data),
                    dumps_json(proposed_data),
                    EditRequestStatus.PENDING.value,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, request_id: int) -> Optional[EditRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE er.id=%s", (request_id,))
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def list(
        self,
        *,
        status: Optional[EditRequestStatus] = None,
        requested_by: Optional[int] = None,
    ) -> Sequence[EditRequest]:
        clauses = ["1=1"]
        params: list = []
        if status:
            clauses.append("er.status=%s")
            params.append(status.value)
        if requested_by is not None:
            clauses.append("er.requested_by=%s")
            params.append(requested_by)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {where} ORDER BY er.created_at DESC, er.id DESC", tuple(params))
            return [_row_to_request(r) for r in fetchall(cur)]

    def get_pending_for_visitor(self, visitor_id: int) -> Optional[EditRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE er.visitor_id=%s AND er.status=%s ORDER BY er.id DESC LIMIT 1",
                (visitor_id, EditRequestStatus.PENDING.value),
            )
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def replace_pending(
        self,
        request_id: int,
        *,
        requested_by: Optional[int],
        reason: str,
        original_data: dict,
        proposed_data: dict,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE visitor_edit_requests
                SET requested_by=%s, reason=%s, original_data=%s, proposed_data=%s
                WHERE id=%s AND status=%s
                """,
                (
                    requested_by,
                    reason,
                    dumps_json(original_data),
                    dumps_json(proposed_data),
                    request_id,
                    EditRequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def approve(self, request_id: int, *, approver_id: int, processed_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE visitor_edit_requests
                SET status=%s, processed_by=%s, processed_at=%s
                WHERE id=%s AND status=%s
                """,
                (
                    EditRequestStatus.APPROVED.value,
                    approver_id,
                    processed_at,
                    request_id,
                    EditRequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def reject(self, request_id: int, *, approver_id: int, processed_at: datetime, reason: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE visitor_edit_requests
                SET status=%s, processed_by=%s, processed_at=%s, rejection_reason=%s
                WHERE id=%s AND status=%s
                """,
                (
                    EditRequestStatus.REJECTED.value,
                    approver_id,
                    processed_at,
                    reason,
                    request_id,
                    EditRequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def counts_by_status(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS cnt FROM visitor_edit_requests GROUP BY status")
            counts = {s.value: 0 for s in EditRequestStatus}
            for r in fetchall(cur):
                counts[r["status"]] = int(r["cnt"])
            counts["total"] = sum(counts.values())
            return counts
