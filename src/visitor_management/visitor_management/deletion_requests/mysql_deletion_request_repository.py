from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import DeletionRequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import DeletionRequest
from .repository import DeletionRequestRepository

_SELECT = """
    SELECT dr.*, v.full_name AS visitor_name, u.name AS requested_by_name
    FROM deletion_requests dr
    LEFT JOIN visitors v ON v.id = dr.visitor_id
    LEFT JOIN users u ON u.id = dr.requested_by
"""


def _row_to_request(row: dict) -> DeletionRequest:
    return DeletionRequest(
        id=int(row["id"]),
        visitor_id=int(row["visitor_id"]),
        requested_by=row.get("requested_by"),
        reason=row["reason"],
        status=DeletionRequestStatus(row["status"]),
        created_at=row.get("created_at"),
        approved_by=row.get("approved_by"),
        approved_at=row.get("approved_at"),
        rejected_by=row.get("rejected_by"),
        rejected_at=row.get("rejected_at"),
        rejection_reason=row.get("rejection_reason"),
        visitor_name=row.get("visitor_name"),
        requested_by_name=row.get("requested_by_name"),
    )


class MySQLDeletionRequestRepository(DeletionRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, visitor_id: int, requested_by: Optional[int], reason: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO deletion_requests(visitor_id, requested_by, reason, status) VALUES(%s,%s,%s,%s)",
                (visitor_id, requested_by, reason, DeletionRequestStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def get_by_id(self, request_id: int) -> Optional[DeletionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE dr.id=%s", (request_id,))
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def list(
        self,
        *,
        status: Optional[DeletionRequestStatus] = None,
        requested_by: Optional[int] = None,
    ) -> Sequence[DeletionRequest]:
        clauses = ["1=1"]
        params: list = []
        if status:
            clauses.append("dr.status=%s")
            params.append(status.value)
        if requested_by is not None:
            clauses.append("dr.requested_by=%s")
            params.append(requested_by)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE {where} ORDER BY dr.created_at DESC, dr.id DESC", tuple(params))
            return [_row_to_request(r) for r in fetchall(cur)]

    def get_pending_for_visitor(self, visitor_id: int) -> Optional[DeletionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE dr.visitor_id=%s AND dr.status=%s ORDER BY dr.id DESC LIMIT 1",
                (visitor_id, DeletionRequestStatus.PENDING.value),
            )
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def latest_for_visitor(self, visitor_id: int) -> Optional[DeletionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE dr.visitor_id=%s ORDER BY dr.id DESC LIMIT 1", (visitor_id,))
            row = fetchone(cur)
            return _row_to_request(row) if row else None

    def latest_status_for_visitors(self, visitor_ids: Iterable[int]) -> dict[int, str]:
        ids = [int(v) for v in visitor_ids]
        if not ids:
            return {}
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT dr.visitor_id, dr.status
                FROM deletion_requests dr
                JOIN (
                    SELECT visitor_id, MAX(id) AS max_id
                    FROM deletion_requests
                    WHERE visitor_id IN ({placeholders})
                    GROUP BY visitor_id
                ) latest ON latest.max_id = dr.id
                """,
                tuple(ids),
            )
            return {int(r["visitor_id"]): r["status"] for r in fetchall(cur)}

    def approve(self, request_id: int, *, approver_id: int, approved_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE deletion_requests
                SET status=%s, approved_by=%s, approved_at=%s
                WHERE id=%s AND status=%s
                """,
                (
                    DeletionRequestStatus.APPROVED.value,
                    approver_id,
                    approved_at,
                    request_id,
                    DeletionRequestStatus.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                return False
            cur.execute(
                """
                UPDATE visitors v
                JOIN deletion_requests dr ON dr.visitor_id = v.id
                SET v.deleted_at=%s, v.deleted_by=%s
                WHERE dr.id=%s AND v.deleted_at IS NULL
                """,
                (approved_at, approver_id, request_id),
            )
            return True

    def reject(self, request_id: int, *, approver_id: int, rejected_at: datetime, reason: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE deletion_requests
                SET status=%s, rejected_by=%s, rejected_at=%s, rejection_reason=%s
                WHERE id=%s AND status=%s
                """,
                (
                    DeletionRequestStatus.REJECTED.value,
                    approver_id,
                    rejected_at,
                    reason,
                    request_id,
                    DeletionRequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def counts_by_status(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS cnt FROM deletion_requests GROUP BY status")
            counts = {s.value: 0 for s in DeletionRequestStatus}
            for r in fetchall(cur):
                counts[r["status"]] = int(r["cnt"])
            counts["total"] = sum(counts.values())
            return counts
