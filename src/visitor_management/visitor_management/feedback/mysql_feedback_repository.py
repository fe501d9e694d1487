from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import FeedbackStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Feedback
from .repository import FeedbackRepository

_INSERTABLE = ("visitor_id", "visitor_name", "rating", "category", "feedback_text", "status")


def _row_to_feedback(row: dict) -> Feedback:
    return Feedback(
        id=int(row["id"]),
        visitor_name=row["visitor_name"],
        rating=int(row["rating"]),
        status=FeedbackStatus(row.get("status") or FeedbackStatus.NEW.value),
        visitor_id=row.get("visitor_id"),
        category=row.get("category"),
        feedback_text=row.get("feedback_text"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _filter_clause(rating: Optional[int], category: Optional[str]) -> tuple[str, list]:
    clauses = ["1=1"]
    params: list = []
    if rating is not None:
        clauses.append("rating=%s")
        params.append(rating)
    if category:
        clauses.append("category=%s")
        params.append(category)
    return " AND ".join(clauses), params


class MySQLFeedbackRepository(FeedbackRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, data: dict) -> int:
        cols = [k for k in _INSERTABLE if k in data]
        values = tuple(data[k].value if isinstance(data[k], FeedbackStatus) else data[k] for k in cols)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO feedback({', '.join(cols)}) VALUES({','.join(['%s'] * len(cols))})",
                values,
            )
            return int(cur.lastrowid)

    def get_by_id(self, feedback_id: int) -> Optional[Feedback]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM feedback WHERE id=%s", (feedback_id,))
            row = fetchone(cur)
            return _row_to_feedback(row) if row else None

    def list(
        self,
        *,
        rating: Optional[int] = None,
        category: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Feedback]:
        where, params = _filter_clause(rating, category)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT * FROM feedback WHERE {where} ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params + [limit, offset]),
            )
            return [_row_to_feedback(r) for r in fetchall(cur)]

    def count(self, *, rating: Optional[int] = None, category: Optional[str] = None) -> int:
        where, params = _filter_clause(rating, category)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS cnt FROM feedback WHERE {where}", tuple(params))
            row = fetchone(cur)
            return int(row["cnt"]) if row else 0

    def update_status(self, feedback_id: int, status: FeedbackStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE feedback SET status=%s WHERE id=%s", (status.value, feedback_id))
            return cur.rowcount > 0

    def rating_summary(self) -> dict:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total, AVG(rating) AS average FROM feedback")
            row = fetchone(cur) or {}
            average = row.get("average")
            return {"total": int(row.get("total") or 0), "average": float(average) if average is not None else None}

    def rating_distribution(self) -> dict[int, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT rating, COUNT(*) AS cnt FROM feedback GROUP BY rating")
            return {int(r["rating"]): int(r["cnt"]) for r in fetchall(cur)}

    def category_distribution(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(category, 'Lainnya') AS category, COUNT(*) AS cnt FROM feedback GROUP BY 1 ORDER BY cnt DESC"
            )
            return {r["category"]: int(r["cnt"]) for r in fetchall(cur)}
