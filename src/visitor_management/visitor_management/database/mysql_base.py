from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def dumps_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=str)


def loads_json(value: Any, default: Any = None) -> Any:
    """Decode a JSON column; drivers may hand back str, bytes or already-decoded data."""
    if value is None or value == "":
        return default
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return default
    return value


def build_update(
    table: str,
    changes: Dict[str, Any],
    *,
    allowed: Iterable[str],
    where: str,
    where_params: Sequence[Any],
) -> Tuple[Optional[str], List[Any]]:
    """Build ``UPDATE table SET a=%s, ... WHERE ...`` from whitelisted keys.

    Returns ``(None, [])`` when nothing is left to update.
    """
    allowed_set = set(allowed)
    cols = [k for k in changes if k in allowed_set]
    if not cols:
        return None, []
    assignments = ", ".join(f"{c}=%s" for c in cols)
    params = [changes[c] for c in cols] + list(where_params)
    return f"UPDATE {table} SET {assignments} WHERE {where}", params
