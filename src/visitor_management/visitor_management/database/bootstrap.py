from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from ..core.enums import Role
from .connection import DBConfig

logger = logging.getLogger(__name__)

DEFAULT_USERS = (
    ("Administrator", "admin@ultfpeb.upi.edu", "admin123", Role.ADMIN),
    ("Receptionist", "receptionist@ultfpeb.upi.edu", "receptionist123", Role.RECEPTIONIST),
)


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(
        host=target.host,
        port=target.port,
        user=target.user,
        password=target.password,
        charset="utf8mb4",
        use_pure=True,
    )
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comment_lines(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in _strip_comment_lines(sql):
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _exec_sql(cur, sql: str) -> int:
    count = 0
    for stmt in _iter_sql_statements(sql):
        cur.execute(stmt)
        count += 1
    return count


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def _apply_sql_file(db_config: dict, path: str | Path) -> int:
    sql = _strip_create_db_and_use(Path(path).read_text(encoding="utf-8"))
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        count = _exec_sql(cur, sql)
        conn.commit()
        return count
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _apply_sql_file(db_config, schema_path)
    logger.info("Applied schema %s (%d statements)", Path(schema_path).name, count)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _apply_sql_file(db_config, seed_path)
    logger.info("Applied seed %s (%d statements)", Path(seed_path).name, count)


def ensure_default_users(db_config: dict) -> list[str]:
    """Create the default Admin/Receptionist accounts when missing.

    Existing accounts are left untouched so changed passwords survive re-seeding.
    Returns the emails that were created.
    """
    conn = _connect(DBConfig.from_dict(db_config))
    created: list[str] = []
    try:
        cur = conn.cursor(dictionary=True)
        for name, email, password, role in DEFAULT_USERS:
            cur.execute("SELECT id FROM users WHERE email=%s", (email,))
            if cur.fetchone():
                continue
            cur.execute(
                "INSERT INTO users (name, email, password, role, is_active) VALUES (%s, %s, %s, %s, 1)",
                (name, email, generate_password_hash(password), role.value),
            )
            created.append(email)
        conn.commit()
    finally:
        conn.close()

    for email in created:
        logger.info("Created default user %s", email)
    return created


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
