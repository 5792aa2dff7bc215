from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Optional

import mysql.connector
from werkzeug.security import generate_password_hash

from ..common.logging_config import get_logger
from .connection import DBConfig

logger = get_logger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parents[4] / "database"
CENTRAL_SCHEMA = SCHEMA_DIR / "central_schema.sql"
TENANT_SCHEMA = SCHEMA_DIR / "tenant_schema.sql"

_DB_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema files compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes and -- comments).
    buf: list[str] = []
    in_single = False
    in_double = False
    in_comment = False
    escape = False
    prev = ""

    for ch in sql:
        if in_comment:
            if ch == "\n":
                in_comment = False
                buf.append(ch)
            prev = ch
            continue

        if escape:
            buf.append(ch)
            escape = False
            prev = ch
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            prev = ch
            continue

        if ch == "-" and prev == "-" and not in_single and not in_double:
            buf.pop()
            in_comment = True
            prev = ""
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            prev = ch
            if stmt:
                yield stmt
            continue

        buf.append(ch)
        prev = ch

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _safe_db_name(name: str) -> str:
    if not _DB_NAME_RE.match(name or ""):
        raise ValueError(f"Unsafe database name: {name!r}")
    return name


def ensure_database_exists(db_config: dict, database: Optional[str] = None) -> None:
    target = DBConfig.from_dict(db_config)
    name = _safe_db_name(database or target.database)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
    finally:
        conn.close()


def drop_database(db_config: dict, database: str) -> None:
    target = DBConfig.from_dict(db_config)
    name = _safe_db_name(database)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(f"DROP DATABASE IF EXISTS `{name}`")
        conn.commit()
    finally:
        conn.close()
    logger.warning("Dropped database %s", name)


def apply_schema(db_config: dict, *, schema_path: str | Path, database: Optional[str] = None) -> None:
    target = DBConfig.from_dict(db_config)
    if database:
        target = target.for_database(database)
    ensure_database_exists(db_config, target.database)

    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))
    conn = _connect(target)
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Applied %s to %s", Path(schema_path).name, target.database)


def provision_tenant_database(
    db_config: dict,
    *,
    database: str,
    admin_name: str,
    admin_email: str,
    admin_password: str,
) -> int:
    """Create the tenant database, apply the tenant schema and add the first super admin.

    Returns the admin user id.
    """
    apply_schema(db_config, schema_path=TENANT_SCHEMA, database=database)
    return ensure_admin_user(db_config, name=admin_name, email=admin_email, password=admin_password, database=database)


def ensure_admin_user(
    db_config: dict,
    *,
    name: str,
    email: str,
    password: str,
    database: Optional[str] = None,
) -> int:
    """Insert a super admin unless the email is taken; returns the user id either way."""
    target = DBConfig.from_dict(db_config)
    if database:
        target = target.for_database(database)
    email = email.strip().lower()
    conn = _connect(target)
    try:
        cur = conn.cursor()
        cur.execute("SELECT id FROM users WHERE email=%s", (email,))
        row = cur.fetchone()
        if row:
            return int(row[0])
        cur.execute(
            """
            INSERT INTO users(name, email, password_hash, role, is_active)
            VALUES(%s,%s,%s,%s,1)
            """,
            (name, email, generate_password_hash(password), "super_admin"),
        )
        user_id = int(cur.lastrowid)
        conn.commit()
        logger.info("Super admin %s ready in %s", email, target.database)
        return user_id
    finally:
        conn.close()


def list_tables(db_config: dict, database: Optional[str] = None) -> list[str]:
    target = DBConfig.from_dict(db_config)
    if database:
        target = target.for_database(database)
    conn = _connect(target)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
