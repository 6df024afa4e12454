from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from pathlib import Path
from typing import Iterable, Optional

from werkzeug.security import generate_password_hash

from ..core.constants import DEFAULT_PASSWORD_EXPIRATION_DAYS
from ..security.permissions import DEFAULT_ROLE_PERMISSIONS, PERMISSION_CATALOGUE, ROLE_DESCRIPTIONS
from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
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


def _connection(db_config: dict) -> DatabaseConnection:
    return DatabaseConnection(DBConfig.from_dict(db_config))


def _exec_file(db_config: dict, path: str | Path) -> int:
    sql = _strip_comments(_strip_create_db_and_use(Path(path).read_text(encoding="utf-8")))
    conn = _connection(db_config).connect()
    count = 0
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()
    return count


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = _connection(db_config).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _exec_file(db_config, schema_path)
    logger.info("Applied %s statements from %s", count, schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _exec_file(db_config, seed_path)
    logger.info("Applied %s seed statements from %s", count, seed_path)


def ensure_roles_and_permissions(db_config: dict) -> None:
    """Insert the permission catalogue and built-in roles if missing."""
    conn = _connection(db_config).connect()
    try:
        cur = conn.cursor(dictionary=True)
        for resource, actions in PERMISSION_CATALOGUE.items():
            for action in actions:
                cur.execute(
                    "INSERT IGNORE INTO permissions(resource, action, description) VALUES(%s,%s,%s)",
                    (resource, action, f"{action.replace('_', ' ').title()} {resource.replace('_', ' ').lower()}"),
                )

        for role_name, perms in DEFAULT_ROLE_PERMISSIONS.items():
            cur.execute(
                "INSERT IGNORE INTO roles(name, description) VALUES(%s,%s)",
                (role_name, ROLE_DESCRIPTIONS.get(role_name)),
            )
            cur.execute("SELECT id FROM roles WHERE name=%s", (role_name,))
            role_id = int(cur.fetchone()["id"])
            for perm in sorted(perms):
                resource, action = perm.split(":")
                cur.execute(
                    """
                    INSERT IGNORE INTO role_permissions(role_id, permission_id)
                    SELECT %s, id FROM permissions WHERE resource=%s AND action=%s
                    """,
                    (role_id, resource, action),
                )
        conn.commit()
    finally:
        conn.close()


def ensure_demo_users(db_config: dict) -> None:
    conn = _connection(db_config).connect()
    try:
        cur = conn.cursor(dictionary=True)
        expiration = date.today() + timedelta(days=DEFAULT_PASSWORD_EXPIRATION_DAYS)

        def upsert_user(username: str, firstname: str, lastname: str, email: Optional[str], password: str, role: str) -> None:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT id FROM users WHERE username=%s", (username,))
            existing = cur.fetchone()
            if existing:
                cur.execute(
                    """
                    UPDATE users
                    SET firstname=%s, lastname=%s, email=%s, password_hash=%s, role=%s,
                        enabled=1, account_locked=0, failed_login_attempts=0, expiration_date=%s
                    WHERE username=%s
                    """,
                    (firstname, lastname, email, password_hash, role, expiration, username),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (username, firstname, lastname, email, password_hash, role,
                                       force_password_update, expiration_date)
                    VALUES (%s, %s, %s, %s, %s, %s, 0, %s)
                    """,
                    (username, firstname, lastname, email, password_hash, role, expiration),
                )

        upsert_user("admin", "System", "Administrator", "admin@example.com", "Ledger#2024Key", "ADMIN")
        upsert_user("jdoe", "John", "Doe", "jdoe@example.com", "Timesheet#2024", "USER")
        upsert_user("approver", "Erin", "Approver", "approver@example.com", "Expense#2024Ok", "EXPENSE_ADMIN")
        upsert_user("guest", "Guest", "User", None, "Visitor#2024Go", "GUEST")

        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connection(db_config).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
