from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_USER_COLUMNS = """
    id, username, firstname, lastname, company, email, password_hash, role, enabled,
    force_password_update, expiration_date, failed_login_attempts, account_locked,
    created_date, last_login
"""


def _to_user(r: dict) -> User:
    return User(
        user_id=int(r["id"]),
        username=r["username"],
        firstname=r.get("firstname"),
        lastname=r["lastname"],
        company=r.get("company"),
        email=r.get("email"),
        password_hash=r["password_hash"],
        role=r["role"],
        enabled=bool(r.get("enabled", 1)),
        force_password_update=bool(r.get("force_password_update", 0)),
        expiration_date=r.get("expiration_date"),
        failed_login_attempts=int(r.get("failed_login_attempts") or 0),
        account_locked=bool(r.get("account_locked", 0)),
        created_date=r.get("created_date"),
        last_login=r.get("last_login"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def list_users(
        self,
        *,
        username: Optional[str] = None,
        role: Optional[str] = None,
        company: Optional[str] = None,
    ) -> Sequence[User]:
        clauses: list[str] = []
        params: list[object] = []
        if username:
            clauses.append("LOWER(username) LIKE %s")
            params.append(f"%{username.lower()}%")
        if role:
            clauses.append("role=%s")
            params.append(role)
        if company:
            clauses.append("LOWER(company) LIKE %s")
            params.append(f"%{company.lower()}%")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE {build_where(clauses)} ORDER BY username",
                tuple(params),
            )
            return [_to_user(r) for r in fetchall(cur)]

    def list_by_role(self, role: str) -> Sequence[User]:
        return self.list_users(role=role)

    def create_user(
        self,
        *,
        username: str,
        firstname: Optional[str],
        lastname: str,
        company: Optional[str],
        email: Optional[str],
        password_hash: str,
        role: str,
        force_password_update: bool,
        expiration_date: Optional[date],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(username, firstname, lastname, company, email, password_hash,
                                  role, force_password_update, expiration_date)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    username,
                    firstname,
                    lastname,
                    company,
                    email,
                    password_hash,
                    role,
                    1 if force_password_update else 0,
                    expiration_date,
                ),
            )
            return int(cur.lastrowid)

    def update_profile(
        self,
        user_id: int,
        *,
        firstname: Optional[str],
        lastname: str,
        company: Optional[str],
        email: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET firstname=%s, lastname=%s, company=%s, email=%s WHERE id=%s",
                (firstname, lastname, company, email, int(user_id)),
            )
            return cur.rowcount >= 0

    def update_access(self, user_id: int, *, role: str, enabled: bool, account_locked: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET role=%s, enabled=%s, account_locked=%s,
                    failed_login_attempts = CASE WHEN %s = 0 THEN 0 ELSE failed_login_attempts END
                WHERE id=%s
                """,
                (role, 1 if enabled else 0, 1 if account_locked else 0, 1 if account_locked else 0, int(user_id)),
            )
            return cur.rowcount >= 0

    def update_password(
        self,
        user_id: int,
        *,
        password_hash: str,
        expiration_date: Optional[date],
        force_password_update: bool,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET password_hash=%s, expiration_date=%s, force_password_update=%s
                WHERE id=%s
                """,
                (password_hash, expiration_date, 1 if force_password_update else 0, int(user_id)),
            )
            return cur.rowcount > 0

    def record_failed_login(self, user_id: int, *, max_attempts: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET failed_login_attempts = failed_login_attempts + 1,
                    account_locked = CASE WHEN failed_login_attempts >= %s THEN 1 ELSE account_locked END
                WHERE id=%s
                """,
                (int(max_attempts), int(user_id)),
            )
            cur.execute("SELECT failed_login_attempts FROM users WHERE id=%s", (int(user_id),))
            row = fetchone(cur)
            return int(row["failed_login_attempts"]) if row else 0

    def record_successful_login(self, user_id: int, *, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET failed_login_attempts=0, last_login=%s WHERE id=%s",
                (at, int(user_id)),
            )

    def count_by_role(self, role: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM users WHERE role=%s", (role,))
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE id=%s", (int(user_id),))
            return cur.rowcount > 0
