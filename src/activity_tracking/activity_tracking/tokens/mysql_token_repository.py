from __future__ import annotations

from datetime import datetime

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import RevokedToken
from .repository import RevokedTokenRepository


def _naive_utc(value: datetime) -> datetime:
    # DATETIME columns hold UTC without tzinfo.
    return value.replace(tzinfo=None) if value.tzinfo else value


class MySQLRevokedTokenRepository(RevokedTokenRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def exists_by_jti(self, jti: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS hit FROM revoked_tokens WHERE jti=%s", (jti,))
            return fetchone(cur) is not None

    def save(self, token: RevokedToken) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO revoked_tokens(jti, username, token_type, expiration_time, revoked_at, reason)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    token.jti,
                    token.username,
                    token.token_type,
                    _naive_utc(token.expiration_time),
                    _naive_utc(token.revoked_at),
                    token.reason,
                ),
            )

    def delete_expired(self, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM revoked_tokens WHERE expiration_time < %s", (_naive_utc(now),))
            return int(cur.rowcount or 0)
