from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import PermissionRecord, RoleRecord
from .repository import RoleRepository


class MySQLRoleRepository(RoleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _permissions_for(cur, role_id: int) -> frozenset[str]:
        cur.execute(
            """
            SELECT p.resource, p.action
            FROM role_permissions rp
            JOIN permissions p ON p.id = rp.permission_id
            WHERE rp.role_id=%s
            """,
            (int(role_id),),
        )
        return frozenset(f"{r['resource']}:{r['action']}" for r in fetchall(cur))

    def _load(self, where: str, value: object) -> Optional[RoleRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id, name, description, created_date FROM roles WHERE {where}=%s", (value,))
            r = fetchone(cur)
            if not r:
                return None
            return RoleRecord(
                role_id=int(r["id"]),
                name=r["name"],
                description=r.get("description"),
                permissions=self._permissions_for(cur, int(r["id"])),
                created_date=r.get("created_date"),
            )

    def get_by_id(self, role_id: int) -> Optional[RoleRecord]:
        return self._load("id", int(role_id))

    def get_by_name(self, name: str) -> Optional[RoleRecord]:
        return self._load("name", name)

    def list_roles(self) -> Sequence[RoleRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, description, created_date FROM roles ORDER BY name")
            rows = fetchall(cur)
            return [
                RoleRecord(
                    role_id=int(r["id"]),
                    name=r["name"],
                    description=r.get("description"),
                    permissions=self._permissions_for(cur, int(r["id"])),
                    created_date=r.get("created_date"),
                )
                for r in rows
            ]

    def list_permissions(self) -> Sequence[PermissionRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, resource, action, description FROM permissions ORDER BY resource, action")
            return [
                PermissionRecord(
                    permission_id=int(r["id"]),
                    resource=r["resource"],
                    action=r["action"],
                    description=r.get("description"),
                )
                for r in fetchall(cur)
            ]

    @staticmethod
    def _replace_permissions(cur, role_id: int, permissions: Iterable[str]) -> None:
        cur.execute("DELETE FROM role_permissions WHERE role_id=%s", (int(role_id),))
        for perm in sorted(set(permissions)):
            resource, action = perm.split(":")
            cur.execute(
                """
                INSERT INTO role_permissions(role_id, permission_id)
                SELECT %s, id FROM permissions WHERE resource=%s AND action=%s
                """,
                (int(role_id), resource, action),
            )

    def create_role(self, *, name: str, description: Optional[str], permissions: Iterable[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT INTO roles(name, description) VALUES(%s,%s)", (name, description))
            role_id = int(cur.lastrowid)
            self._replace_permissions(cur, role_id, permissions)
            return role_id

    def update_role(self, role_id: int, *, description: Optional[str], permissions: Iterable[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE roles SET description=%s WHERE id=%s", (description, int(role_id)))
            self._replace_permissions(cur, role_id, permissions)
            return True

    def delete_role(self, role_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM roles WHERE id=%s", (int(role_id),))
            return cur.rowcount > 0
