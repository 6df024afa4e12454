from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import DropdownValue
from .repository import DropdownRepository

_COLUMNS = "id, category, subcategory, itemvalue, displayorder, isactive, non_billable"


def _to_value(r: dict) -> DropdownValue:
    return DropdownValue(
        dropdown_id=int(r["id"]),
        category=r["category"],
        subcategory=r["subcategory"],
        item_value=r["itemvalue"],
        display_order=int(r.get("displayorder") or 0),
        is_active=bool(r.get("isactive", 1)),
        non_billable=bool(r.get("non_billable", 0)),
    )


class MySQLDropdownRepository(DropdownRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, dropdown_id: int) -> Optional[DropdownValue]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM dropdownvalues WHERE id=%s", (int(dropdown_id),))
            row = fetchone(cur)
            return _to_value(row) if row else None

    def find(self, *, category: str, subcategory: str, item_value: str) -> Optional[DropdownValue]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM dropdownvalues WHERE category=%s AND subcategory=%s AND itemvalue=%s",
                (category, subcategory, item_value),
            )
            row = fetchone(cur)
            return _to_value(row) if row else None

    def list_values(
        self,
        *,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        active_only: bool = True,
    ) -> Sequence[DropdownValue]:
        clauses: list[str] = []
        params: list[object] = []
        if category:
            clauses.append("category=%s")
            params.append(category)
        if subcategory:
            clauses.append("subcategory=%s")
            params.append(subcategory)
        if active_only:
            clauses.append("isactive=1")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM dropdownvalues
                WHERE {build_where(clauses)}
                ORDER BY category, subcategory, displayorder, itemvalue
                """,
                tuple(params),
            )
            return [_to_value(r) for r in fetchall(cur)]

    def list_categories(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT DISTINCT category FROM dropdownvalues ORDER BY category")
            return [r["category"] for r in fetchall(cur)]

    def create(
        self,
        *,
        category: str,
        subcategory: str,
        item_value: str,
        display_order: int,
        is_active: bool,
        non_billable: bool,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO dropdownvalues(category, subcategory, itemvalue, displayorder, isactive, non_billable)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (category, subcategory, item_value, int(display_order), int(is_active), int(non_billable)),
            )
            return int(cur.lastrowid)

    def update(
        self,
        dropdown_id: int,
        *,
        item_value: str,
        display_order: int,
        is_active: bool,
        non_billable: bool,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE dropdownvalues
                SET itemvalue=%s, displayorder=%s, isactive=%s, non_billable=%s
                WHERE id=%s
                """,
                (item_value, int(display_order), int(is_active), int(non_billable), int(dropdown_id)),
            )
            return cur.rowcount >= 0

    def delete(self, dropdown_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM dropdownvalues WHERE id=%s", (int(dropdown_id),))
            return cur.rowcount > 0
