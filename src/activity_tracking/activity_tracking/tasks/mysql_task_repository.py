from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import TaskActivity, TaskActivityInput
from .repository import TaskActivityRepository

_COLUMNS = """
    id, taskdate, client, project, phase, hours, taskid, taskname, details, username,
    created_date, last_modified
"""


def _to_activity(r: dict) -> TaskActivity:
    return TaskActivity(
        activity_id=int(r["id"]),
        task_date=r["taskdate"],
        client=r["client"],
        project=r["project"],
        phase=r["phase"],
        hours=Decimal(str(r["hours"])),
        details=r.get("details") or "",
        username=r["username"],
        task_id=r.get("taskid"),
        task_name=r.get("taskname"),
        created_date=r.get("created_date"),
        last_modified=r.get("last_modified"),
    )


def _filters(
    *,
    username: Optional[str] = None,
    client: Optional[str] = None,
    project: Optional[str] = None,
    phase: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if username:
        clauses.append("username=%s")
        params.append(username)
    # Client/project/phase filters are case-insensitive.
    for column, value in (("client", client), ("project", project), ("phase", phase)):
        if value:
            clauses.append(f"LOWER({column})=LOWER(%s)")
            params.append(value)
    if start_date:
        clauses.append("taskdate >= %s")
        params.append(start_date)
    if end_date:
        clauses.append("taskdate <= %s")
        params.append(end_date)
    return build_where(clauses), params


class MySQLTaskActivityRepository(TaskActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, activity_id: int) -> Optional[TaskActivity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM taskactivity WHERE id=%s", (int(activity_id),))
            row = fetchone(cur)
            return _to_activity(row) if row else None

    def exists_duplicate(
        self,
        *,
        username: str,
        fields: TaskActivityInput,
        exclude_id: Optional[int] = None,
    ) -> bool:
        sql = """
            SELECT 1 FROM taskactivity
            WHERE username=%s AND taskdate=%s AND client=%s AND project=%s AND phase=%s AND details=%s
        """
        params: list = [username, fields.task_date, fields.client, fields.project, fields.phase, fields.details]
        if exclude_id is not None:
            sql += " AND id<>%s"
            params.append(int(exclude_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " LIMIT 1", tuple(params))
            return fetchone(cur) is not None

    def create(self, *, username: str, fields: TaskActivityInput) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO taskactivity(taskdate, client, project, phase, hours, taskid, taskname, details, username)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    fields.task_date,
                    fields.client,
                    fields.project,
                    fields.phase,
                    fields.hours,
                    fields.task_id,
                    fields.task_name,
                    fields.details,
                    username,
                ),
            )
            return int(cur.lastrowid)

    def update(self, activity_id: int, *, fields: TaskActivityInput) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE taskactivity
                SET taskdate=%s, client=%s, project=%s, phase=%s, hours=%s, taskid=%s, taskname=%s, details=%s
                WHERE id=%s
                """,
                (
                    fields.task_date,
                    fields.client,
                    fields.project,
                    fields.phase,
                    fields.hours,
                    fields.task_id,
                    fields.task_name,
                    fields.details,
                    int(activity_id),
                ),
            )
            return cur.rowcount > 0

    def delete(self, activity_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM taskactivity WHERE id=%s", (int(activity_id),))
            return cur.rowcount > 0

    def list_activities(
        self,
        *,
        username: Optional[str] = None,
        client: Optional[str] = None,
        project: Optional[str] = None,
        phase: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[TaskActivity]:
        where, params = _filters(
            username=username,
            client=client,
            project=project,
            phase=phase,
            start_date=start_date,
            end_date=end_date,
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM taskactivity WHERE {where} "
                "ORDER BY taskdate DESC, client, project, id",
                tuple(params),
            )
            return [_to_activity(r) for r in fetchall(cur)]

    def total_hours(
        self,
        *,
        username: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Decimal:
        where, params = _filters(username=username, start_date=start_date, end_date=end_date)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COALESCE(SUM(hours), 0) AS total FROM taskactivity WHERE {where}", tuple(params))
            row = fetchone(cur) or {}
            return Decimal(str(row.get("total") or 0))
