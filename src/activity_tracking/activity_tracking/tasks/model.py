from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..common.datetime_utils import format_date, format_datetime


@dataclass(frozen=True)
class TaskActivity:
    """One block of hours a user logged against client / project / phase on a day."""

    activity_id: int
    task_date: date
    client: str
    project: str
    phase: str
    hours: Decimal
    details: str
    username: str
    task_id: Optional[str] = None
    task_name: Optional[str] = None
    created_date: Optional[datetime] = None
    last_modified: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.activity_id,
            "taskDate": format_date(self.task_date),
            "client": self.client,
            "project": self.project,
            "phase": self.phase,
            "hours": float(self.hours),
            "taskId": self.task_id,
            "taskName": self.task_name,
            "details": self.details,
            "username": self.username,
            "createdDate": format_datetime(self.created_date),
            "lastModified": format_datetime(self.last_modified),
        }


@dataclass(frozen=True)
class TaskActivityInput:
    """Validated fields for creating or updating a task activity."""

    task_date: date
    client: str
    project: str
    phase: str
    hours: Decimal
    details: str = ""
    task_id: Optional[str] = None
    task_name: Optional[str] = None
