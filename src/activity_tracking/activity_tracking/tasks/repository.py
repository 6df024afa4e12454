from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from .model import TaskActivity, TaskActivityInput


class TaskActivityRepository(Protocol):
    def get_by_id(self, activity_id: int) -> Optional[TaskActivity]:
        raise NotImplementedError

    def exists_duplicate(
        self,
        *,
        username: str,
        fields: TaskActivityInput,
        exclude_id: Optional[int] = None,
    ) -> bool:
        raise NotImplementedError

    def create(self, *, username: str, fields: TaskActivityInput) -> int:
        raise NotImplementedError

    def update(self, activity_id: int, *, fields: TaskActivityInput) -> bool:
        raise NotImplementedError

    def delete(self, activity_id: int) -> bool:
        raise NotImplementedError

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
        raise NotImplementedError

    def total_hours(
        self,
        *,
        username: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Decimal:
        raise NotImplementedError
