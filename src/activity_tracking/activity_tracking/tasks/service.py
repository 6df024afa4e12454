from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..common.datetime_utils import require_date
from ..common.validators import (
    optional_text,
    parse_decimal,
    require_max_length,
    require_non_empty,
    require_range,
)
from ..core.constants import MAX_HOURS, MIN_HOURS, TASK_ID_MAX_LENGTH, TASK_NAME_MAX_LENGTH, TEXT_MAX_LENGTH
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..security.permissions import TASK_ACTIVITY, Principal, permission
from .model import TaskActivity, TaskActivityInput
from .repository import TaskActivityRepository

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "A task activity with the same date, client, project, phase and details already exists"


def build_task_input(
    *,
    task_date: Any,
    client: Optional[str],
    project: Optional[str],
    phase: Optional[str],
    hours: Any,
    details: Optional[str] = None,
    task_id: Optional[str] = None,
    task_name: Optional[str] = None,
) -> TaskActivityInput:
    """Validate raw field values into a :class:`TaskActivityInput`."""
    if not isinstance(task_date, date):
        task_date = require_date(task_date, "taskDate")
    hours_value = require_range(parse_decimal(hours, "hours"), "hours", MIN_HOURS, MAX_HOURS)
    return TaskActivityInput(
        task_date=task_date,
        client=require_max_length(require_non_empty(client, "client"), "client", TEXT_MAX_LENGTH),
        project=require_max_length(require_non_empty(project, "project"), "project", TEXT_MAX_LENGTH),
        phase=require_max_length(require_non_empty(phase, "phase"), "phase", TEXT_MAX_LENGTH),
        hours=hours_value.quantize(Decimal("0.01")),
        details=require_max_length((details or "").strip(), "details", TEXT_MAX_LENGTH) or "",
        task_id=require_max_length(optional_text(task_id), "taskId", TASK_ID_MAX_LENGTH),
        task_name=require_max_length(optional_text(task_name), "taskName", TASK_NAME_MAX_LENGTH),
    )


def task_input_from_payload(payload: dict) -> TaskActivityInput:
    return build_task_input(
        task_date=payload.get("taskDate"),
        client=payload.get("client"),
        project=payload.get("project"),
        phase=payload.get("phase"),
        hours=payload.get("hours"),
        details=payload.get("details"),
        task_id=payload.get("taskId"),
        task_name=payload.get("taskName"),
    )


class TaskActivityService:
    """Use case: log, edit and query task activities.

    Regular users only ever see and touch their own rows; holders of
    TASK_ACTIVITY:READ_ALL (and ADMIN) may work on anyone's.
    """

    def __init__(self, tasks: TaskActivityRepository):
        self._tasks = tasks

    def _scope(self, principal: Principal, requested: Optional[str]) -> Optional[str]:
        """Username to filter on; None means every user."""
        if principal.can_access_all(TASK_ACTIVITY):
            return optional_text(requested)
        return principal.username

    def _load_owned(self, principal: Principal, activity_id: int) -> TaskActivity:
        activity = self._tasks.get_by_id(int(activity_id))
        if not activity:
            raise NotFoundError(f"Task activity not found with id: {activity_id}")
        principal.require_owner(activity.username, TASK_ACTIVITY)
        return activity

    def create_activity(self, principal: Principal, fields: TaskActivityInput,
                        username: Optional[str] = None) -> TaskActivity:
        principal.require(permission(TASK_ACTIVITY, "CREATE"))
        owner = optional_text(username) or principal.username
        if owner != principal.username and not principal.can_access_all(TASK_ACTIVITY):
            raise AuthorizationError("Access denied: you can only log time for yourself")

        if self._tasks.exists_duplicate(username=owner, fields=fields):
            raise ConflictError(DUPLICATE_MESSAGE)
        activity_id = self._tasks.create(username=owner, fields=fields)
        logger.info("Task activity %s created for %s by %s", activity_id, owner, principal.username)
        return self._tasks.get_by_id(activity_id)

    def get_activity(self, principal: Principal, activity_id: int) -> TaskActivity:
        principal.require(permission(TASK_ACTIVITY, "READ"))
        return self._load_owned(principal, activity_id)

    def update_activity(self, principal: Principal, activity_id: int, fields: TaskActivityInput) -> TaskActivity:
        principal.require(permission(TASK_ACTIVITY, "UPDATE"))
        current = self._load_owned(principal, activity_id)
        if self._tasks.exists_duplicate(username=current.username, fields=fields, exclude_id=current.activity_id):
            raise ConflictError(DUPLICATE_MESSAGE)
        self._tasks.update(current.activity_id, fields=fields)
        logger.info("Task activity %s updated by %s", current.activity_id, principal.username)
        return self._tasks.get_by_id(current.activity_id)

    def delete_activity(self, principal: Principal, activity_id: int) -> None:
        principal.require(permission(TASK_ACTIVITY, "DELETE"))
        current = self._load_owned(principal, activity_id)
        self._tasks.delete(current.activity_id)
        logger.info("Task activity %s deleted by %s", current.activity_id, principal.username)

    def list_activities(
        self,
        principal: Principal,
        *,
        username: Optional[str] = None,
        client: Optional[str] = None,
        project: Optional[str] = None,
        phase: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[TaskActivity]:
        principal.require(permission(TASK_ACTIVITY, "READ"))
        if start_date and end_date and start_date > end_date:
            raise ValidationError("startDate must be on or before endDate", {"startDate": "after endDate"})
        return self._tasks.list_activities(
            username=self._scope(principal, username),
            client=optional_text(client),
            project=optional_text(project),
            phase=optional_text(phase),
            start_date=start_date,
            end_date=end_date,
        )

    def activities_for_date(self, principal: Principal, day: date,
                            username: Optional[str] = None) -> tuple[Sequence[TaskActivity], Decimal]:
        rows = self.list_activities(principal, username=username, start_date=day, end_date=day)
        total = sum((a.hours for a in rows), Decimal("0"))
        return rows, total

    def activities_in_range(self, principal: Principal, start_date: date, end_date: date,
                            username: Optional[str] = None) -> Sequence[TaskActivity]:
        return self.list_activities(principal, username=username, start_date=start_date, end_date=end_date)

    def activities_for_client(self, principal: Principal, client: str,
                              username: Optional[str] = None) -> Sequence[TaskActivity]:
        return self.list_activities(principal, username=username, client=require_non_empty(client, "client"))
