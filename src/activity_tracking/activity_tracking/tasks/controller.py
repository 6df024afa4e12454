from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import require_date
from ..common.http import api_response, json_body
from ..security.guards import current_principal
from .service import task_input_from_payload


def _optional_date(name: str):
    value = request.args.get(name)
    return require_date(value, name) if value else None


def register(app: Flask, container) -> None:
    service = container.task_activity_service

    def _listing(message: str, rows, **extra):
        data = [a.to_dict() for a in rows]
        return api_response(message, data, count=len(data), **extra)

    @app.post("/api/task-activities", endpoint="task_create")
    def create_task():
        body = json_body()
        activity = service.create_activity(
            current_principal(),
            task_input_from_payload(body),
            username=body.get("username"),
        )
        return api_response("Task activity created successfully", activity.to_dict(), status=201)

    @app.get("/api/task-activities", endpoint="task_list")
    def list_tasks():
        rows = service.list_activities(
            current_principal(),
            username=request.args.get("username"),
            client=request.args.get("client"),
            project=request.args.get("project"),
            phase=request.args.get("phase"),
            start_date=_optional_date("startDate"),
            end_date=_optional_date("endDate"),
        )
        return _listing("Task activities retrieved successfully", rows)

    @app.get("/api/task-activities/<int:activity_id>", endpoint="task_get")
    def get_task(activity_id: int):
        activity = service.get_activity(current_principal(), activity_id)
        return api_response("Task activity retrieved successfully", activity.to_dict())

    @app.put("/api/task-activities/<int:activity_id>", endpoint="task_update")
    def update_task(activity_id: int):
        activity = service.update_activity(current_principal(), activity_id, task_input_from_payload(json_body()))
        return api_response("Task activity updated successfully", activity.to_dict())

    @app.delete("/api/task-activities/<int:activity_id>", endpoint="task_delete")
    def delete_task(activity_id: int):
        service.delete_activity(current_principal(), activity_id)
        return api_response("Task activity deleted successfully")

    @app.get("/api/task-activities/by-date", endpoint="task_by_date")
    def tasks_by_date():
        day = require_date(request.args.get("date"), "date")
        rows, total = service.activities_for_date(current_principal(), day, request.args.get("username"))
        return _listing(f"Task activities for {day.isoformat()}", rows, total_hours=float(total))

    @app.get("/api/task-activities/by-date-range", endpoint="task_by_date_range")
    def tasks_by_date_range():
        rows = service.activities_in_range(
            current_principal(),
            require_date(request.args.get("startDate"), "startDate"),
            require_date(request.args.get("endDate"), "endDate"),
            request.args.get("username"),
        )
        return _listing("Task activities retrieved successfully", rows)

    @app.get("/api/task-activities/by-client", endpoint="task_by_client")
    def tasks_by_client():
        rows = service.activities_for_client(
            current_principal(), request.args.get("client"), request.args.get("username")
        )
        return _listing("Task activities retrieved successfully", rows)
