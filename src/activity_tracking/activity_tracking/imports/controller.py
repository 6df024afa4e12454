from __future__ import annotations

from flask import Flask, request

from ..common.http import api_response
from ..core.exceptions import NotFoundError, ValidationError
from ..security.guards import current_principal
from .csv_import import TEMPLATES


def _uploaded_csv() -> bytes:
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("A CSV file is required", {"file": "required"})
    if not upload.filename.lower().endswith(".csv"):
        raise ValidationError("Only .csv files are accepted", {"file": "not a .csv file"})
    return upload.read()


def register(app: Flask, container) -> None:
    service = container.csv_import_service

    def _summary(label: str, result):
        message = (
            f"{label} import completed: {result.success_count} imported, "
            f"{result.duplicate_count} duplicates skipped, {result.error_count} errors"
        )
        return api_response(message, result.to_dict())

    @app.post("/api/import/taskactivities", endpoint="import_tasks")
    def import_tasks():
        result = service.import_task_activities(current_principal(), _uploaded_csv())
        return _summary("Task activity", result)

    @app.post("/api/import/expenses", endpoint="import_expenses")
    def import_expenses():
        result = service.import_expenses(current_principal(), _uploaded_csv())
        return _summary("Expense", result)

    @app.post("/api/import/dropdownvalues", endpoint="import_dropdowns")
    def import_dropdowns():
        result = service.import_dropdown_values(current_principal(), _uploaded_csv())
        return _summary("Dropdown value", result)

    @app.get("/api/import/<kind>/template", endpoint="import_template")
    def import_template(kind: str):
        template = TEMPLATES.get(kind.lower())
        if template is None:
            raise NotFoundError(f"No import template for {kind}")
        return api_response(f"CSV template for {kind}", template)
