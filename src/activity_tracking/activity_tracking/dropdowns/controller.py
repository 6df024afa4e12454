from __future__ import annotations

from flask import Flask, request

from ..common.http import api_response, json_body
from ..common.validators import parse_bool
from ..security.guards import require_permission
from ..security.permissions import USER_MANAGEMENT
from .model import CLIENT, CURRENCY, EXPENSE, EXPENSE_TYPE, PAYMENT_METHOD, PHASE, PROJECT, TASK, VENDOR


def register(app: Flask, container) -> None:
    service = container.dropdown_service

    def _values(category: str, subcategory: str):
        values = [v.to_dict() for v in service.list_by_category(category, subcategory)]
        return api_response(f"{subcategory.title()} values retrieved", values, count=len(values))

    @app.get("/api/dropdowns/categories", endpoint="dropdown_categories")
    def categories():
        names = list(service.list_categories())
        return api_response("Categories retrieved", names, count=len(names))

    @app.get("/api/dropdowns/all", endpoint="dropdown_all")
    def all_values():
        include_inactive = parse_bool(request.args.get("includeInactive"))
        values = [v.to_dict() for v in service.list_all(active_only=not include_inactive)]
        return api_response("Dropdown values retrieved", values, count=len(values))

    @app.get("/api/dropdowns/category/<category>", endpoint="dropdown_by_category")
    def by_category(category: str):
        values = service.list_by_category(
            category,
            request.args.get("subcategory"),
            active_only=not parse_bool(request.args.get("includeInactive")),
        )
        data = [v.to_dict() for v in values]
        return api_response(f"Values for {category.upper()} retrieved", data, count=len(data))

    @app.get("/api/dropdowns/clients", endpoint="dropdown_clients")
    def clients():
        return _values(TASK, CLIENT)

    @app.get("/api/dropdowns/projects", endpoint="dropdown_projects")
    def projects():
        return _values(TASK, PROJECT)

    @app.get("/api/dropdowns/phases", endpoint="dropdown_phases")
    def phases():
        return _values(TASK, PHASE)

    @app.get("/api/dropdowns/expense-types", endpoint="dropdown_expense_types")
    def expense_types():
        return _values(EXPENSE, EXPENSE_TYPE)

    @app.get("/api/dropdowns/payment-methods", endpoint="dropdown_payment_methods")
    def payment_methods():
        return _values(EXPENSE, PAYMENT_METHOD)

    @app.get("/api/dropdowns/currencies", endpoint="dropdown_currencies")
    def currencies():
        return _values(EXPENSE, CURRENCY)

    @app.get("/api/dropdowns/vendors", endpoint="dropdown_vendors")
    def vendors():
        return _values(EXPENSE, VENDOR)

    @app.post("/api/dropdowns", endpoint="dropdown_create")
    @require_permission(USER_MANAGEMENT, "CREATE")
    def create_value():
        body = json_body()
        value = service.create(
            category=body.get("category"),
            subcategory=body.get("subcategory"),
            item_value=body.get("itemValue"),
            display_order=body.get("displayOrder") or 0,
            is_active=parse_bool(body.get("isActive"), default=True),
            non_billable=parse_bool(body.get("nonBillable")),
        )
        return api_response("Dropdown value created", value.to_dict(), status=201)

    @app.put("/api/dropdowns/<int:dropdown_id>", endpoint="dropdown_update")
    @require_permission(USER_MANAGEMENT, "UPDATE")
    def update_value(dropdown_id: int):
        body = json_body()
        value = service.update(
            dropdown_id=dropdown_id,
            item_value=body.get("itemValue"),
            display_order=body.get("displayOrder") or 0,
            is_active=parse_bool(body.get("isActive"), default=True),
            non_billable=parse_bool(body.get("nonBillable")),
        )
        return api_response("Dropdown value updated", value.to_dict())

    @app.delete("/api/dropdowns/<int:dropdown_id>", endpoint="dropdown_delete")
    @require_permission(USER_MANAGEMENT, "DELETE")
    def delete_value(dropdown_id: int):
        service.delete(dropdown_id)
        return api_response("Dropdown value deleted")
