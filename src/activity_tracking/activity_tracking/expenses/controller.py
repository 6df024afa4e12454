from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import require_date
from ..common.http import api_response, json_body
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.exceptions import ValidationError
from ..security.guards import current_principal
from .model import ExpenseFilter
from .service import expense_input_from_payload


def _optional_date(name: str):
    value = request.args.get(name)
    return require_date(value, name) if value else None


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", {name: "not an integer"})


def register(app: Flask, container) -> None:
    service = container.expense_service

    @app.post("/api/expenses", endpoint="expense_create")
    def create_expense():
        body = json_body()
        expense = service.create_expense(current_principal(), expense_input_from_payload(body), body.get("username"))
        return api_response("Expense created successfully", expense.to_dict(), status=201)

    @app.get("/api/expenses", endpoint="expense_list")
    def list_expenses():
        criteria = ExpenseFilter(
            username=request.args.get("username"),
            client=request.args.get("client"),
            project=request.args.get("project"),
            expense_type=request.args.get("expenseType"),
            status=request.args.get("status"),
            payment_method=request.args.get("paymentMethod"),
            start_date=_optional_date("startDate"),
            end_date=_optional_date("endDate"),
        )
        page = service.search_expenses(
            current_principal(),
            criteria,
            page=_int_arg("page", 0),
            size=_int_arg("size", DEFAULT_PAGE_SIZE),
        )
        return api_response("Expenses retrieved successfully", page.to_dict(), count=len(page.items))

    @app.get("/api/expenses/<int:expense_id>", endpoint="expense_get")
    def get_expense(expense_id: int):
        expense = service.get_expense(current_principal(), expense_id)
        return api_response("Expense retrieved successfully", expense.to_dict())

    @app.put("/api/expenses/<int:expense_id>", endpoint="expense_update")
    def update_expense(expense_id: int):
        expense = service.update_expense(current_principal(), expense_id, expense_input_from_payload(json_body()))
        return api_response("Expense updated successfully", expense.to_dict())

    @app.delete("/api/expenses/<int:expense_id>", endpoint="expense_delete")
    def delete_expense(expense_id: int):
        service.delete_expense(current_principal(), expense_id)
        return api_response("Expense deleted successfully")

    @app.post("/api/expenses/<int:expense_id>/submit", endpoint="expense_submit")
    def submit_expense(expense_id: int):
        expense = service.submit_expense(current_principal(), expense_id)
        return api_response("Expense submitted for approval", expense.to_dict())

    @app.post("/api/expenses/<int:expense_id>/approve", endpoint="expense_approve")
    def approve_expense(expense_id: int):
        body = json_body()
        expense = service.approve_expense(current_principal(), expense_id, body.get("notes"))
        return api_response("Expense approved", expense.to_dict())

    @app.post("/api/expenses/<int:expense_id>/reject", endpoint="expense_reject")
    def reject_expense(expense_id: int):
        body = json_body()
        expense = service.reject_expense(current_principal(), expense_id, body.get("notes"))
        return api_response("Expense rejected", expense.to_dict())

    @app.post("/api/expenses/<int:expense_id>/reimburse", endpoint="expense_reimburse")
    def reimburse_expense(expense_id: int):
        body = json_body()
        expense = service.mark_as_reimbursed(
            current_principal(), expense_id, body.get("reimbursedAmount"), body.get("notes")
        )
        return api_response("Expense marked as reimbursed", expense.to_dict())

    @app.get("/api/expenses/pending-approvals", endpoint="expense_pending")
    def pending_approvals():
        rows = [e.to_dict() for e in service.pending_approvals(current_principal())]
        return api_response("Pending approvals retrieved", rows, count=len(rows))

    @app.get("/api/expenses/current-week", endpoint="expense_current_week")
    def current_week():
        rows = [e.to_dict() for e in service.current_week(current_principal())]
        return api_response("Current week expenses retrieved", rows, count=len(rows))

    @app.get("/api/expenses/total", endpoint="expense_total")
    def total_amount():
        total = service.total_amount(
            current_principal(),
            start_date=_optional_date("startDate"),
            end_date=_optional_date("endDate"),
            username=request.args.get("username"),
        )
        return api_response("Total expense amount", {"total": float(total)})

    @app.get("/api/expenses/total-by-status", endpoint="expense_total_by_status")
    def total_by_status():
        totals = service.totals_by_status(current_principal(), request.args.get("username"))
        return api_response("Expense totals by status", {k: float(v) for k, v in totals.items()})
