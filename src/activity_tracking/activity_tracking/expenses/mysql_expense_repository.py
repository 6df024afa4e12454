from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..core.enums import ExpenseStatus, ReceiptStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import Expense, ExpenseFilter, ExpenseInput, StatusChange
from .repository import ExpenseRepository

_COLUMNS = """
    id, username, client, project, expense_date, expense_type, description, amount, currency,
    payment_method, vendor, reference_number, receipt_path, receipt_status, expense_status,
    approved_by, approval_date, approval_notes, reimbursed_amount, reimbursement_date,
    reimbursement_notes, notes, created_date, last_modified, last_modified_by
"""


def _decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def _to_expense(r: dict) -> Expense:
    return Expense(
        expense_id=int(r["id"]),
        username=r["username"],
        client=r["client"],
        project=r.get("project"),
        expense_date=r["expense_date"],
        expense_type=r["expense_type"],
        description=r["description"],
        amount=_decimal(r["amount"]),
        currency=r.get("currency") or "USD",
        payment_method=r["payment_method"],
        vendor=r.get("vendor"),
        reference_number=r.get("reference_number"),
        receipt_path=r.get("receipt_path"),
        receipt_status=r.get("receipt_status") or ReceiptStatus.MISSING.value,
        expense_status=r.get("expense_status") or ExpenseStatus.DRAFT.value,
        approved_by=r.get("approved_by"),
        approval_date=r.get("approval_date"),
        approval_notes=r.get("approval_notes"),
        reimbursed_amount=_decimal(r.get("reimbursed_amount")),
        reimbursement_date=r.get("reimbursement_date"),
        reimbursement_notes=r.get("reimbursement_notes"),
        notes=r.get("notes"),
        created_date=r.get("created_date"),
        last_modified=r.get("last_modified"),
        last_modified_by=r.get("last_modified_by"),
    )


def _where(criteria: ExpenseFilter) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if criteria.username:
        clauses.append("username=%s")
        params.append(criteria.username)
    for column, value in (
        ("client", criteria.client),
        ("project", criteria.project),
        ("expense_type", criteria.expense_type),
        ("expense_status", criteria.status),
        ("payment_method", criteria.payment_method),
    ):
        if value:
            clauses.append(f"LOWER({column})=LOWER(%s)")
            params.append(value)
    if criteria.start_date:
        clauses.append("expense_date >= %s")
        params.append(criteria.start_date)
    if criteria.end_date:
        clauses.append("expense_date <= %s")
        params.append(criteria.end_date)
    return build_where(clauses), params


def _detail_params(fields: ExpenseInput) -> tuple:
    return (
        fields.client,
        fields.project,
        fields.expense_date,
        fields.expense_type,
        fields.description,
        fields.amount,
        fields.currency,
        fields.payment_method,
        fields.vendor,
        fields.reference_number,
        fields.notes,
    )


class MySQLExpenseRepository(ExpenseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM expenses WHERE id=%s", (int(expense_id),))
            row = fetchone(cur)
            return _to_expense(row) if row else None

    def create(
        self,
        *,
        username: str,
        fields: ExpenseInput,
        status: ExpenseStatus = ExpenseStatus.DRAFT,
        modified_by: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO expenses(
                    client, project, expense_date, expense_type, description, amount, currency,
                    payment_method, vendor, reference_number, notes,
                    username, receipt_status, expense_status, last_modified_by
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                _detail_params(fields)
                + (username, ReceiptStatus.MISSING.value, ExpenseStatus(status).value, modified_by or username),
            )
            return int(cur.lastrowid)

    def update_details(
        self,
        expense_id: int,
        *,
        fields: ExpenseInput,
        status: ExpenseStatus,
        modified_by: str,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE expenses
                SET client=%s, project=%s, expense_date=%s, expense_type=%s, description=%s, amount=%s,
                    currency=%s, payment_method=%s, vendor=%s, reference_number=%s, notes=%s,
                    expense_status=%s, last_modified_by=%s
                WHERE id=%s
                """,
                _detail_params(fields) + (ExpenseStatus(status).value, modified_by, int(expense_id)),
            )
            return cur.rowcount > 0

    def update_status(
        self,
        expense_id: int,
        *,
        expected_status: ExpenseStatus,
        new_status: ExpenseStatus,
        modified_by: str,
        change: Optional[StatusChange] = None,
    ) -> bool:
        columns = change.columns() if change else {}
        assignments = ["expense_status=%s", "last_modified_by=%s"] + [f"{c}=%s" for c in columns]
        params = [ExpenseStatus(new_status).value, modified_by, *columns.values()]
        params += [int(expense_id), ExpenseStatus(expected_status).value]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE expenses SET {', '.join(assignments)} WHERE id=%s AND expense_status=%s",
                tuple(params),
            )
            return cur.rowcount > 0

    def set_receipt(self, expense_id: int, *, receipt_path: Optional[str], receipt_status: ReceiptStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE expenses SET receipt_path=%s, receipt_status=%s WHERE id=%s",
                (receipt_path, ReceiptStatus(receipt_status).value, int(expense_id)),
            )
            return cur.rowcount > 0

    def delete(self, expense_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM expenses WHERE id=%s", (int(expense_id),))
            return cur.rowcount > 0

    def exists_duplicate(self, *, username: str, fields: ExpenseInput) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 FROM expenses
                WHERE username=%s AND expense_date=%s AND client=%s AND expense_type=%s
                  AND description=%s AND amount=%s
                LIMIT 1
                """,
                (
                    username,
                    fields.expense_date,
                    fields.client,
                    fields.expense_type,
                    fields.description,
                    fields.amount,
                ),
            )
            return fetchone(cur) is not None

    def search(self, criteria: ExpenseFilter, *, offset: int = 0,
               limit: Optional[int] = None) -> tuple[Sequence[Expense], int]:
        where, params = _where(criteria)
        sql = f"SELECT {_COLUMNS} FROM expenses WHERE {where} ORDER BY expense_date DESC, id DESC"
        page_params = list(params)
        if limit is not None:
            sql += " LIMIT %s OFFSET %s"
            page_params += [int(limit), int(offset)]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM expenses WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(sql, tuple(page_params))
            return [_to_expense(r) for r in fetchall(cur)], total

    def list_by_statuses(self, statuses: Iterable[ExpenseStatus]) -> Sequence[Expense]:
        values = [ExpenseStatus(s).value for s in statuses]
        if not values:
            return []
        placeholders = ", ".join(["%s"] * len(values))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM expenses WHERE expense_status IN ({placeholders}) "
                "ORDER BY expense_date, id",
                tuple(values),
            )
            return [_to_expense(r) for r in fetchall(cur)]

    def total_amount(
        self,
        *,
        username: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Decimal:
        where, params = _where(ExpenseFilter(username=username, start_date=start_date, end_date=end_date))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COALESCE(SUM(amount), 0) AS total FROM expenses WHERE {where}", tuple(params))
            return Decimal(str((fetchone(cur) or {}).get("total") or 0))

    def totals_by_status(self, *, username: Optional[str] = None) -> dict[str, Decimal]:
        where, params = _where(ExpenseFilter(username=username))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT expense_status, SUM(amount) AS total FROM expenses WHERE {where} GROUP BY expense_status",
                tuple(params),
            )
            return {r["expense_status"]: Decimal(str(r["total"] or 0)) for r in fetchall(cur)}
