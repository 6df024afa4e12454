from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import ExpenseStatus, ReceiptStatus
from .model import Expense, ExpenseFilter, ExpenseInput, StatusChange


class ExpenseRepository(Protocol):
    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        raise NotImplementedError

    def create(
        self,
        *,
        username: str,
        fields: ExpenseInput,
        status: ExpenseStatus = ExpenseStatus.DRAFT,
        modified_by: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_details(
        self,
        expense_id: int,
        *,
        fields: ExpenseInput,
        status: ExpenseStatus,
        modified_by: str,
    ) -> bool:
        raise NotImplementedError

    def update_status(
        self,
        expense_id: int,
        *,
        expected_status: ExpenseStatus,
        new_status: ExpenseStatus,
        modified_by: str,
        change: Optional[StatusChange] = None,
    ) -> bool:
        """Move the expense to ``new_status`` only if it is still in ``expected_status``."""
        raise NotImplementedError

    def set_receipt(self, expense_id: int, *, receipt_path: Optional[str], receipt_status: ReceiptStatus) -> bool:
        raise NotImplementedError

    def delete(self, expense_id: int) -> bool:
        raise NotImplementedError

    def exists_duplicate(self, *, username: str, fields: ExpenseInput) -> bool:
        raise NotImplementedError

    def search(self, criteria: ExpenseFilter, *, offset: int = 0,
               limit: Optional[int] = None) -> tuple[Sequence[Expense], int]:
        """Matching expenses newest first, plus the total match count."""
        raise NotImplementedError

    def list_by_statuses(self, statuses: Iterable[ExpenseStatus]) -> Sequence[Expense]:
        raise NotImplementedError

    def total_amount(
        self,
        *,
        username: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Decimal:
        raise NotImplementedError

    def totals_by_status(self, *, username: Optional[str] = None) -> dict[str, Decimal]:
        raise NotImplementedError
