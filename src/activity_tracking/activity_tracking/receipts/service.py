from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.constants import MAX_RECEIPT_BYTES
from ..core.enums import ReceiptStatus
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..expenses.model import Expense
from ..expenses.repository import ExpenseRepository
from ..security.permissions import EXPENSE, Principal, permission
from .file_types import validate_receipt_content
from .storage import ReceiptStorage

logger = logging.getLogger(__name__)

MANAGE_RECEIPTS = permission(EXPENSE, "MANAGE_RECEIPTS")


@dataclass(frozen=True)
class ReceiptFile:
    content: bytes
    content_type: str
    filename: str


class ReceiptService:
    def __init__(self, expenses: ExpenseRepository, storage: ReceiptStorage, *, max_bytes: int = MAX_RECEIPT_BYTES):
        self._expenses = expenses
        self._storage = storage
        self._max_bytes = int(max_bytes)

    def _load_owned(self, principal: Principal, expense_id: int) -> Expense:
        principal.require(MANAGE_RECEIPTS)
        expense = self._expenses.get_by_id(int(expense_id))
        if not expense:
            raise NotFoundError(f"Expense not found with id: {expense_id}")
        principal.require_owner(expense.username, EXPENSE)
        return expense

    def _discard(self, key: str) -> None:
        try:
            self._storage.delete(key)
        except StorageError as e:
            logger.warning("Old receipt %s could not be removed: %s", key, e)

    def upload(self, principal: Principal, expense_id: int, content: bytes, content_type: str) -> Expense:
        expense = self._load_owned(principal, expense_id)
        if len(content) > self._max_bytes:
            raise ValidationError(
                f"File size exceeds maximum of {self._max_bytes // (1024 * 1024)}MB",
                {"file": "too large"},
            )
        content_type = validate_receipt_content(content, content_type)

        key = self._storage.store(
            content, username=expense.username, expense_id=expense.expense_id, content_type=content_type
        )
        self._expenses.set_receipt(expense.expense_id, receipt_path=key, receipt_status=ReceiptStatus.ATTACHED)
        if expense.receipt_path and expense.receipt_path != key:
            self._discard(expense.receipt_path)
        logger.info("Receipt attached to expense %s by %s", expense.expense_id, principal.username)
        return self._expenses.get_by_id(expense.expense_id)

    def download(self, principal: Principal, expense_id: int) -> ReceiptFile:
        expense = self._load_owned(principal, expense_id)
        if not expense.receipt_path:
            raise NotFoundError("No receipt attached to this expense")
        content = self._storage.retrieve(expense.receipt_path)
        return ReceiptFile(
            content=content,
            content_type=self._storage.content_type(expense.receipt_path),
            filename=expense.receipt_path.rsplit("/", 1)[-1],
        )

    def delete(self, principal: Principal, expense_id: int) -> Expense:
        expense = self._load_owned(principal, expense_id)
        if not expense.receipt_path:
            raise NotFoundError("No receipt attached to this expense")
        self._expenses.set_receipt(expense.expense_id, receipt_path=None, receipt_status=ReceiptStatus.MISSING)
        self._discard(expense.receipt_path)
        logger.info("Receipt removed from expense %s by %s", expense.expense_id, principal.username)
        return self._expenses.get_by_id(expense.expense_id)
