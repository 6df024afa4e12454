from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from ..common.validators import require_max_length, require_non_empty
from ..core.exceptions import ConflictError, NotFoundError
from .model import CLIENT, EXPENSE, EXPENSE_TYPE, PHASE, PROJECT, TASK, DropdownValue
from .repository import DropdownRepository

logger = logging.getLogger(__name__)


class DropdownValueService:
    def __init__(self, dropdowns: DropdownRepository):
        self._dropdowns = dropdowns

    def list_categories(self) -> Sequence[str]:
        return self._dropdowns.list_categories()

    def list_all(self, *, active_only: bool = False) -> Sequence[DropdownValue]:
        return self._dropdowns.list_values(active_only=active_only)

    def list_by_category(self, category: str, subcategory: Optional[str] = None, *,
                         active_only: bool = True) -> Sequence[DropdownValue]:
        return self._dropdowns.list_values(
            category=(category or "").strip().upper(),
            subcategory=(subcategory or "").strip().upper() or None,
            active_only=active_only,
        )

    def active_values(self, category: str, subcategory: str) -> list[str]:
        return [v.item_value for v in self.list_by_category(category, subcategory)]

    def is_valid_value(self, category: str, subcategory: str, value: Optional[str]) -> bool:
        if not value:
            return False
        found = self._dropdowns.find(
            category=category.upper(), subcategory=subcategory.upper(), item_value=value.strip()
        )
        return bool(found and found.is_active)

    def get(self, dropdown_id: int) -> DropdownValue:
        value = self._dropdowns.get_by_id(int(dropdown_id))
        if not value:
            raise NotFoundError("Dropdown value not found")
        return value

    def create(self, *, category: str, subcategory: str, item_value: str, display_order: int = 0,
               is_active: bool = True, non_billable: bool = False) -> DropdownValue:
        category = require_max_length(require_non_empty(category, "category").upper(), "category", 50)
        subcategory = require_max_length(require_non_empty(subcategory, "subcategory").upper(), "subcategory", 50)
        item_value = require_max_length(require_non_empty(item_value, "itemValue"), "itemValue", 255)

        if self._dropdowns.find(category=category, subcategory=subcategory, item_value=item_value):
            raise ConflictError(f"{item_value} already exists in {category}/{subcategory}")

        new_id = self._dropdowns.create(
            category=category,
            subcategory=subcategory,
            item_value=item_value,
            display_order=int(display_order or 0),
            is_active=bool(is_active),
            non_billable=bool(non_billable),
        )
        logger.info("Dropdown value %s/%s/%s created", category, subcategory, item_value)
        return self.get(new_id)

    def update(self, *, dropdown_id: int, item_value: str, display_order: int, is_active: bool,
               non_billable: bool) -> DropdownValue:
        current = self.get(dropdown_id)
        item_value = require_max_length(require_non_empty(item_value, "itemValue"), "itemValue", 255)
        clash = self._dropdowns.find(
            category=current.category, subcategory=current.subcategory, item_value=item_value
        )
        if clash and clash.dropdown_id != current.dropdown_id:
            raise ConflictError(f"{item_value} already exists in {current.category}/{current.subcategory}")

        self._dropdowns.update(
            current.dropdown_id,
            item_value=item_value,
            display_order=int(display_order or 0),
            is_active=bool(is_active),
            non_billable=bool(non_billable),
        )
        return self.get(current.dropdown_id)

    def delete(self, dropdown_id: int) -> None:
        current = self.get(dropdown_id)
        self._dropdowns.delete(current.dropdown_id)
        logger.info("Dropdown value %s deleted", current.item_value)


class BillabilityService:
    """A task is billable unless its client, project or phase is flagged non-billable.

    Unknown and blank values count as billable.
    """

    def __init__(self, dropdowns: DropdownRepository):
        self._dropdowns = dropdowns

    def _is_non_billable(self, category: str, subcategory: str, value: Optional[str]) -> bool:
        if not value or not value.strip():
            return False
        found = self._dropdowns.find(category=category, subcategory=subcategory, item_value=value)
        return bool(found and found.non_billable)

    def is_billable(self, client: Optional[str], project: Optional[str], phase: Optional[str]) -> bool:
        return not (
            self._is_non_billable(TASK, CLIENT, client)
            or self._is_non_billable(TASK, PROJECT, project)
            or self._is_non_billable(TASK, PHASE, phase)
        )

    def is_expense_billable(self, client: Optional[str], project: Optional[str],
                            expense_type: Optional[str]) -> bool:
        return not (
            self._is_non_billable(EXPENSE, CLIENT, client)
            or self._is_non_billable(EXPENSE, PROJECT, project)
            or self._is_non_billable(EXPENSE, EXPENSE_TYPE, expense_type)
        )

    def task_classifier(self) -> Callable[[Optional[str], Optional[str], Optional[str]], bool]:
        """Load the TASK flags once and return an ``is_billable(client, project, phase)`` function."""
        flagged = {
            (v.subcategory, v.item_value)
            for v in self._dropdowns.list_values(category=TASK, active_only=False)
            if v.non_billable
        }

        def is_billable(client: Optional[str], project: Optional[str], phase: Optional[str]) -> bool:
            return not (
                (CLIENT, client) in flagged or (PROJECT, project) in flagged or (PHASE, phase) in flagged
            )

        return is_billable
