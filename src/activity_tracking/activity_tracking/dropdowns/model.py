from __future__ import annotations

from dataclasses import dataclass

TASK = "TASK"
EXPENSE = "EXPENSE"

CLIENT = "CLIENT"
PROJECT = "PROJECT"
PHASE = "PHASE"
EXPENSE_TYPE = "EXPENSE_TYPE"
PAYMENT_METHOD = "PAYMENT_METHOD"
CURRENCY = "CURRENCY"
VENDOR = "VENDOR"


@dataclass(frozen=True)
class DropdownValue:
    dropdown_id: int
    category: str
    subcategory: str
    item_value: str
    display_order: int = 0
    is_active: bool = True
    non_billable: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.dropdown_id,
            "category": self.category,
            "subcategory": self.subcategory,
            "itemValue": self.item_value,
            "displayOrder": self.display_order,
            "isActive": self.is_active,
            "nonBillable": self.non_billable,
        }
