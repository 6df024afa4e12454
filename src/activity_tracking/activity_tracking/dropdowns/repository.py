from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import DropdownValue


class DropdownRepository(Protocol):
    def get_by_id(self, dropdown_id: int) -> Optional[DropdownValue]:
        raise NotImplementedError

    def find(self, *, category: str, subcategory: str, item_value: str) -> Optional[DropdownValue]:
        raise NotImplementedError

    def list_values(
        self,
        *,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        active_only: bool = True,
    ) -> Sequence[DropdownValue]:
        raise NotImplementedError

    def list_categories(self) -> Sequence[str]:
        raise NotImplementedError

    def create(
        self,
        *,
        category: str,
        subcategory: str,
        item_value: str,
        display_order: int,
        is_active: bool,
        non_billable: bool,
    ) -> int:
        raise NotImplementedError

    def update(
        self,
        dropdown_id: int,
        *,
        item_value: str,
        display_order: int,
        is_active: bool,
        non_billable: bool,
    ) -> bool:
        raise NotImplementedError

    def delete(self, dropdown_id: int) -> bool:
        raise NotImplementedError
