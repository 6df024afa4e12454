from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from .model import PermissionRecord, RoleRecord


class RoleRepository(Protocol):
    def get_by_id(self, role_id: int) -> Optional[RoleRecord]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[RoleRecord]:
        raise NotImplementedError

    def list_roles(self) -> Sequence[RoleRecord]:
        raise NotImplementedError

    def list_permissions(self) -> Sequence[PermissionRecord]:
        raise NotImplementedError

    def create_role(self, *, name: str, description: Optional[str], permissions: Iterable[str]) -> int:
        raise NotImplementedError

    def update_role(self, role_id: int, *, description: Optional[str], permissions: Iterable[str]) -> bool:
        raise NotImplementedError

    def delete_role(self, role_id: int) -> bool:
        raise NotImplementedError
