from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PermissionRecord:
    permission_id: int
    resource: str
    action: str
    description: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.resource}:{self.action}"

    def to_dict(self) -> dict:
        return {
            "id": self.permission_id,
            "resource": self.resource,
            "action": self.action,
            "permission": self.key,
            "description": self.description,
        }


@dataclass(frozen=True)
class RoleRecord:
    role_id: int
    name: str
    description: Optional[str]
    permissions: frozenset[str] = field(default_factory=frozenset)
    created_date: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.role_id,
            "name": self.name,
            "description": self.description,
            "permissions": sorted(self.permissions),
        }
