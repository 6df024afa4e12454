from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .model import RevokedToken


class RevokedTokenRepository(Protocol):
    def exists_by_jti(self, jti: str) -> bool:
        raise NotImplementedError

    def save(self, token: RevokedToken) -> None:
        raise NotImplementedError

    def delete_expired(self, *, now: datetime) -> int:
        raise NotImplementedError
