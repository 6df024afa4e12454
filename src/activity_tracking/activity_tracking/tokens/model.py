from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class RevokedToken:
    jti: str
    username: str
    token_type: str
    expiration_time: datetime
    revoked_at: datetime
    reason: Optional[str] = None
