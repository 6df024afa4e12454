from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from ..core.constants import DEFAULT_ACCESS_TOKEN_MS, DEFAULT_REFRESH_TOKEN_MS
from ..core.enums import TokenType
from ..core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_SECRET_BYTES = 32

INSECURE_SECRETS = frozenset(
    {
        "changeme",
        "secret",
        "your-secret-key",
        "please-set-JWT_SECRET",
        "dev-secret-key",
        "default-jwt-secret-key-change-in-production",
    }
)


@dataclass(frozen=True)
class TokenClaims:
    username: str
    token_type: str
    jti: str
    expires_at: datetime
    roles: tuple[str, ...] = ()


def validate_secret(secret: Optional[str]) -> str:
    if not secret or not secret.strip():
        raise ValueError("JWT_SECRET is not configured")
    if secret in INSECURE_SECRETS:
        raise ValueError("JWT_SECRET uses a known insecure default value")
    if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
        raise ValueError(f"JWT_SECRET must be at least {MIN_SECRET_BYTES} bytes")
    return secret


class JwtService:
    """Issues and validates HMAC-signed access and refresh tokens."""

    def __init__(
        self,
        secret: str,
        *,
        access_expiration_ms: int = DEFAULT_ACCESS_TOKEN_MS,
        refresh_expiration_ms: int = DEFAULT_REFRESH_TOKEN_MS,
    ):
        self._secret = validate_secret(secret)
        self._access_ttl = timedelta(milliseconds=int(access_expiration_ms))
        self._refresh_ttl = timedelta(milliseconds=int(refresh_expiration_ms))

    @property
    def access_expires_in_seconds(self) -> int:
        return int(self._access_ttl.total_seconds())

    def _encode(self, username: str, token_type: TokenType, ttl: timedelta, extra: dict[str, Any]) -> str:
        issued = datetime.now(timezone.utc)
        claims = {
            "sub": username,
            "token_type": token_type.value,
            "jti": str(uuid.uuid4()),
            "iat": int(issued.timestamp()),
            "exp": int((issued + ttl).timestamp()),
        }
        claims.update(extra)
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def generate_access_token(self, username: str, roles: Iterable[str] = ()) -> str:
        return self._encode(username, TokenType.ACCESS, self._access_ttl, {"roles": list(roles)})

    def generate_refresh_token(self, username: str) -> str:
        return self._encode(username, TokenType.REFRESH, self._refresh_ttl, {})

    def decode(self, token: str) -> TokenClaims:
        if not token:
            raise AuthenticationError("Missing token")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except JWTError as e:
            logger.debug("Rejected token: %s", e)
            raise AuthenticationError("Invalid token")

        username = payload.get("sub")
        jti = payload.get("jti")
        if not username or not jti or "exp" not in payload:
            raise AuthenticationError("Invalid token")
        return TokenClaims(
            username=str(username),
            token_type=str(payload.get("token_type") or TokenType.ACCESS.value),
            jti=str(jti),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            roles=tuple(payload.get("roles") or ()),
        )

    def extract_username(self, token: str) -> str:
        return self.decode(token).username

    def is_refresh_token(self, token: str) -> bool:
        return self.decode(token).token_type == TokenType.REFRESH.value

    def extract_jti(self, token: str) -> str:
        return self.decode(token).jti

    def extract_expiration(self, token: str) -> datetime:
        return self.decode(token).expires_at
