from __future__ import annotations

import logging
from typing import Optional

from ..common.datetime_utils import utc_now
from ..core.exceptions import AuthenticationError
from ..security.jwt_service import JwtService
from .model import RevokedToken
from .repository import RevokedTokenRepository

logger = logging.getLogger(__name__)


class TokenRevocationService:
    """Deny-list of JWT ids, consulted on every authenticated request."""

    def __init__(self, tokens: RevokedTokenRepository, jwt_service: JwtService):
        self._tokens = tokens
        self._jwt = jwt_service

    def revoke_token(self, token: str, reason: Optional[str] = None) -> bool:
        try:
            claims = self._jwt.decode(token)
        except AuthenticationError:
            # Expired or malformed tokens cannot be used anyway.
            logger.debug("Skipping revocation of an invalid token")
            return False

        if self._tokens.exists_by_jti(claims.jti):
            return True

        self._tokens.save(
            RevokedToken(
                jti=claims.jti,
                username=claims.username,
                token_type=claims.token_type,
                expiration_time=claims.expires_at,
                revoked_at=utc_now(),
                reason=reason,
            )
        )
        logger.info("Revoked %s token for %s (%s)", claims.token_type, claims.username, reason or "no reason")
        return True

    def is_token_revoked(self, jti: str) -> bool:
        return bool(jti) and self._tokens.exists_by_jti(jti)

    def cleanup_expired_tokens(self) -> int:
        removed = self._tokens.delete_expired(now=utc_now())
        logger.info("Removed %s expired revoked-token entries", removed)
        return removed
