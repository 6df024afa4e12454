from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.activity_tracking.activity_tracking.core.enums import TokenType
from src.activity_tracking.activity_tracking.core.exceptions import AuthenticationError
from src.activity_tracking.activity_tracking.security.jwt_service import JwtService, validate_secret
from src.activity_tracking.activity_tracking.tokens.service import TokenRevocationService

SECRET = "unit-test-secret-with-at-least-32-bytes!"


class InMemoryRevokedTokens:
    def __init__(self):
        self.saved = {}

    def exists_by_jti(self, jti):
        return jti in self.saved

    def save(self, token):
        self.saved[token.jti] = token

    def delete_expired(self, *, now):
        stale = [jti for jti, t in self.saved.items() if t.expiration_time < now]
        for jti in stale:
            del self.saved[jti]
        return len(stale)


@pytest.mark.parametrize("secret", [None, "", "secret", "changeme", "short-secret"])
def test_weak_secrets_are_refused(secret):
    with pytest.raises(ValueError):
        validate_secret(secret)


def test_access_token_round_trip():
    svc = JwtService(SECRET, access_expiration_ms=60_000)
    claims = svc.decode(svc.generate_access_token("alice", roles=["USER"]))
    assert claims.username == "alice"
    assert claims.token_type == TokenType.ACCESS.value
    assert claims.roles == ("USER",)
    assert claims.expires_at > datetime.now(timezone.utc)


def test_each_token_gets_its_own_jti():
    svc = JwtService(SECRET)
    assert svc.extract_jti(svc.generate_access_token("alice")) != svc.extract_jti(svc.generate_access_token("alice"))


def test_refresh_token_is_recognised():
    svc = JwtService(SECRET)
    assert svc.is_refresh_token(svc.generate_refresh_token("alice"))
    assert not svc.is_refresh_token(svc.generate_access_token("alice"))


def test_expired_token_is_rejected():
    svc = JwtService(SECRET, access_expiration_ms=-1000)
    with pytest.raises(AuthenticationError, match="expired"):
        svc.decode(svc.generate_access_token("alice"))


def test_token_signed_with_other_secret_is_rejected():
    token = JwtService("another-secret-that-is-also-32-bytes-long").generate_access_token("alice")
    with pytest.raises(AuthenticationError):
        JwtService(SECRET).decode(token)


def test_revoked_token_is_reported_and_revocation_is_idempotent():
    jwt_service = JwtService(SECRET)
    repo = InMemoryRevokedTokens()
    svc = TokenRevocationService(repo, jwt_service)
    token = jwt_service.generate_access_token("alice")

    assert svc.revoke_token(token, "logout")
    assert svc.revoke_token(token, "logout")
    assert len(repo.saved) == 1
    assert svc.is_token_revoked(jwt_service.extract_jti(token))
    assert not svc.is_token_revoked("")


def test_garbage_token_is_not_stored():
    repo = InMemoryRevokedTokens()
    svc = TokenRevocationService(repo, JwtService(SECRET))
    assert svc.revoke_token("not-a-jwt") is False
    assert repo.saved == {}


def test_cleanup_drops_only_expired_entries():
    jwt_service = JwtService(SECRET)
    repo = InMemoryRevokedTokens()
    svc = TokenRevocationService(repo, jwt_service)
    svc.revoke_token(jwt_service.generate_access_token("alice"))
    live = next(iter(repo.saved.values()))
    repo.saved["old"] = type(live)(
        jti="old",
        username="bob",
        token_type="access",
        expiration_time=datetime.now(timezone.utc) - timedelta(hours=1),
        revoked_at=datetime.now(timezone.utc) - timedelta(days=1),
    )

    assert svc.cleanup_expired_tokens() == 1
    assert list(repo.saved) == [live.jti]
