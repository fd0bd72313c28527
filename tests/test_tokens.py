from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from api.config import TestingConfig
from utils.errors import AccountError, ErrorKind
from utils.tokens import TokenIssuer, TokenSettings, TokenVerifier


def _clock(delta: timedelta):
    return lambda: datetime.now(timezone.utc) + delta


class TestTokenSettings:
    def test_secrets_must_differ(self, settings):
        with pytest.raises(ValueError):
            replace(settings, refresh_secret=settings.access_secret)

    def test_access_ttl_must_be_shorter(self, settings):
        with pytest.raises(ValueError):
            replace(settings, access_ttl=settings.refresh_ttl)

    def test_empty_secret_rejected(self, settings):
        with pytest.raises(ValueError):
            replace(settings, access_secret="")

    def test_non_positive_ttl_rejected(self, settings):
        with pytest.raises(ValueError):
            replace(settings, access_ttl=timedelta(0))

    def test_from_config(self):
        config = {k: getattr(TestingConfig, k) for k in dir(TestingConfig) if k.isupper()}
        built = TokenSettings.from_config(config)
        assert built.access_secret == "test-access-secret"
        assert built.refresh_ttl == timedelta(days=10)

    def test_settings_are_immutable(self, settings):
        with pytest.raises(AttributeError):
            settings.access_secret = "other"


class TestAccessTokens:
    def test_fresh_token_verifies(self, settings):
        token = TokenIssuer(settings).issue_access_token("user-1")
        claims = TokenVerifier(settings).verify_access_token(token)
        assert claims.user_id == "user-1"
        assert claims.claims["type"] == "access"
        assert claims.claims["exp"] - claims.claims["iat"] == int(settings.access_ttl.total_seconds())

    def test_valid_until_expiry(self, settings):
        almost = TokenIssuer(settings, clock=_clock(-settings.access_ttl + timedelta(seconds=30)))
        token = almost.issue_access_token("user-1")
        assert TokenVerifier(settings).verify_access_token(token).user_id == "user-1"

    def test_expired_token_invalid(self, settings):
        stale = TokenIssuer(settings, clock=_clock(-settings.access_ttl - timedelta(seconds=5)))
        token = stale.issue_access_token("user-1")
        with pytest.raises(AccountError) as exc:
            TokenVerifier(settings).verify_access_token(token)
        assert exc.value.kind is ErrorKind.INVALID_TOKEN
        assert exc.value.status == 401

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c", None])
    def test_malformed_token_invalid(self, settings, token):
        with pytest.raises(AccountError) as exc:
            TokenVerifier(settings).verify_access_token(token)
        assert exc.value.kind is ErrorKind.INVALID_TOKEN

    def test_foreign_signature_invalid(self, settings):
        forged = TokenIssuer(replace(settings, access_secret="attacker-secret")).issue_access_token("user-1")
        with pytest.raises(AccountError) as exc:
            TokenVerifier(settings).verify_access_token(forged)
        assert exc.value.kind is ErrorKind.INVALID_TOKEN

    def test_tampered_payload_invalid(self, settings):
        token = TokenIssuer(settings).issue_access_token("user-1")
        header, _payload, signature = token.split(".")
        other = TokenIssuer(settings).issue_access_token("user-2").split(".")[1]
        with pytest.raises(AccountError):
            TokenVerifier(settings).verify_access_token(".".join([header, other, signature]))

    def test_unsigned_token_invalid(self, settings):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"sub": "user-1", "iat": now, "exp": now + 60, "jti": "x", "type": "access", "iss": settings.issuer},
            None,
            algorithm="none",
        )
        with pytest.raises(AccountError):
            TokenVerifier(settings).verify_access_token(token)

    def test_generic_message_for_every_failure(self, settings):
        stale = TokenIssuer(settings, clock=_clock(-timedelta(days=1))).issue_access_token("user-1")
        messages = set()
        for token in (stale, "garbage"):
            with pytest.raises(AccountError) as exc:
                TokenVerifier(settings).verify_access_token(token)
            messages.add(exc.value.message)
        assert messages == {"Invalid access token"}


class TestTokenSeparation:
    def test_access_token_not_accepted_as_refresh(self, settings):
        token = TokenIssuer(settings).issue_access_token("user-1")
        with pytest.raises(AccountError) as exc:
            TokenVerifier(settings).verify_refresh_token(token)
        assert exc.value.kind is ErrorKind.INVALID_TOKEN

    def test_refresh_token_not_accepted_as_access(self, settings):
        token = TokenIssuer(settings).issue_refresh_token("user-1")
        with pytest.raises(AccountError):
            TokenVerifier(settings).verify_access_token(token)

    def test_type_claim_checked_even_with_right_secret(self, settings):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"sub": "user-1", "iat": now, "exp": now + 60, "jti": "x", "type": "refresh", "iss": settings.issuer},
            settings.access_secret,
            algorithm="HS256",
        )
        with pytest.raises(AccountError):
            TokenVerifier(settings).verify_access_token(token)

    def test_refresh_token_verifies_with_claims(self, settings):
        token = TokenIssuer(settings).issue_refresh_token("user-1")
        claims = TokenVerifier(settings).verify_refresh_token(token)
        assert claims.user_id == "user-1"
        assert claims.claims["exp"] - claims.claims["iat"] == int(settings.refresh_ttl.total_seconds())

    def test_pairs_minted_back_to_back_differ(self, settings):
        issuer = TokenIssuer(settings)
        first, second = issuer.issue_pair("user-1"), issuer.issue_pair("user-1")
        assert first.refresh_token != second.refresh_token
        assert first.access_token != second.access_token
