"""
Access/refresh token issuing and verification (PyJWT, HS256).

Access and refresh tokens are signed with distinct secrets and carry a `type`
claim, so neither kind is ever accepted where the other is expected.
TokenSettings is built once at startup and handed to TokenIssuer and
TokenVerifier explicitly.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional

import jwt

from utils.errors import AccountError, ErrorKind

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"

# Transport-level carriers
ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

_REQUIRED_CLAIMS = ["sub", "iat", "exp", "jti"]


@dataclass(frozen=True)
class TokenSettings:
    access_secret: str
    refresh_secret: str
    access_ttl: timedelta
    refresh_ttl: timedelta
    algorithm: str = "HS256"
    issuer: str = "channel-accounts-api"

    def __post_init__(self):
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("access and refresh token secrets must be set")
        if self.access_secret == self.refresh_secret:
            raise ValueError("access and refresh token secrets must differ")
        if self.access_ttl <= timedelta(0) or self.refresh_ttl <= timedelta(0):
            raise ValueError("token lifetimes must be positive")
        if self.access_ttl >= self.refresh_ttl:
            raise ValueError("access token lifetime must be shorter than refresh token lifetime")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "TokenSettings":
        return cls(
            access_secret=config["ACCESS_TOKEN_SECRET"],
            refresh_secret=config["REFRESH_TOKEN_SECRET"],
            access_ttl=config["ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "channel-accounts-api"),
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    claims: Dict[str, Any]


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Mints signed tokens. Never persists anything."""

    def __init__(self, settings: TokenSettings, clock: Optional[Callable[[], datetime]] = None):
        self.settings = settings
        self._clock = clock or _now

    def _issue(self, user_id: str, token_type: str, secret: str, ttl: timedelta) -> str:
        now = self._clock()
        payload = {
            "iss": self.settings.issuer,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "type": token_type,
            "jti": generate_jti(),
        }
        return jwt.encode(payload, secret, algorithm=self.settings.algorithm)

    def issue_access_token(self, user_id: str) -> str:
        return self._issue(user_id, ACCESS, self.settings.access_secret, self.settings.access_ttl)

    def issue_refresh_token(self, user_id: str) -> str:
        return self._issue(user_id, REFRESH, self.settings.refresh_secret, self.settings.refresh_ttl)

    def issue_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user_id),
            refresh_token=self.issue_refresh_token(user_id),
        )


class TokenVerifier:
    """
    Stateless signature/expiry/claims check. Every failure surfaces as
    INVALID_TOKEN with a generic message; the reason is only logged.
    """

    def __init__(self, settings: TokenSettings):
        self.settings = settings

    def _verify(self, token: str, token_type: str, secret: str) -> TokenClaims:
        invalid = AccountError(ErrorKind.INVALID_TOKEN, f"Invalid {token_type} token")
        if not token or not isinstance(token, str):
            raise invalid
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                issuer=self.settings.issuer,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected %s token: expired", token_type)
            raise invalid from None
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected %s token: %s", token_type, exc)
            raise invalid from None

        if claims.get("type") != token_type:
            logger.debug("Rejected %s token: wrong type %r", token_type, claims.get("type"))
            raise invalid
        return TokenClaims(user_id=str(claims["sub"]), claims=claims)

    def verify_access_token(self, token: str) -> TokenClaims:
        return self._verify(token, ACCESS, self.settings.access_secret)

    def verify_refresh_token(self, token: str) -> TokenClaims:
        return self._verify(token, REFRESH, self.settings.refresh_secret)
