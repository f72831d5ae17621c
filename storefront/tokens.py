"""Locally issued HS256 access and refresh tokens."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal, Optional
from uuid import UUID

from jose import JWTError, jwt

from .errors import UnauthorizedTokenError

ALGORITHM = "HS256"

PrincipalKind = Literal["user", "customer"]
PRINCIPAL_KINDS = ("user", "customer")


@dataclass(frozen=True)
class TokenClaims:
    """Claims carried by a validated local token."""

    user_id: UUID
    kind: PrincipalKind
    issued_at: datetime
    expires_at: datetime
    email: Optional[str] = None


class TokenIssuer:
    """Sign and validate access and refresh tokens with distinct secrets."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("Token secrets must not be empty")
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh token secrets must differ")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    def access_expires_at(self) -> datetime:
        return self._clock() + self.access_ttl

    def issue_access_token(self, user_id: UUID, email: str, kind: PrincipalKind = "user") -> str:
        now = self._clock()
        claims = {
            "user_id": str(user_id),
            "email": email,
            "kind": kind,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((now + self.access_ttl).timestamp()),
        }
        return jwt.encode(claims, self._access_secret, algorithm=ALGORITHM)

    def issue_refresh_token(self, user_id: UUID, kind: PrincipalKind = "user") -> str:
        now = self._clock()
        claims = {
            "user_id": str(user_id),
            "kind": kind,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((now + self.refresh_ttl).timestamp()),
        }
        return jwt.encode(claims, self._refresh_secret, algorithm=ALGORITHM)

    def validate_access_token(self, token: str) -> TokenClaims:
        return self._decode(token, self._access_secret)

    def validate_refresh_token(self, token: str) -> TokenClaims:
        return self._decode(token, self._refresh_secret)

    def _decode(self, token: str, secret: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
        except JWTError as exc:
            raise UnauthorizedTokenError("Invalid token") from exc

        try:
            user_id = UUID(str(payload["user_id"]))
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as exc:
            raise UnauthorizedTokenError("Invalid token claims") from exc

        kind = payload.get("kind", "user")
        if kind not in PRINCIPAL_KINDS:
            raise UnauthorizedTokenError("Invalid token claims")
        email = payload.get("email")
        return TokenClaims(
            user_id=user_id,
            kind=kind,
            issued_at=issued_at,
            expires_at=expires_at,
            email=email if isinstance(email, str) else None,
        )
