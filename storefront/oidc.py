"""OpenID Connect relying-party client.

The client talks to a single provider: it discovers the provider metadata
lazily from ``/.well-known/openid-configuration``, builds authorization URLs,
exchanges authorization codes, validates ID tokens against the provider's
JWKS and fetches userinfo.  All outbound calls go through one
:class:`httpx.Client` whose transport can be replaced in tests with an
:class:`httpx.MockTransport`.
"""

from __future__ import annotations

import base64
import hmac
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from .config import OIDCSettings
from .errors import ProviderError, ProviderUnconfiguredError, UnauthorizedTokenError
from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
STATE_BYTES = 32


@dataclass(frozen=True)
class ProviderMetadata:
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    jwks_uri: str
    signing_algorithms: tuple[str, ...] = ("RS256",)


@dataclass(frozen=True)
class OIDCToken:
    """Tokens returned by the provider's token endpoint."""

    access_token: str
    refresh_token: str
    id_token: str
    expires_at: datetime
    token_type: str = "Bearer"


@dataclass(frozen=True)
class OIDCUserInfo:
    """Identity claims taken from an ID token or the userinfo endpoint."""

    sub: str
    email: str
    name: str = ""
    given_name: str = ""
    family_name: str = ""
    picture: str = ""

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "OIDCUserInfo":
        def text(key: str) -> str:
            value = claims.get(key)
            return value if isinstance(value, str) else ""

        return cls(
            sub=text("sub"),
            email=text("email"),
            name=text("name"),
            given_name=text("given_name"),
            family_name=text("family_name"),
            picture=text("picture"),
        )


def generate_state() -> str:
    """Return an unguessable URL-safe state value for the authorization request."""

    return base64.urlsafe_b64encode(secrets.token_bytes(STATE_BYTES)).decode("ascii")


def validate_state(expected: str, actual: str) -> bool:
    """Compare two state values in constant time."""

    if not expected or not actual:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))


class OIDCClient:
    """Client for one OpenID Connect provider."""

    def __init__(
        self,
        settings: OIDCSettings,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.settings = settings
        self._http = httpx.Client(timeout=httpx.Timeout(timeout), transport=transport)
        self._lock = threading.Lock()
        self._metadata: Optional[ProviderMetadata] = None
        self._jwks: Optional[Dict[str, Any]] = None

    @property
    def configured(self) -> bool:
        return self.settings.enabled and bool(self.settings.client_id)

    def close(self) -> None:
        self._http.close()

    # Provider metadata

    def _require_configured(self) -> None:
        if not self.configured:
            raise ProviderUnconfiguredError()

    def _get_json(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._http.get(url, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Request to {url} failed: {exc}") from exc
        return self._json_body(response, url)

    def _post_form(self, url: str, data: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = self._http.post(url, data=data, headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            raise ProviderError(f"Request to {url} failed: {exc}") from exc
        return self._json_body(response, url)

    @staticmethod
    def _json_body(response: httpx.Response, url: str) -> Dict[str, Any]:
        if response.status_code != 200:
            raise ProviderError(f"Provider returned status {response.status_code} for {url}")
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(f"Provider returned invalid JSON for {url}") from exc
        if not isinstance(body, dict):
            raise ProviderError(f"Provider returned an unexpected payload for {url}")
        return body

    def discover(self) -> ProviderMetadata:
        """Fetch and cache the provider's discovery document."""

        self._require_configured()
        with self._lock:
            if self._metadata is not None:
                return self._metadata

            url = self.settings.provider_url.rstrip("/") + "/.well-known/openid-configuration"
            document = self._get_json(url)
            try:
                metadata = ProviderMetadata(
                    issuer=str(document["issuer"]),
                    authorization_endpoint=str(document["authorization_endpoint"]),
                    token_endpoint=str(document["token_endpoint"]),
                    userinfo_endpoint=str(document["userinfo_endpoint"]),
                    jwks_uri=str(document["jwks_uri"]),
                    signing_algorithms=tuple(document.get("id_token_signing_alg_values_supported") or ("RS256",)),
                )
            except KeyError as exc:
                raise ProviderError(f"Discovery document is missing {exc.args[0]!r}") from exc
            logger.info("Discovered OIDC provider %s", metadata.issuer)
            self._metadata = metadata
            return metadata

    def _get_jwks(self, *, refresh: bool = False) -> Dict[str, Any]:
        metadata = self.discover()
        with self._lock:
            if self._jwks is None or refresh:
                jwks = self._get_json(metadata.jwks_uri)
                if not isinstance(jwks.get("keys"), list):
                    raise ProviderError("JWKS document has no keys")
                self._jwks = jwks
            return self._jwks

    # Authorization-code flow

    def auth_url(self, state: str) -> str:
        """Build the URL the browser is redirected to for login."""

        metadata = self.discover()
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self.settings.client_id,
                "redirect_uri": self.settings.redirect_url,
                "scope": " ".join(self.settings.scopes),
                "state": state,
                "access_type": "offline",
            }
        )
        separator = "&" if "?" in metadata.authorization_endpoint else "?"
        return f"{metadata.authorization_endpoint}{separator}{query}"

    def exchange_code(self, code: str) -> OIDCToken:
        metadata = self.discover()
        body = self._post_form(
            metadata.token_endpoint,
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.redirect_url,
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
            },
        )
        token = self._token_from_body(body)
        if not token.id_token:
            raise ProviderError("No id_token in token response")
        return token

    def refresh_token(self, refresh_token: str) -> OIDCToken:
        metadata = self.discover()
        body = self._post_form(
            metadata.token_endpoint,
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
            },
        )
        token = self._token_from_body(body, fallback_refresh_token=refresh_token)
        if not token.id_token:
            raise ProviderError("No id_token in refresh response")
        return token

    @staticmethod
    def _token_from_body(body: Dict[str, Any], fallback_refresh_token: str = "") -> OIDCToken:
        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ProviderError("No access_token in token response")
        try:
            expires_in = int(body.get("expires_in") or 0)
        except (TypeError, ValueError) as exc:
            raise ProviderError("Invalid expires_in in token response") from exc
        return OIDCToken(
            access_token=access_token,
            refresh_token=str(body.get("refresh_token") or fallback_refresh_token),
            id_token=str(body.get("id_token") or ""),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            token_type=str(body.get("token_type") or "Bearer"),
        )

    # Token validation

    def validate_id_token(self, id_token: str) -> OIDCUserInfo:
        """Verify an ID token's signature, audience, issuer and expiry."""

        metadata = self.discover()
        try:
            claims = self._decode_id_token(id_token, metadata, self._get_jwks())
        except (ExpiredSignatureError, JWTClaimsError) as exc:
            raise UnauthorizedTokenError(f"Invalid ID token: {exc}") from exc
        except JWTError:
            # The provider may have rotated its signing keys.
            try:
                claims = self._decode_id_token(id_token, metadata, self._get_jwks(refresh=True))
            except JWTError as exc:
                raise UnauthorizedTokenError(f"Invalid ID token: {exc}") from exc

        info = OIDCUserInfo.from_claims(claims)
        if not info.sub:
            raise UnauthorizedTokenError("ID token has no subject")
        return info

    def _decode_id_token(self, id_token: str, metadata: ProviderMetadata, jwks: Dict[str, Any]) -> Dict[str, Any]:
        return jwt.decode(
            id_token,
            jwks,
            algorithms=list(metadata.signing_algorithms),
            audience=self.settings.client_id,
            issuer=metadata.issuer,
            options={"verify_at_hash": False},
        )

    def userinfo(self, access_token: str) -> OIDCUserInfo:
        metadata = self.discover()
        body = self._get_json(metadata.userinfo_endpoint, headers={"Authorization": f"Bearer {access_token}"})
        info = OIDCUserInfo.from_claims(body)
        if not info.sub:
            raise ProviderError("Userinfo response has no subject")
        return info
