"""Request authentication guards.

Two kinds of principal reach the API: internal users holding locally issued
access tokens, and customers holding either a customer access token or an
ID token from the identity provider.  Each guard is a dependency factory;
on success the principal is stored on ``request.state`` so handlers can read
it back with :func:`current_user` or :func:`current_customer`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Optional, Union
from uuid import UUID

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from .errors import ServiceError, UnauthorizedTokenError
from .logger import get_logger
from .oidc import OIDCClient, OIDCUserInfo
from .tokens import TokenClaims, TokenIssuer

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "

authorization_header = APIKeyHeader(
    name="Authorization",
    scheme_name="BearerToken",
    description="`Bearer <token>` with a local access token or an OIDC ID token.",
    auto_error=False,
)


@dataclass(frozen=True)
class UserInfo:
    """An internal user admitted with a local access token."""

    user_id: UUID
    email: str


@dataclass(frozen=True)
class CustomerInfo:
    """A customer admitted with a customer access token or an OIDC ID token.

    ``customer_id`` is only known up front on the token path; ID-token
    principals are resolved by email and keep the full provider ``claims``.
    """

    subject: str
    email: str
    via: Literal["token", "oidc"]
    customer_id: Optional[UUID] = None
    name: str = ""
    claims: Optional[OIDCUserInfo] = None


Principal = Union[UserInfo, CustomerInfo]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def bearer_token(header: Optional[str]) -> Optional[str]:
    """Return the token from ``Bearer <token>``, or ``None`` for anything else."""

    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX) :]
    return token or None


def _issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def _oidc(request: Request) -> Optional[OIDCClient]:
    client: Optional[OIDCClient] = request.app.state.oidc_client
    if client is None or not client.configured:
        return None
    return client


def _access_claims(request: Request, token: str) -> Optional[TokenClaims]:
    try:
        return _issuer(request).validate_access_token(token)
    except UnauthorizedTokenError:
        return None


def _customer_from_claims(claims: TokenClaims) -> CustomerInfo:
    return CustomerInfo(
        subject=str(claims.user_id),
        email=claims.email or "",
        via="token",
        customer_id=claims.user_id,
    )


def _customer_from_id_token(request: Request, token: str) -> Optional[CustomerInfo]:
    client = _oidc(request)
    if client is None:
        return None
    try:
        info = client.validate_id_token(token)
    except UnauthorizedTokenError:
        return None
    except ServiceError as exc:
        logger.warning("ID token could not be checked: %s", exc.detail)
        return None
    return CustomerInfo(subject=info.sub, email=info.email, via="oidc", name=info.name, claims=info)


def _store(request: Request, principal: Principal) -> None:
    if isinstance(principal, UserInfo):
        request.state.user = principal
    else:
        request.state.customer = principal


def require_user_auth() -> Callable[..., UserInfo]:
    """Admit only internal users holding a valid access token."""

    def dependency(request: Request, authorization: Optional[str] = Security(authorization_header)) -> UserInfo:
        token = bearer_token(authorization)
        if token is None:
            raise _unauthorized("Missing or malformed Authorization header")
        claims = _access_claims(request, token)
        if claims is None:
            logger.info("Rejected request with an invalid access token")
            raise _unauthorized("Invalid or expired token")
        if claims.kind != "user":
            raise _unauthorized("Token was not issued to a user")
        principal = UserInfo(user_id=claims.user_id, email=claims.email or "")
        _store(request, principal)
        return principal

    return dependency


def require_customer_auth() -> Callable[..., CustomerInfo]:
    """Admit customers by access token first, then by OIDC ID token."""

    def dependency(request: Request, authorization: Optional[str] = Security(authorization_header)) -> CustomerInfo:
        token = bearer_token(authorization)
        if token is None:
            raise _unauthorized("Missing or malformed Authorization header")
        claims = _access_claims(request, token)
        principal: Optional[CustomerInfo]
        if claims is not None and claims.kind == "customer":
            principal = _customer_from_claims(claims)
        else:
            principal = _customer_from_id_token(request, token)
        if principal is None:
            logger.info("Rejected customer request with an invalid token")
            raise _unauthorized("Invalid or expired token")
        _store(request, principal)
        return principal

    return dependency


def require_oidc_auth() -> Callable[..., CustomerInfo]:
    """Admit only requests carrying a valid OIDC ID token."""

    def dependency(request: Request, authorization: Optional[str] = Security(authorization_header)) -> CustomerInfo:
        token = bearer_token(authorization)
        if token is None:
            raise _unauthorized("Missing or malformed Authorization header")
        principal = _customer_from_id_token(request, token)
        if principal is None:
            raise _unauthorized("Invalid ID token")
        _store(request, principal)
        return principal

    return dependency


def optional_auth() -> Callable[..., Optional[Principal]]:
    """Attach a principal when the credentials check out; never reject."""

    def dependency(
        request: Request, authorization: Optional[str] = Security(authorization_header)
    ) -> Optional[Principal]:
        token = bearer_token(authorization)
        if token is None:
            return None
        principal: Optional[Principal] = None
        claims = _access_claims(request, token)
        if claims is not None:
            if claims.kind == "customer":
                principal = _customer_from_claims(claims)
            else:
                principal = UserInfo(user_id=claims.user_id, email=claims.email or "")
        else:
            principal = _customer_from_id_token(request, token)
        if principal is not None:
            _store(request, principal)
        return principal

    return dependency


def current_user(request: Request) -> Optional[UserInfo]:
    return getattr(request.state, "user", None)


def current_customer(request: Request) -> Optional[CustomerInfo]:
    return getattr(request.state, "customer", None)
