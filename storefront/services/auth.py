"""Authentication: local credentials, token refresh and the OIDC login flow."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..db import transaction
from ..errors import AlreadyExistsError, ProviderUnconfiguredError, UnauthenticatedError, UnauthorizedTokenError
from ..logger import get_logger
from ..models import Customer, User, utcnow
from ..oidc import OIDCClient, OIDCUserInfo, generate_state, validate_state
from ..passwords import hash_password, verify_password
from ..repositories import SQLCustomerRepository, SQLUserRepository
from ..tokens import PrincipalKind, TokenClaims, TokenIssuer

logger = get_logger(__name__)

INVALID_CREDENTIALS = "invalid credentials"

# Checked against when the email is unknown so both failure paths cost the same.
_UNKNOWN_USER_HASH = hash_password("storefront-unknown-user")


@dataclass(frozen=True)
class IssuedTokens:
    access_token: str
    refresh_token: str
    expires_at: datetime


@dataclass(frozen=True)
class LoginResult:
    user: User
    tokens: IssuedTokens


@dataclass(frozen=True)
class OIDCLoginResult:
    customer: Customer
    tokens: IssuedTokens
    is_new_user: bool


def normalize_email(email: str) -> str:
    return email.strip().lower()


def names_from_claims(info: OIDCUserInfo) -> Tuple[str, str]:
    """Pick first and last name from the identity claims."""

    first, last = info.given_name.strip(), info.family_name.strip()
    if not first and not last and info.name.strip():
        first, _, last = info.name.strip().partition(" ")
    if not first:
        first = info.email.split("@", 1)[0]
    return first, last.strip()


class AuthService:
    def __init__(self, session: Session, issuer: TokenIssuer, oidc: Optional[OIDCClient] = None) -> None:
        self.session = session
        self.issuer = issuer
        self.oidc = oidc
        self.users = SQLUserRepository(session)
        self.customers = SQLCustomerRepository(session)

    def _issue(self, principal_id: UUID, email: str, kind: PrincipalKind) -> IssuedTokens:
        return IssuedTokens(
            access_token=self.issuer.issue_access_token(principal_id, email, kind),
            refresh_token=self.issuer.issue_refresh_token(principal_id, kind),
            expires_at=self.issuer.access_expires_at(),
        )

    # Local credentials

    def login(self, email: str, password: str) -> LoginResult:
        user = self.users.get_by_email(normalize_email(email))
        if user is None:
            verify_password(password, _UNKNOWN_USER_HASH)
            logger.info("Rejected login attempt")
            raise UnauthenticatedError(INVALID_CREDENTIALS)
        if not verify_password(password, user.password_hash):
            logger.info("Rejected login attempt")
            raise UnauthenticatedError(INVALID_CREDENTIALS)
        return LoginResult(user=user, tokens=self._issue(user.id, user.email, "user"))

    def register(self, name: str, email: str, password: str) -> LoginResult:
        email = normalize_email(email)
        try:
            with transaction(self.session):
                if self.users.get_by_email(email) is not None:
                    raise AlreadyExistsError("User with this email already exists")
                user = self.users.create(User(name=name, email=email, password_hash=hash_password(password)))
        except IntegrityError as exc:
            raise AlreadyExistsError("User with this email already exists") from exc
        logger.info("Registered user %s", user.id)
        return LoginResult(user=user, tokens=self._issue(user.id, user.email, "user"))

    def refresh_token(self, refresh_token: str) -> IssuedTokens:
        """Exchange a refresh token for a new pair, reloading the principal it names."""

        claims = self.issuer.validate_refresh_token(refresh_token)
        principal: Union[User, Customer, None]
        if claims.kind == "customer":
            principal = self.customers.get_by_id(claims.user_id)
        else:
            principal = self.users.get_by_id(claims.user_id)
        if principal is None:
            raise UnauthorizedTokenError("Token subject no longer exists")
        return self._issue(principal.id, principal.email, claims.kind)

    def validate_token(self, token: str) -> TokenClaims:
        return self.issuer.validate_access_token(token)

    # OIDC

    def _require_oidc(self) -> OIDCClient:
        if self.oidc is None or not self.oidc.configured:
            raise ProviderUnconfiguredError()
        return self.oidc

    def get_oidc_auth_url(self) -> Tuple[str, str]:
        """Return the provider login URL together with the state it embeds."""

        client = self._require_oidc()
        state = generate_state()
        return client.auth_url(state), state

    def handle_oidc_callback(self, code: str, state: str, expected_state: Optional[str] = None) -> OIDCLoginResult:
        """Complete the authorization-code flow and sign the customer in.

        Customers are matched by email and created on first login.  When the
        caller kept the state it handed out, it is compared here.
        """

        client = self._require_oidc()
        if expected_state is not None and not validate_state(expected_state, state):
            logger.info("Rejected OIDC callback with mismatched state")
            raise UnauthenticatedError("Invalid state parameter")

        token = client.exchange_code(code)
        info = client.validate_id_token(token.id_token)
        if not info.email:
            raise UnauthorizedTokenError("ID token has no email claim")

        customer, is_new_user = self._find_or_provision(info)
        tokens = self._issue(customer.id, customer.email, "customer")
        return OIDCLoginResult(customer=customer, tokens=tokens, is_new_user=is_new_user)

    def _find_or_provision(self, info: OIDCUserInfo) -> Tuple[Customer, bool]:
        email = normalize_email(info.email)
        existing = self.customers.get_by_email(email)
        if existing is not None:
            return existing, False

        first_name, last_name = names_from_claims(info)
        now = utcnow()
        try:
            with transaction(self.session):
                customer = self.customers.create(
                    Customer(first_name=first_name, last_name=last_name, email=email, created_at=now, updated_at=now)
                )
        except IntegrityError:
            # A concurrent callback provisioned the same email first.
            existing = self.customers.get_by_email(email)
            if existing is None:
                raise
            return existing, False
        logger.info("Provisioned customer %s from identity provider", customer.id)
        return customer, True

    def validate_oidc_token(self, id_token: str) -> OIDCUserInfo:
        return self._require_oidc().validate_id_token(id_token)
