"""Tests for local credentials, token refresh and OIDC sign-in."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from conftest import FakeProvider, add_customer, add_user
from storefront.errors import (
    AlreadyExistsError,
    ProviderUnconfiguredError,
    UnauthenticatedError,
    UnauthorizedTokenError,
)
from storefront.models import Customer
from storefront.oidc import OIDCClient, OIDCUserInfo
from storefront.services import AuthService
from storefront.services.auth import names_from_claims
from storefront.tokens import TokenIssuer


def test_register_then_login(session: Session, issuer: TokenIssuer) -> None:
    service = AuthService(session, issuer)

    registered = service.register("Grace Hopper", "Grace@Example.com", "long enough password")
    assert registered.user.email == "grace@example.com"

    result = service.login("GRACE@example.com", "long enough password")
    assert result.user.id == registered.user.id
    claims = service.validate_token(result.tokens.access_token)
    assert claims.user_id == registered.user.id
    assert claims.kind == "user"


def test_register_rejects_duplicate_email(session: Session, issuer: TokenIssuer) -> None:
    service = AuthService(session, issuer)
    service.register("Grace", "grace@example.com", "long enough password")

    with pytest.raises(AlreadyExistsError):
        service.register("Other Grace", "GRACE@example.com", "another password")


def test_login_failures_share_one_message(engine: Engine, session: Session, issuer: TokenIssuer) -> None:
    add_user(engine, "operator@example.com", "correct horse")
    service = AuthService(session, issuer)

    with pytest.raises(UnauthenticatedError) as wrong_password:
        service.login("operator@example.com", "battery staple")
    with pytest.raises(UnauthenticatedError) as unknown_email:
        service.login("nobody@example.com", "correct horse")

    assert wrong_password.value.detail == unknown_email.value.detail == "invalid credentials"


def test_refresh_reissues_for_users_and_customers(engine: Engine, session: Session, issuer: TokenIssuer) -> None:
    user_id = add_user(engine)
    customer_id = add_customer(engine)
    service = AuthService(session, issuer)

    user_tokens = service.refresh_token(issuer.issue_refresh_token(user_id, "user"))
    customer_tokens = service.refresh_token(issuer.issue_refresh_token(customer_id, "customer"))

    assert issuer.validate_access_token(user_tokens.access_token).kind == "user"
    customer_claims = issuer.validate_access_token(customer_tokens.access_token)
    assert customer_claims.kind == "customer"
    assert customer_claims.user_id == customer_id
    assert customer_claims.email == "ada@example.com"


def test_refresh_rejects_access_tokens_and_vanished_principals(
    engine: Engine, session: Session, issuer: TokenIssuer
) -> None:
    user_id = add_user(engine)
    service = AuthService(session, issuer)

    with pytest.raises(UnauthorizedTokenError):
        service.refresh_token(issuer.issue_access_token(user_id, "operator@example.com"))

    # A customer token naming a user id resolves against customers and fails.
    with pytest.raises(UnauthorizedTokenError):
        service.refresh_token(issuer.issue_refresh_token(user_id, "customer"))


def test_oidc_requires_a_configured_provider(session: Session, issuer: TokenIssuer) -> None:
    service = AuthService(session, issuer)

    with pytest.raises(ProviderUnconfiguredError):
        service.get_oidc_auth_url()
    with pytest.raises(ProviderUnconfiguredError):
        service.handle_oidc_callback("code", "state")


def test_auth_url_embeds_fresh_state(session: Session, issuer: TokenIssuer, oidc_client: OIDCClient) -> None:
    service = AuthService(session, issuer, oidc_client)

    url, state = service.get_oidc_auth_url()
    _, other_state = service.get_oidc_auth_url()

    assert parse_qs(urlsplit(url).query)["state"] == [state]
    assert state != other_state


def test_first_oidc_login_provisions_a_customer(
    session: Session, issuer: TokenIssuer, oidc_client: OIDCClient
) -> None:
    service = AuthService(session, issuer, oidc_client)

    first = service.handle_oidc_callback("code-1", "state")
    assert first.is_new_user is True
    assert first.customer.email == "grace@example.com"
    assert (first.customer.first_name, first.customer.last_name) == ("Grace", "Hopper")
    claims = issuer.validate_access_token(first.tokens.access_token)
    assert claims.kind == "customer"
    assert claims.user_id == first.customer.id

    second = service.handle_oidc_callback("code-2", "state")
    assert second.is_new_user is False
    assert second.customer.id == first.customer.id

    customers = session.exec(select(Customer).where(Customer.email == "grace@example.com")).all()
    assert len(customers) == 1


def test_oidc_login_links_existing_customer_by_email(
    engine: Engine, session: Session, issuer: TokenIssuer, oidc_client: OIDCClient
) -> None:
    customer_id = add_customer(engine, email="grace@example.com", first_name="Amazing")
    service = AuthService(session, issuer, oidc_client)

    result = service.handle_oidc_callback("code", "state")

    assert result.is_new_user is False
    assert result.customer.id == customer_id
    assert result.customer.first_name == "Amazing"


def test_oidc_callback_checks_state_when_expected(
    session: Session, issuer: TokenIssuer, oidc_client: OIDCClient, provider: FakeProvider
) -> None:
    service = AuthService(session, issuer, oidc_client)

    with pytest.raises(UnauthenticatedError):
        service.handle_oidc_callback("code", "forged", expected_state="issued")
    assert "/token" not in provider.calls

    result = service.handle_oidc_callback("code", "issued", expected_state="issued")
    assert result.customer.email == "grace@example.com"


def test_oidc_callback_requires_email(
    session: Session, issuer: TokenIssuer, oidc_client: OIDCClient, provider: FakeProvider
) -> None:
    provider.claims = {"email": None}
    service = AuthService(session, issuer, oidc_client)

    with pytest.raises(UnauthorizedTokenError):
        service.handle_oidc_callback("code", "state")


def test_validate_oidc_token(session: Session, issuer: TokenIssuer, oidc_client: OIDCClient, provider: FakeProvider) -> None:
    service = AuthService(session, issuer, oidc_client)

    assert service.validate_oidc_token(provider.sign()).sub == "provider-subject-1"
    with pytest.raises(UnauthorizedTokenError):
        service.validate_oidc_token(provider.sign(aud="someone-else"))


@pytest.mark.parametrize(
    ("info", "expected"),
    [
        (OIDCUserInfo(sub="1", email="g@example.com", given_name="Grace", family_name="Hopper"), ("Grace", "Hopper")),
        (OIDCUserInfo(sub="1", email="g@example.com", name="Grace Brewster Hopper"), ("Grace", "Brewster Hopper")),
        (OIDCUserInfo(sub="1", email="grace.h@example.com"), ("grace.h", "")),
    ],
)
def test_names_from_claims(info: OIDCUserInfo, expected) -> None:
    assert names_from_claims(info) == expected
