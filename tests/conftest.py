"""Shared fixtures for the storefront test suite."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
from uuid import UUID

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jose import jwk, jwt
from sqlalchemy.engine import Engine
from sqlmodel import Session

sys.path.append(str(Path(__file__).resolve().parents[1]))

from storefront.config import AuthSettings, DatabaseSettings, OIDCSettings, Settings
from storefront.db import create_db_and_tables, create_db_engine, session_scope
from storefront.main import create_app
from storefront.models import Category, Customer, Product, User
from storefront.oidc import OIDCClient
from storefront.passwords import hash_password
from storefront.tokens import TokenIssuer

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"
PROVIDER_URL = "https://idp.example.test"
CLIENT_ID = "storefront-test-client"
KEY_ID = "test-key-1"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        database=DatabaseSettings(url="sqlite://"),
        auth=AuthSettings(jwt_secret=ACCESS_SECRET, jwt_refresh_secret=REFRESH_SECRET),
    )


@pytest.fixture()
def engine() -> Iterator[Engine]:
    """In-memory database shared by every session of one test."""

    engine = create_db_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine: Engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(
        settings.auth.jwt_secret,
        settings.auth.jwt_refresh_secret,
        settings.auth.jwt_expiry,
        settings.auth.jwt_refresh_expiry,
    )


# Seed helpers. They commit and return ids so no session stays open
# while the API handles requests on the same connection.


def add_user(engine: Engine, email: str = "operator@example.com", password: str = "correct horse") -> UUID:
    with session_scope(engine) as session:
        user = User(name="Operator", email=email, password_hash=hash_password(password))
        session.add(user)
        user_id = user.id
    return user_id


def add_customer(engine: Engine, email: str = "ada@example.com", first_name: str = "Ada") -> UUID:
    with session_scope(engine) as session:
        customer = Customer(first_name=first_name, last_name="Lovelace", email=email)
        session.add(customer)
        customer_id = customer.id
    return customer_id


def add_category(engine: Engine, name: str = "Books", parent_id: Optional[UUID] = None) -> UUID:
    with session_scope(engine) as session:
        category = Category(name=name, parent_id=parent_id)
        session.add(category)
        category_id = category.id
    return category_id


def add_product(
    engine: Engine,
    category_id: UUID,
    *,
    sku: str = "SKU-1",
    price: str = "10.00",
    stock: int = 10,
    is_active: bool = True,
) -> UUID:
    with session_scope(engine) as session:
        product = Product(
            name=f"Product {sku}",
            sku=sku,
            price=Decimal(price),
            stock=stock,
            category_id=category_id,
            is_active=is_active,
        )
        session.add(product)
        product_id = product.id
    return product_id


def stock_of(engine: Engine, product_id: UUID) -> int:
    with Session(engine) as session:
        product = session.get(Product, product_id)
        assert product is not None
        return product.stock


@pytest.fixture()
def app(settings: Settings, engine: Engine):
    return create_app(settings, engine=engine)


@pytest.fixture()
def client(app) -> Iterator[TestClient]:
    """Provide a TestClient bound to a fresh application instance."""

    with TestClient(app) as test_client:
        yield test_client


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def user_headers(engine: Engine, issuer: TokenIssuer) -> Dict[str, str]:
    user_id = add_user(engine)
    return bearer(issuer.issue_access_token(user_id, "operator@example.com", "user"))


# Identity provider double


@pytest.fixture(scope="session")
def rsa_private_pem() -> bytes:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def public_jwk(private_pem: bytes, kid: str) -> Dict[str, Any]:
    private_key = serialization.load_pem_private_key(private_pem, password=None)
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    key = jwk.construct(public_pem, "RS256").to_dict()
    key.update({"kid": kid, "use": "sig", "alg": "RS256"})
    return key


@dataclass
class FakeProvider:
    """Serves discovery, JWKS, token and userinfo documents for one signing key."""

    private_pem: bytes
    kid: str = KEY_ID
    issuer: str = PROVIDER_URL
    claims: Dict[str, Any] = field(default_factory=dict)
    token_status: int = 200
    include_id_token: bool = True
    calls: List[str] = field(default_factory=list)
    jwks_keys: Optional[List[Dict[str, Any]]] = None

    def sign(self, **overrides: Any) -> str:
        now = int(time.time())
        claims = {
            "iss": self.issuer,
            "aud": CLIENT_ID,
            "sub": "provider-subject-1",
            "email": "grace@example.com",
            "name": "Grace Hopper",
            "given_name": "Grace",
            "family_name": "Hopper",
            "iat": now,
            "exp": now + 300,
        }
        claims.update(self.claims)
        claims.update(overrides)
        claims = {key: value for key, value in claims.items() if value is not None}
        return jwt.encode(claims, self.private_pem.decode("ascii"), algorithm="RS256", headers={"kid": self.kid})

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)
        if path == "/.well-known/openid-configuration":
            return httpx.Response(
                200,
                json={
                    "issuer": self.issuer,
                    "authorization_endpoint": f"{PROVIDER_URL}/authorize",
                    "token_endpoint": f"{PROVIDER_URL}/token",
                    "userinfo_endpoint": f"{PROVIDER_URL}/v1/userinfo",
                    "jwks_uri": f"{PROVIDER_URL}/keys",
                    "id_token_signing_alg_values_supported": ["RS256"],
                },
            )
        if path == "/keys":
            keys = self.jwks_keys if self.jwks_keys is not None else [public_jwk(self.private_pem, self.kid)]
            return httpx.Response(200, json={"keys": keys})
        if path == "/token":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            body = {"access_token": "provider-access", "refresh_token": "provider-refresh", "expires_in": 3600}
            if self.include_id_token:
                body["id_token"] = self.sign()
            return httpx.Response(200, json=body)
        if path == "/v1/userinfo":
            if request.headers.get("Authorization") != "Bearer provider-access":
                return httpx.Response(401)
            return httpx.Response(200, json={"sub": "provider-subject-1", "email": "grace@example.com"})
        return httpx.Response(404)


@pytest.fixture()
def provider(rsa_private_pem: bytes) -> FakeProvider:
    return FakeProvider(private_pem=rsa_private_pem)


@pytest.fixture()
def oidc_settings() -> OIDCSettings:
    return OIDCSettings(
        enabled=True,
        provider_url=PROVIDER_URL,
        client_id=CLIENT_ID,
        client_secret="client-secret",
        redirect_url="http://testserver/auth/oidc/callback",
    )


@pytest.fixture()
def oidc_client(provider: FakeProvider, oidc_settings: OIDCSettings) -> Iterator[OIDCClient]:
    client = OIDCClient(oidc_settings, transport=httpx.MockTransport(provider.handler))
    yield client
    client.close()


@pytest.fixture()
def oidc_app(settings: Settings, engine: Engine, oidc_client: OIDCClient):
    return create_app(settings, engine=engine, oidc_client=oidc_client)


@pytest.fixture()
def oidc_http(oidc_app) -> Iterator[TestClient]:
    with TestClient(oidc_app) as test_client:
        yield test_client

