"""End-to-end API tests through the FastAPI TestClient."""

from __future__ import annotations

from typing import Dict
from urllib.parse import parse_qs, urlsplit
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from conftest import FakeProvider, add_category, add_customer, add_product, bearer, stock_of
from storefront.tokens import TokenIssuer

PROBLEM_JSON = "application/problem+json"


def assert_problem(response, status_code: int, code: str) -> None:
    assert response.status_code == status_code
    assert response.headers["content-type"].startswith(PROBLEM_JSON)
    body = response.json()
    assert body["status"] == status_code
    assert body["code"] == code
    assert body["instance"]


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"] == "ok"
    assert body["oidc_enabled"] is False
    assert body["uptime_seconds"] >= 0


def test_register_login_refresh(client: TestClient) -> None:
    registered = client.post(
        "/auth/register", json={"name": "Grace", "email": "Grace@Example.com", "password": "long enough password"}
    )
    assert registered.status_code == 201
    assert registered.json()["user"]["email"] == "grace@example.com"
    assert registered.json()["tokens"]["token_type"] == "bearer"

    duplicate = client.post(
        "/auth/register", json={"name": "Grace", "email": "grace@example.com", "password": "long enough password"}
    )
    assert_problem(duplicate, 409, "ALREADY_EXISTS")

    login = client.post("/auth/login", json={"email": "grace@example.com", "password": "long enough password"})
    assert login.status_code == 200
    tokens = login.json()["tokens"]

    me = client.get("/api/users/me", headers=bearer(tokens["access_token"]))
    assert me.json()["email"] == "grace@example.com"

    refreshed = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    assert client.get("/api/users/me", headers=bearer(refreshed.json()["access_token"])).status_code == 200

    rejected = client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert_problem(rejected, 401, "UNAUTHORIZED_TOKEN")
    assert rejected.headers["www-authenticate"] == "Bearer"


def test_bad_credentials(client: TestClient) -> None:
    response = client.post("/auth/login", json={"email": "nobody@example.com", "password": "whatever"})

    assert_problem(response, 401, "UNAUTHENTICATED")
    assert response.json()["detail"] == "invalid credentials"


def test_validation_errors_are_problems(client: TestClient) -> None:
    response = client.post("/auth/register", json={"name": "", "email": "not-an-email", "password": "short"})

    assert_problem(response, 422, "VALIDATION_ERROR")


def test_wrong_method_lists_the_allowed_ones(client: TestClient) -> None:
    response = client.post("/health")

    assert response.status_code == 405
    assert response.headers["content-type"].startswith(PROBLEM_JSON)
    assert "GET" in response.headers["allow"]
    assert response.json()["status"] == 405


def test_protected_routes_require_a_user(client: TestClient) -> None:
    response = client.get("/api/orders")

    assert_problem(response, 401, "UNAUTHENTICATED")
    assert response.headers["www-authenticate"] == "Bearer"


def test_catalog_reads_are_public_and_writes_are_not(client: TestClient, user_headers: Dict[str, str]) -> None:
    assert client.post("/api/categories", json={"name": "Books"}).status_code == 401

    category = client.post("/api/categories", json={"name": "Books"}, headers=user_headers)
    assert category.status_code == 201
    category_id = category.json()["id"]
    assert category.headers["location"].endswith(f"/api/categories/{category_id}")

    product = client.post(
        "/api/products",
        json={"name": "Manual", "sku": "BK-1", "price": "12.50", "stock": 4, "category_id": category_id},
        headers=user_headers,
    )
    assert product.status_code == 201

    listing = client.get("/api/products", params={"category_id": category_id})
    assert listing.status_code == 200
    assert listing.headers["x-total-count"] == "1"
    assert [item["sku"] for item in listing.json()["items"]] == ["BK-1"]

    missing = client.delete(f"/api/categories/{uuid4()}", headers=user_headers)
    assert_problem(missing, 404, "NOT_FOUND")


def test_order_lifecycle_over_http(client: TestClient, engine: Engine, user_headers: Dict[str, str]) -> None:
    customer_id = add_customer(engine)
    product_id = add_product(engine, add_category(engine), price="10.00", stock=5)

    created = client.post(
        "/api/orders",
        json={"customer_id": str(customer_id), "items": [{"product_id": str(product_id), "quantity": 2}]},
        headers=user_headers,
    )
    assert created.status_code == 201
    order = created.json()
    assert order["status"] == "pending"
    assert float(order["total_amount"]) == 20.0
    assert len(order["items"]) == 1
    assert created.headers["location"].endswith(f"/api/orders/{order['id']}")
    assert stock_of(engine, product_id) == 3

    by_number = client.get(f"/api/orders/by-number/{order['order_number']}", headers=user_headers)
    assert by_number.json()["id"] == order["id"]

    listed = client.get("/api/orders", params={"customer_id": str(customer_id), "status": "pending"}, headers=user_headers)
    assert listed.headers["x-total-count"] == "1"

    confirmed = client.patch(f"/api/orders/{order['id']}/status", json={"status": "confirmed"}, headers=user_headers)
    assert confirmed.json()["status"] == "confirmed"

    backwards = client.patch(f"/api/orders/{order['id']}/status", json={"status": "pending"}, headers=user_headers)
    assert_problem(backwards, 409, "INVALID_STATE")

    still_open = client.delete(f"/api/orders/{order['id']}", headers=user_headers)
    assert_problem(still_open, 409, "INVALID_STATE")

    cancelled = client.post(f"/api/orders/{order['id']}/cancel", headers=user_headers)
    assert cancelled.json()["status"] == "cancelled"
    assert stock_of(engine, product_id) == 5

    assert client.delete(f"/api/orders/{order['id']}", headers=user_headers).status_code == 204
    assert_problem(client.get(f"/api/orders/{order['id']}", headers=user_headers), 404, "NOT_FOUND")


def test_insufficient_stock_over_http(client: TestClient, engine: Engine, user_headers: Dict[str, str]) -> None:
    customer_id = add_customer(engine)
    product_id = add_product(engine, add_category(engine), stock=1)

    response = client.post(
        "/api/orders",
        json={"customer_id": str(customer_id), "items": [{"product_id": str(product_id), "quantity": 2}]},
        headers=user_headers,
    )

    assert_problem(response, 422, "INSUFFICIENT_STOCK")
    assert stock_of(engine, product_id) == 1


def test_customer_self_service(client: TestClient, engine: Engine, issuer: TokenIssuer) -> None:
    registered = client.post(
        "/api/customers", json={"first_name": "Ada", "last_name": "Lovelace", "email": "ADA@example.com"}
    )
    assert registered.status_code == 201
    customer_id = registered.json()["id"]
    headers = bearer(issuer.issue_access_token(customer_id, "ada@example.com", "customer"))
    product_id = add_product(engine, add_category(engine), stock=3)

    profile = client.put("/api/customer/profile", json={"city": "London", "phone": "555-0100"}, headers=headers)
    assert (profile.json()["city"], profile.json()["phone"]) == ("London", "555-0100")

    cleared = client.put("/api/customer/profile", json={"phone": None, "first_name": None}, headers=headers)
    assert cleared.json()["phone"] == ""
    assert cleared.json()["city"] == "London"
    assert cleared.json()["first_name"] == "Ada"

    placed = client.post(
        "/api/customer/orders", json={"items": [{"product_id": str(product_id), "quantity": 1}]}, headers=headers
    )
    assert placed.status_code == 201
    assert placed.json()["customer_id"] == customer_id

    mine = client.get("/api/customer/orders", headers=headers)
    assert mine.headers["x-total-count"] == "1"

    assert_problem(client.delete("/api/customer/account", headers=headers), 409, "INVALID_STATE")

    other_customer = add_customer(engine, email="mallory@example.com")
    other_headers = bearer(issuer.issue_access_token(other_customer, "mallory@example.com", "customer"))
    foreign = client.post(f"/api/customer/orders/{placed.json()['id']}/cancel", headers=other_headers)
    assert_problem(foreign, 404, "NOT_FOUND")

    own = client.post(f"/api/customer/orders/{placed.json()['id']}/cancel", headers=headers)
    assert own.json()["status"] == "cancelled"
    assert stock_of(engine, product_id) == 3


def test_notifications(client: TestClient, user_headers: Dict[str, str]) -> None:
    email = client.post(
        "/api/notifications",
        json={"type": "email", "to": "ada@example.com", "subject": "Hello", "body": "Your order shipped"},
        headers=user_headers,
    )
    assert email.status_code == 202
    assert email.json()["type"] == "email"
    assert email.json()["status"] == "accepted"

    sms = client.post(
        "/api/notifications", json={"type": "sms", "to": "+44 20 7946 0000", "message": "Shipped"}, headers=user_headers
    )
    assert sms.status_code == 202

    mixed = client.post(
        "/api/notifications", json={"type": "sms", "to": "ada@example.com", "subject": "Hello"}, headers=user_headers
    )
    assert_problem(mixed, 422, "VALIDATION_ERROR")

    unknown = client.post("/api/notifications", json={"type": "pigeon", "to": "roof"}, headers=user_headers)
    assert_problem(unknown, 422, "VALIDATION_ERROR")


def test_oidc_login_and_callback(oidc_http: TestClient, provider: FakeProvider) -> None:
    login = oidc_http.get("/auth/oidc/login")
    assert login.status_code == 200
    state = login.json()["state"]
    assert parse_qs(urlsplit(login.json()["auth_url"]).query)["state"] == [state]
    assert oidc_http.cookies.get("oidc_state")

    forged = oidc_http.get("/auth/oidc/callback", params={"code": "abc", "state": "forged"})
    assert_problem(forged, 401, "UNAUTHENTICATED")

    callback = oidc_http.get("/auth/oidc/callback", params={"code": "abc", "state": state})
    assert callback.status_code == 200
    body = callback.json()
    assert body["is_new_user"] is True
    assert body["customer"]["email"] == "grace@example.com"

    profile = oidc_http.get("/api/customer/profile", headers=bearer(body["tokens"]["access_token"]))
    assert profile.json()["first_name"] == "Grace"

    by_id_token = oidc_http.get("/api/customer/profile", headers=bearer(provider.sign()))
    assert by_id_token.json()["id"] == body["customer"]["id"]


def test_oidc_callback_errors(oidc_http: TestClient, client: TestClient) -> None:
    denied = oidc_http.get("/auth/oidc/callback", params={"error": "access_denied", "error_description": "nope"})
    assert denied.status_code == 400
    assert "access_denied" in denied.json()["detail"]

    assert oidc_http.get("/auth/oidc/callback", params={"code": "abc"}).status_code == 400

    assert_problem(client.get("/auth/oidc/login"), 503, "PROVIDER_UNCONFIGURED")


def test_oidc_logout(oidc_http: TestClient) -> None:
    response = oidc_http.post("/auth/oidc/logout")

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out"}
