"""FastAPI dependencies that build per-request services."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from sqlmodel import Session

from .config import Settings
from .db import get_session
from .oidc import OIDCClient
from .services import (
    AuthService,
    CategoryService,
    CustomerService,
    NotificationDispatcher,
    OrderService,
    ProductService,
    UserService,
)
from .tokens import TokenIssuer


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_oidc_client(request: Request) -> Optional[OIDCClient]:
    return request.app.state.oidc_client


def get_auth_service(
    session: Session = Depends(get_session),
    issuer: TokenIssuer = Depends(get_token_issuer),
    oidc: Optional[OIDCClient] = Depends(get_oidc_client),
) -> AuthService:
    return AuthService(session, issuer, oidc)


def get_order_service(
    request: Request,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> OrderService:
    return OrderService(
        session,
        number_allocator=request.app.state.order_numbers,
        number_attempts=settings.orders.number_attempts,
    )


def get_category_service(session: Session = Depends(get_session)) -> CategoryService:
    return CategoryService(session)


def get_product_service(session: Session = Depends(get_session)) -> ProductService:
    return ProductService(session)


def get_user_service(session: Session = Depends(get_session)) -> UserService:
    return UserService(session)


def get_customer_service(session: Session = Depends(get_session)) -> CustomerService:
    return CustomerService(session)


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()
