"""Pydantic schemas shared by the API."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictInt, StrictStr

from .models import OrderStatus


class ProblemDetail(BaseModel):
    """RFC 7807 compatible problem details."""

    type: StrictStr = Field(default="about:blank", examples=["https://httpstatuses.com/404"])
    title: StrictStr = Field(examples=["Resource not found"])
    status: StrictInt = Field(ge=100, le=599, examples=[404])
    detail: StrictStr = Field(examples=["Order ... was not found"])
    instance: StrictStr = Field(examples=["/api/orders/123"])
    code: Optional[StrictStr] = Field(default=None, examples=["NOT_FOUND"])


class HealthResponse(BaseModel):
    """Application health payload."""

    status: Literal["ok"] = Field(examples=["ok"])
    version: StrictStr = Field(examples=["1.0.0"])
    database: Literal["ok", "unavailable"] = Field(examples=["ok"])
    oidc_enabled: bool = Field(examples=[False])
    uptime_seconds: float = Field(ge=0, examples=[1234.56])


class PaginationLinks(BaseModel):
    """Link relations for paginated endpoints."""

    model_config = ConfigDict(extra="forbid")

    self: StrictStr = Field(examples=["/api/orders?offset=0&limit=10"])
    next: Optional[StrictStr] = Field(default=None, examples=["/api/orders?offset=10&limit=10"])
    prev: Optional[StrictStr] = Field(default=None, examples=["/api/orders?offset=0&limit=10"])


# Users


class UserRead(BaseModel):
    """User representation in responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: StrictStr
    email: StrictStr
    created_at: datetime
    updated_at: datetime


class UserUpdate(BaseModel):
    """Partial update schema for users."""

    name: Optional[StrictStr] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None


class UserCollection(BaseModel):
    items: List[UserRead] = Field(default_factory=list)
    count: StrictInt = Field(ge=0)
    links: PaginationLinks


# Customers


class CustomerBase(BaseModel):
    first_name: StrictStr = Field(min_length=1, max_length=100, examples=["Ada"])
    last_name: StrictStr = Field(min_length=1, max_length=100, examples=["Lovelace"])
    email: EmailStr = Field(examples=["ada@example.com"])
    phone: StrictStr = Field(default="", max_length=50)
    address: StrictStr = Field(default="", max_length=500)
    city: StrictStr = Field(default="", max_length=100)
    state: StrictStr = Field(default="", max_length=100)
    zip_code: StrictStr = Field(default="", max_length=20)
    country: StrictStr = Field(default="", max_length=100)


class CustomerCreate(CustomerBase):
    """Schema for customer self-registration."""

    pass


class CustomerUpdate(BaseModel):
    """Partial update schema for customers."""

    first_name: Optional[StrictStr] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[StrictStr] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[StrictStr] = Field(default=None, max_length=50)
    address: Optional[StrictStr] = Field(default=None, max_length=500)
    city: Optional[StrictStr] = Field(default=None, max_length=100)
    state: Optional[StrictStr] = Field(default=None, max_length=100)
    zip_code: Optional[StrictStr] = Field(default=None, max_length=20)
    country: Optional[StrictStr] = Field(default=None, max_length=100)


class CustomerRead(BaseModel):
    """Customer representation in responses.

    Names may be empty for customers provisioned from sparse identity claims.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: StrictStr
    last_name: StrictStr
    email: StrictStr
    phone: StrictStr
    address: StrictStr
    city: StrictStr
    state: StrictStr
    zip_code: StrictStr
    country: StrictStr
    created_at: datetime
    updated_at: datetime


class CustomerCollection(BaseModel):
    items: List[CustomerRead] = Field(default_factory=list)
    count: StrictInt = Field(ge=0)
    links: PaginationLinks


# Catalog


class CategoryCreate(BaseModel):
    name: StrictStr = Field(min_length=1, max_length=200, examples=["Books"])
    description: StrictStr = Field(default="", max_length=2000)
    parent_id: Optional[UUID] = None


class CategoryUpdate(BaseModel):
    """Partial update schema for categories.

    ``parent_id`` is only changed when the field is present in the payload, so
    an explicit ``null`` moves the category to the root.
    """

    name: Optional[StrictStr] = Field(default=None, min_length=1, max_length=200)
    description: Optional[StrictStr] = Field(default=None, max_length=2000)
    parent_id: Optional[UUID] = None


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: StrictStr
    description: StrictStr
    parent_id: Optional[UUID]
    created_at: datetime
    updated_at: datetime


class CategoryCollection(BaseModel):
    items: List[CategoryRead] = Field(default_factory=list)
    count: StrictInt = Field(ge=0)
    links: PaginationLinks


class ProductCreate(BaseModel):
    name: StrictStr = Field(min_length=1, max_length=200, examples=["Analytical Engine Manual"])
    description: StrictStr = Field(default="", max_length=5000)
    sku: StrictStr = Field(min_length=1, max_length=64, examples=["LPT-1000"])
    price: Decimal = Field(ge=Decimal("0"), max_digits=12, decimal_places=2, examples=[Decimal("125.50")])
    stock: StrictInt = Field(default=0, ge=0, examples=[10])
    category_id: UUID
    is_active: bool = True


class ProductUpdate(BaseModel):
    """Partial update schema for products; ``stock`` is an absolute admin set."""

    name: Optional[StrictStr] = Field(default=None, min_length=1, max_length=200)
    description: Optional[StrictStr] = Field(default=None, max_length=5000)
    sku: Optional[StrictStr] = Field(default=None, min_length=1, max_length=64)
    price: Optional[Decimal] = Field(default=None, ge=Decimal("0"), max_digits=12, decimal_places=2)
    stock: Optional[StrictInt] = Field(default=None, ge=0)
    category_id: Optional[UUID] = None
    is_active: Optional[bool] = None


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: StrictStr
    description: StrictStr
    sku: StrictStr
    price: Decimal
    stock: StrictInt
    category_id: UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProductCollection(BaseModel):
    items: List[ProductRead] = Field(default_factory=list)
    count: StrictInt = Field(ge=0)
    links: PaginationLinks


# Orders


class OrderItemCreate(BaseModel):
    product_id: UUID
    quantity: StrictInt = Field(ge=1, examples=[2])


class OrderCreate(BaseModel):
    """Schema for creating orders on behalf of a customer."""

    customer_id: UUID
    shipping_address: StrictStr = Field(default="", max_length=500)
    billing_address: StrictStr = Field(default="", max_length=500)
    notes: StrictStr = Field(default="", max_length=2000)
    items: List[OrderItemCreate] = Field(min_length=1, max_length=100)


class CustomerOrderCreate(BaseModel):
    """Order placed by the authenticated customer; the customer id comes from the token."""

    shipping_address: StrictStr = Field(default="", max_length=500)
    billing_address: StrictStr = Field(default="", max_length=500)
    notes: StrictStr = Field(default="", max_length=2000)
    items: List[OrderItemCreate] = Field(min_length=1, max_length=100)


class OrderUpdate(BaseModel):
    """Partial order update; the total is never recomputed."""

    status: Optional[OrderStatus] = None
    shipping_address: Optional[StrictStr] = Field(default=None, max_length=500)
    billing_address: Optional[StrictStr] = Field(default=None, max_length=500)
    notes: Optional[StrictStr] = Field(default=None, max_length=2000)
    shipped_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    product_id: UUID
    quantity: StrictInt
    unit_price: Decimal
    total_price: Decimal
    created_at: datetime


class OrderRead(BaseModel):
    """Order representation including its items."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    order_number: StrictStr
    status: OrderStatus
    total_amount: Decimal
    shipping_address: StrictStr
    billing_address: StrictStr
    notes: StrictStr
    order_date: datetime
    shipped_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemRead] = Field(default_factory=list)


class OrderCollection(BaseModel):
    items: List[OrderRead] = Field(default_factory=list)
    count: StrictInt = Field(ge=0)
    links: PaginationLinks


# Authentication


class RegisterRequest(BaseModel):
    name: StrictStr = Field(min_length=1, max_length=200, examples=["Grace Hopper"])
    email: EmailStr = Field(examples=["grace@example.com"])
    password: StrictStr = Field(min_length=8, max_length=256)


class LoginRequest(BaseModel):
    email: EmailStr
    password: StrictStr = Field(min_length=1, max_length=256)


class RefreshRequest(BaseModel):
    refresh_token: StrictStr = Field(min_length=1)


class TokenPair(BaseModel):
    """Locally issued access and refresh tokens."""

    access_token: StrictStr
    refresh_token: StrictStr
    token_type: Literal["bearer"] = Field(default="bearer")
    expires_at: datetime


class LoginResponse(BaseModel):
    user: UserRead
    tokens: TokenPair


class AuthURLResponse(BaseModel):
    auth_url: StrictStr
    state: StrictStr


class OIDCLoginResponse(BaseModel):
    """Result of a completed authorization-code callback."""

    customer: CustomerRead
    tokens: TokenPair
    is_new_user: bool


class OIDCUserInfoRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sub: StrictStr
    email: StrictStr
    name: StrictStr = ""
    given_name: StrictStr = ""
    family_name: StrictStr = ""
    picture: StrictStr = ""


class MessageResponse(BaseModel):
    message: StrictStr


# Notifications


class EmailNotification(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["email"]
    to: EmailStr
    subject: StrictStr = Field(min_length=1, max_length=200)
    body: StrictStr = Field(min_length=1, max_length=10000)


class SmsNotification(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["sms"]
    to: StrictStr = Field(min_length=3, max_length=32, pattern=r"^\+?[0-9 ()-]+$")
    message: StrictStr = Field(min_length=1, max_length=1600)


NotificationRequest = Union[EmailNotification, SmsNotification]


class NotificationAccepted(BaseModel):
    id: UUID
    type: Literal["email", "sms"]
    status: Literal["accepted"] = "accepted"
