"""Database models for the storefront."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Column, ForeignKey, Numeric, Uuid
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    """Enumeration of the lifecycle states of an order."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class User(SQLModel, table=True):
    """An internal operator authenticated with locally issued tokens."""

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class Customer(SQLModel, table=True):
    """An external buyer, usually provisioned through the identity provider."""

    __tablename__ = "customers"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    first_name: str
    last_name: str
    email: str = Field(index=True, unique=True)
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    orders: List["Order"] = Relationship(back_populates="customer")


class Category(SQLModel, table=True):
    """A catalog category; children are looked up by ``parent_id``."""

    __tablename__ = "categories"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(index=True, unique=True)
    description: str = ""
    parent_id: Optional[UUID] = Field(default=None, foreign_key="categories.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Product(SQLModel, table=True):
    """A sellable product with its on-hand stock."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(index=True)
    description: str = ""
    sku: str = Field(index=True, unique=True)
    price: Decimal = Field(
        sa_column=Column(Numeric(precision=12, scale=2), nullable=False),
        default=Decimal("0.00"),
    )
    stock: int = Field(default=0)
    category_id: UUID = Field(foreign_key="categories.id", index=True)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Order(SQLModel, table=True):
    """A purchase order placed by a customer."""

    __tablename__ = "orders"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    customer_id: UUID = Field(foreign_key="customers.id", index=True)
    order_number: str = Field(index=True, unique=True)
    status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)
    total_amount: Decimal = Field(
        sa_column=Column(Numeric(precision=12, scale=2), nullable=False),
        default=Decimal("0.00"),
    )
    shipping_address: str = ""
    billing_address: str = ""
    notes: str = ""
    order_date: datetime = Field(default_factory=utcnow, index=True)
    shipped_date: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    customer: Optional[Customer] = Relationship(back_populates="orders")
    items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "OrderItem.created_at"},
    )


class OrderItem(SQLModel, table=True):
    """A single line of an order with its price frozen at creation."""

    __tablename__ = "order_items"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    order_id: UUID = Field(
        sa_column=Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    product_id: UUID = Field(foreign_key="products.id", index=True)
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(
        sa_column=Column(Numeric(precision=12, scale=2), nullable=False),
        default=Decimal("0.00"),
    )
    total_price: Decimal = Field(
        sa_column=Column(Numeric(precision=12, scale=2), nullable=False),
        default=Decimal("0.00"),
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    order: Optional[Order] = Relationship(back_populates="items")
    product: Optional[Product] = Relationship()


class OrderNumberCounter(SQLModel, table=True):
    """High-water mark of issued monotonic order numbers, kept across deletes."""

    __tablename__ = "order_number_counter"

    id: int = Field(default=1, primary_key=True)
    last_seconds: int = Field(default=0)
