"""Persistence contracts used by the services.

Lookups return ``None`` on a miss; list methods take ``limit``/``offset``.
The SQLModel implementations live next to this module.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence
from uuid import UUID

from ..models import Category, Customer, Order, OrderItem, OrderStatus, Product, User


class UserRepository(Protocol):
    def create(self, user: User) -> User: ...

    def get_by_id(self, user_id: UUID) -> Optional[User]: ...

    def get_by_email(self, email: str) -> Optional[User]: ...

    def list(self, limit: int, offset: int) -> Sequence[User]: ...

    def count(self) -> int: ...

    def update(self, user: User) -> User: ...

    def delete(self, user: User) -> None: ...


class CustomerRepository(Protocol):
    def create(self, customer: Customer) -> Customer: ...

    def get_by_id(self, customer_id: UUID) -> Optional[Customer]: ...

    def get_by_email(self, email: str) -> Optional[Customer]: ...

    def list(self, limit: int, offset: int) -> Sequence[Customer]: ...

    def count(self) -> int: ...

    def update(self, customer: Customer) -> Customer: ...

    def delete(self, customer: Customer) -> None: ...


class CategoryRepository(Protocol):
    def create(self, category: Category) -> Category: ...

    def get_by_id(self, category_id: UUID) -> Optional[Category]: ...

    def get_by_name(self, name: str) -> Optional[Category]: ...

    def list(self, limit: int, offset: int) -> Sequence[Category]: ...

    def count(self) -> int: ...

    def list_roots(self) -> Sequence[Category]: ...

    def list_children(self, parent_id: UUID) -> Sequence[Category]: ...

    def count_children(self, parent_id: UUID) -> int: ...

    def update(self, category: Category) -> Category: ...

    def delete(self, category: Category) -> None: ...


class ProductRepository(Protocol):
    def create(self, product: Product) -> Product: ...

    def get_by_id(self, product_id: UUID) -> Optional[Product]: ...

    def get_by_sku(self, sku: str) -> Optional[Product]: ...

    def list(
        self,
        limit: int,
        offset: int,
        *,
        category_id: Optional[UUID] = None,
        active_only: bool = False,
        search: Optional[str] = None,
    ) -> Sequence[Product]: ...

    def count(
        self,
        *,
        category_id: Optional[UUID] = None,
        active_only: bool = False,
        search: Optional[str] = None,
    ) -> int: ...

    def update(self, product: Product) -> Product: ...

    def update_stock(self, product_id: UUID, stock: int) -> bool: ...

    def adjust_stock(self, product_id: UUID, delta: int) -> bool: ...

    def delete(self, product: Product) -> None: ...


class OrderRepository(Protocol):
    def create(self, order: Order) -> Order: ...

    def get_by_id(self, order_id: UUID, *, for_update: bool = False) -> Optional[Order]: ...

    def get_by_number(self, order_number: str) -> Optional[Order]: ...

    def list(
        self,
        limit: int,
        offset: int,
        *,
        customer_id: Optional[UUID] = None,
        status: Optional[OrderStatus] = None,
    ) -> Sequence[Order]: ...

    def count(self, *, customer_id: Optional[UUID] = None, status: Optional[OrderStatus] = None) -> int: ...

    def number_exists(self, order_number: str) -> bool: ...

    def latest_order_number(self) -> Optional[str]: ...

    def last_issued_seconds(self) -> Optional[int]: ...

    def record_issued_seconds(self, seconds: int) -> None: ...

    def update(self, order: Order) -> Order: ...

    def update_status(self, order: Order, status: OrderStatus) -> Order: ...

    def delete(self, order: Order) -> None: ...


class OrderItemRepository(Protocol):
    def create(self, item: OrderItem) -> OrderItem: ...

    def list_by_order(self, order_id: UUID) -> Sequence[OrderItem]: ...

    def count_by_product(self, product_id: UUID) -> int: ...
