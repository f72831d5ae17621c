"""Order lifecycle: creation with stock reservation, status changes, cancellation."""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Sequence, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..db import transaction
from ..errors import InsufficientStockError, InvalidStateError, NotFoundError, StoreError
from ..logger import get_logger
from ..models import Order, OrderItem, OrderStatus, utcnow
from ..repositories import (
    SQLCustomerRepository,
    SQLOrderItemRepository,
    SQLOrderRepository,
    SQLProductRepository,
)
from ..schemas import OrderUpdate
from .order_numbers import OrderNumberAllocator, is_order_number_collision

logger = get_logger(__name__)

CENT = Decimal("0.01")
RETRY_BACKOFF_SECONDS = 0.01

# Forward order of the main chain; cancelled sits outside it.
STATUS_FLOW: Tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.DELIVERED})
CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


class OrderLine(Protocol):
    product_id: UUID
    quantity: int


def check_status_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise :class:`InvalidStateError` unless ``current -> target`` is allowed."""

    if target == OrderStatus.CANCELLED:
        raise InvalidStateError("Use the cancel operation to cancel an order")
    if current == target:
        return
    if current in TERMINAL_STATUSES:
        raise InvalidStateError(f"Order is {current.value} and can no longer change status")
    if STATUS_FLOW.index(target) < STATUS_FLOW.index(current):
        raise InvalidStateError(f"Cannot move order from {current.value} back to {target.value}")


class OrderService:
    """The only component that changes product stock and order status."""

    def __init__(
        self,
        session: Session,
        *,
        number_allocator: Optional[OrderNumberAllocator] = None,
        number_attempts: int = 5,
    ) -> None:
        self.session = session
        self.orders = SQLOrderRepository(session)
        self.items = SQLOrderItemRepository(session)
        self.products = SQLProductRepository(session)
        self.customers = SQLCustomerRepository(session)
        self.number_allocator = number_allocator or OrderNumberAllocator()
        self.number_attempts = max(1, number_attempts)

    # Creation

    def create_order(
        self,
        customer_id: UUID,
        items: Sequence[OrderLine],
        *,
        shipping_address: str = "",
        billing_address: str = "",
        notes: str = "",
    ) -> Order:
        """Create an order, reserving stock for every line.

        Lines are validated in the order given, with repeated products
        accumulating their requested quantity.  Stock is then decremented
        once per product in ascending product id order, inside the same
        transaction that inserts the order and its items.  If another writer
        claims the same order number first, the whole unit is retried.
        """

        if not items:
            raise InvalidStateError("An order needs at least one item")
        for line in items:
            if line.quantity < 1:
                raise InvalidStateError("Item quantity must be at least 1")

        attempt = 0
        while True:
            attempt += 1
            try:
                with transaction(self.session):
                    order = self._create_once(customer_id, items, shipping_address, billing_address, notes)
            except IntegrityError as exc:
                if not is_order_number_collision(exc):
                    raise StoreError("Failed to store order") from exc
                if attempt >= self.number_attempts:
                    raise StoreError("Could not allocate a unique order number") from exc
                logger.warning("Order number collision, retrying (attempt %s)", attempt)
                time.sleep(RETRY_BACKOFF_SECONDS * attempt)
                continue

            logger.info(
                "Created order %s for customer %s with %s item(s), total %s",
                order.order_number,
                customer_id,
                len(items),
                order.total_amount,
            )
            return order

    def _create_once(
        self,
        customer_id: UUID,
        items: Sequence[OrderLine],
        shipping_address: str,
        billing_address: str,
        notes: str,
    ) -> Order:
        if self.customers.get_by_id(customer_id) is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        requested: Dict[UUID, int] = {}
        lines: List[Tuple[UUID, int, Decimal, Decimal]] = []
        for line in items:
            product = self.products.get_by_id(line.product_id)
            if product is None:
                raise NotFoundError(f"Product {line.product_id} not found")
            if not product.is_active:
                raise InvalidStateError(f"Product {product.id} is not active")
            requested[product.id] = requested.get(product.id, 0) + line.quantity
            if product.stock < requested[product.id]:
                raise InsufficientStockError(product.id, requested[product.id], product.stock)
            unit_price = Decimal(product.price)
            lines.append((product.id, line.quantity, unit_price, (unit_price * line.quantity).quantize(CENT)))

        total = sum((line_total for _, _, _, line_total in lines), Decimal("0.00")).quantize(CENT)
        now = utcnow()
        order = self.orders.create(
            Order(
                customer_id=customer_id,
                order_number=self.number_allocator.allocate(self.orders),
                status=OrderStatus.PENDING,
                total_amount=total,
                shipping_address=shipping_address,
                billing_address=billing_address,
                notes=notes,
                order_date=now,
                created_at=now,
                updated_at=now,
            )
        )
        for product_id, quantity, unit_price, line_total in lines:
            self.items.create(
                OrderItem(
                    order_id=order.id,
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=line_total,
                    created_at=now,
                    updated_at=now,
                )
            )

        for product_id in sorted(requested):
            if not self.products.adjust_stock(product_id, -requested[product_id]):
                raise InsufficientStockError(product_id, requested[product_id], None)
        return order

    # Queries

    def get_order(self, order_id: UUID) -> Order:
        order = self.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def get_order_by_number(self, order_number: str) -> Order:
        order = self.orders.get_by_number(order_number)
        if order is None:
            raise NotFoundError(f"Order {order_number} not found")
        return order

    def list_orders(
        self,
        limit: int,
        offset: int,
        *,
        customer_id: Optional[UUID] = None,
        status: Optional[OrderStatus] = None,
    ) -> Sequence[Order]:
        if customer_id is not None:
            self._require_customer(customer_id)
        return self.orders.list(limit, offset, customer_id=customer_id, status=status)

    def count_orders(self, *, customer_id: Optional[UUID] = None, status: Optional[OrderStatus] = None) -> int:
        return self.orders.count(customer_id=customer_id, status=status)

    def list_orders_by_customer(self, customer_id: UUID, limit: int, offset: int) -> Sequence[Order]:
        return self.list_orders(limit, offset, customer_id=customer_id)

    def count_orders_by_customer(self, customer_id: UUID) -> int:
        return self.count_orders(customer_id=customer_id)

    def list_orders_by_status(self, status: OrderStatus, limit: int, offset: int) -> Sequence[Order]:
        return self.list_orders(limit, offset, status=status)

    def count_orders_by_status(self, status: OrderStatus) -> int:
        return self.count_orders(status=status)

    def _require_customer(self, customer_id: UUID) -> None:
        if self.customers.get_by_id(customer_id) is None:
            raise NotFoundError(f"Customer {customer_id} not found")

    # Changes

    def update_order(self, order_id: UUID, patch: OrderUpdate) -> Order:
        """Apply a partial update; the total amount is never recomputed."""

        changes = patch.model_dump(exclude_unset=True)
        with transaction(self.session):
            order = self._locked_order(order_id)
            status = changes.pop("status", None)
            if status is not None:
                check_status_transition(order.status, status)
                self._apply_status(order, status)
            for field in ("shipping_address", "billing_address", "notes"):
                value = changes.get(field)
                if value is not None:
                    setattr(order, field, value)
            for field in ("shipped_date", "delivered_date"):
                if field in changes:
                    setattr(order, field, changes[field])
            self.orders.update(order)
        return order

    def update_order_status(self, order_id: UUID, status: OrderStatus) -> Order:
        with transaction(self.session):
            order = self._locked_order(order_id)
            check_status_transition(order.status, status)
            self._apply_status(order, status)
            self.orders.update(order)
        logger.info("Order %s moved to %s", order.order_number, status.value)
        return order

    @staticmethod
    def _apply_status(order: Order, status: OrderStatus) -> None:
        now = utcnow()
        if status == OrderStatus.SHIPPED and order.shipped_date is None:
            order.shipped_date = now
        if status == OrderStatus.DELIVERED and order.delivered_date is None:
            order.delivered_date = now
        order.status = status

    def cancel_order(self, order_id: UUID) -> Order:
        """Cancel a pending or confirmed order and put its stock back.

        The order row is locked for the duration, so two concurrent cancels
        restore stock only once.
        """

        with transaction(self.session):
            order = self._locked_order(order_id)
            if order.status not in CANCELLABLE_STATUSES:
                raise InvalidStateError(f"Order in status {order.status.value} cannot be cancelled")

            restore: Dict[UUID, int] = {}
            for item in self.items.list_by_order(order.id):
                restore[item.product_id] = restore.get(item.product_id, 0) + item.quantity
            for product_id in sorted(restore):
                if not self.products.adjust_stock(product_id, restore[product_id]):
                    raise StoreError(f"Product {product_id} disappeared while restoring stock")
            self.orders.update_status(order, OrderStatus.CANCELLED)

        logger.info("Cancelled order %s, restored stock for %s product(s)", order.order_number, len(restore))
        return order

    def delete_order(self, order_id: UUID) -> None:
        with transaction(self.session):
            order = self._locked_order(order_id)
            if order.status != OrderStatus.CANCELLED:
                raise InvalidStateError("Only cancelled orders can be deleted")
            number = order.order_number
            self.orders.delete(order)
        logger.info("Deleted order %s", number)

    def _locked_order(self, order_id: UUID) -> Order:
        order = self.orders.get_by_id(order_id, for_update=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order
