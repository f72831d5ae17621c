"""Order and order item repositories."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import selectinload
from sqlmodel import col, select

from ..models import Order, OrderItem, OrderNumberCounter, OrderStatus
from .session import SessionRepository


class SQLOrderRepository(SessionRepository):
    def create(self, order: Order) -> Order:
        return self._save(order)

    def get_by_id(self, order_id: UUID, *, for_update: bool = False) -> Optional[Order]:
        statement = select(Order).where(Order.id == order_id)
        if for_update:
            statement = statement.with_for_update()
            # Re-read the row so a concurrent status change is not masked by the identity map.
            statement = statement.execution_options(populate_existing=True)
        return self.session.exec(statement).first()

    def get_by_number(self, order_number: str) -> Optional[Order]:
        return self.session.exec(select(Order).where(Order.order_number == order_number)).first()

    @staticmethod
    def _filters(customer_id: Optional[UUID], status: Optional[OrderStatus]) -> List[Any]:
        filters: List[Any] = []
        if customer_id is not None:
            filters.append(Order.customer_id == customer_id)
        if status is not None:
            filters.append(Order.status == status)
        return filters

    def list(
        self,
        limit: int,
        offset: int,
        *,
        customer_id: Optional[UUID] = None,
        status: Optional[OrderStatus] = None,
    ) -> Sequence[Order]:
        statement = select(Order).options(selectinload(Order.items))  # type: ignore[arg-type]
        for condition in self._filters(customer_id, status):
            statement = statement.where(condition)
        statement = statement.order_by(col(Order.order_date).desc(), Order.id).offset(offset).limit(limit)
        return self.session.exec(statement).all()

    def count(self, *, customer_id: Optional[UUID] = None, status: Optional[OrderStatus] = None) -> int:
        statement = select(func.count()).select_from(Order)
        for condition in self._filters(customer_id, status):
            statement = statement.where(condition)
        return int(self.session.exec(statement).one())

    def number_exists(self, order_number: str) -> bool:
        statement = select(func.count()).select_from(Order).where(Order.order_number == order_number)
        return int(self.session.exec(statement).one()) > 0

    def latest_order_number(self) -> Optional[str]:
        statement = select(Order.order_number).order_by(col(Order.order_number).desc()).limit(1)
        return self.session.exec(statement).first()

    def last_issued_seconds(self) -> Optional[int]:
        statement = select(OrderNumberCounter).where(OrderNumberCounter.id == 1).with_for_update()
        counter = self.session.exec(statement).first()
        return counter.last_seconds if counter is not None else None

    def record_issued_seconds(self, seconds: int) -> None:
        counter = self.session.get(OrderNumberCounter, 1)
        if counter is None:
            counter = OrderNumberCounter(id=1, last_seconds=seconds)
        else:
            counter.last_seconds = max(counter.last_seconds, seconds)
        self.session.add(counter)
        self.session.flush()

    def update(self, order: Order) -> Order:
        return self._save(order, touch=True)

    def update_status(self, order: Order, status: OrderStatus) -> Order:
        order.status = status
        return self._save(order, touch=True)

    def delete(self, order: Order) -> None:
        self._remove(order)


class SQLOrderItemRepository(SessionRepository):
    def create(self, item: OrderItem) -> OrderItem:
        return self._save(item)

    def list_by_order(self, order_id: UUID) -> Sequence[OrderItem]:
        statement = select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.created_at, OrderItem.id)
        return self.session.exec(statement).all()

    def count_by_product(self, product_id: UUID) -> int:
        statement = select(func.count()).select_from(OrderItem).where(OrderItem.product_id == product_id)
        return int(self.session.exec(statement).one())

