"""Concurrent order placement against a file-backed database."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterator, List
from uuid import UUID

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session, func, select

from conftest import add_category, add_customer, add_product, stock_of
from storefront.db import create_db_and_tables, create_db_engine
from storefront.errors import InsufficientStockError
from storefront.models import Order
from storefront.schemas import OrderItemCreate
from storefront.services import OrderNumberAllocator, OrderService


@pytest.fixture()
def file_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


def place_orders(engine: Engine, customer_id: UUID, product_id: UUID, quantity: int, workers: int) -> List[str]:
    barrier = threading.Barrier(workers)
    allocator = OrderNumberAllocator()

    def place() -> str:
        barrier.wait()
        with Session(engine) as session:
            service = OrderService(session, number_allocator=allocator)
            try:
                service.create_order(customer_id, [OrderItemCreate(product_id=product_id, quantity=quantity)])
            except InsufficientStockError:
                return "insufficient"
            return "created"

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(lambda _: place(), range(workers)))


def orders_in(engine: Engine) -> int:
    with Session(engine) as session:
        return session.exec(select(func.count()).select_from(Order)).one()


def test_two_buyers_one_stock(file_engine: Engine) -> None:
    customer_id = add_customer(file_engine)
    product_id = add_product(file_engine, add_category(file_engine), stock=5)

    outcomes = place_orders(file_engine, customer_id, product_id, quantity=3, workers=2)

    assert sorted(outcomes) == ["created", "insufficient"]
    assert stock_of(file_engine, product_id) == 2
    assert orders_in(file_engine) == 1


def test_stock_never_goes_negative(file_engine: Engine) -> None:
    customer_id = add_customer(file_engine)
    product_id = add_product(file_engine, add_category(file_engine), stock=5)

    outcomes = place_orders(file_engine, customer_id, product_id, quantity=1, workers=8)

    assert outcomes.count("created") == 5
    assert outcomes.count("insufficient") == 3
    assert stock_of(file_engine, product_id) == 0
    assert orders_in(file_engine) == 5
