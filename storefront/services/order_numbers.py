"""Order number allocation.

Numbers look like ``ORD-<unix seconds>``.  Two strategies are available:

``suffix``
    Use the current second; when that number is taken append ``-2``,
    ``-3``... until a free one is found.
``monotonic``
    Use ``max(now, last + 1)`` so numbers strictly increase even when
    several orders are placed within the same second.  ``last`` comes from
    the ``order_number_counter`` row, updated in the ordering transaction,
    so deleting the newest order never frees its number for reuse.

Either way the unique constraint on ``orders.order_number`` is the final
arbiter: a concurrent writer can still claim the same number, in which case
the whole order is rolled back and retried.
"""

from __future__ import annotations

import time
from typing import Callable, Literal, Optional

from sqlalchemy.exc import IntegrityError

from ..repositories import OrderRepository

PREFIX = "ORD-"

NumberStrategy = Literal["suffix", "monotonic"]


def parse_order_seconds(order_number: str) -> Optional[int]:
    """Return the seconds component of an order number, if it has one."""

    if not order_number.startswith(PREFIX):
        return None
    head = order_number[len(PREFIX) :].split("-", 1)[0]
    return int(head) if head.isdigit() else None


def is_order_number_collision(exc: IntegrityError) -> bool:
    return "order_number" in str(exc.orig)


class OrderNumberAllocator:
    def __init__(self, strategy: NumberStrategy = "suffix", *, clock: Callable[[], float] = time.time) -> None:
        if strategy not in ("suffix", "monotonic"):
            raise ValueError(f"Unknown order number strategy: {strategy}")
        self.strategy = strategy
        self._clock = clock

    def allocate(self, orders: OrderRepository) -> str:
        now = int(self._clock())
        if self.strategy == "monotonic":
            return self._monotonic(orders, now)
        return self._suffix(orders, now)

    @staticmethod
    def _suffix(orders: OrderRepository, now: int) -> str:
        base = f"{PREFIX}{now}"
        candidate = base
        counter = 1
        while orders.number_exists(candidate):
            counter += 1
            candidate = f"{base}-{counter}"
        return candidate

    @staticmethod
    def _monotonic(orders: OrderRepository, now: int) -> str:
        latest = orders.latest_order_number()
        issued = [orders.last_issued_seconds(), parse_order_seconds(latest) if latest else None]
        value = max([now] + [seconds + 1 for seconds in issued if seconds is not None])
        orders.record_issued_seconds(value)
        return f"{PREFIX}{value}"
