"""
In-memory order ledger.

The ledger is the only owner of Order objects. Readers get copies; writers
go through `locked()`, which holds a per-order asyncio.Lock for the whole
read-modify-write, including any awaited processor call made inside it.
State lives for the lifetime of the process.
"""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import AsyncIterator, Dict, List, Optional

import structlog

from merchant_demo.domain import NotFound, Order
from merchant_demo.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class OrderLedger:
    """Keyed store of orders with per-order mutual exclusion."""

    def __init__(self) -> None:
        self._orders: Dict[str, Order] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def add(self, order: Order) -> Order:
        """Insert a new order. Identifiers are never reused."""
        if order.id in self._orders:
            raise ValueError(f"Order {order.id} already exists")

        self._orders[order.id] = order
        self._locks[order.id] = asyncio.Lock()
        metrics.record_order_transition(order.status.value)
        metrics.set_ledger_size(len(self._orders))

        logger.info("order_added", order_id=order.id, status=order.status.value)
        return replace(order)

    def find(self, order_id: str) -> Optional[Order]:
        """Return a copy of the order, or None."""
        order = self._orders.get(order_id)
        return replace(order) if order is not None else None

    def get(self, order_id: str) -> Order:
        """Return a copy of the order; raise NotFound if absent."""
        order = self.find(order_id)
        if order is None:
            raise NotFound("Order not found.", order_id=order_id)
        return order

    def list(self) -> List[Order]:
        """All orders, oldest first."""
        return [replace(order) for order in self._orders.values()]

    @asynccontextmanager
    async def locked(self, order_id: str) -> AsyncIterator[Order]:
        """
        Hold the order's lock and yield the live record for mutation.

        Raises:
            NotFound: If no such order exists
        """
        lock = self._locks.get(order_id)
        if lock is None:
            raise NotFound("Order not found.", order_id=order_id)

        async with lock:
            order = self._orders[order_id]
            before = order.status
            yield order
            if order.status != before:
                metrics.record_order_transition(order.status.value)
