"""
Unit tests for the in-memory order ledger.
"""
import asyncio

import pytest

from merchant_demo.core import OrderLedger
from merchant_demo.domain import NotFound, Order, OrderStatus


def make_order(order_id: str) -> Order:
    return Order.create(order_id, f"cs_{order_id}", 9900, "usd", "Test Headphones")


class TestOrderLedger:
    """Test suite for OrderLedger."""

    @pytest.mark.unit
    def test_add_and_get(self, ledger: OrderLedger) -> None:
        ledger.add(make_order("a"))

        order = ledger.get("a")
        assert order.id == "a"
        assert len(ledger) == 1
        assert "a" in ledger

    @pytest.mark.unit
    def test_duplicate_id_rejected(self, ledger: OrderLedger) -> None:
        ledger.add(make_order("a"))

        with pytest.raises(ValueError, match="already exists"):
            ledger.add(make_order("a"))

    @pytest.mark.unit
    def test_get_unknown_raises_not_found(self, ledger: OrderLedger) -> None:
        with pytest.raises(NotFound):
            ledger.get("missing")
        assert ledger.find("missing") is None

    @pytest.mark.unit
    def test_list_preserves_insertion_order(self, ledger: OrderLedger) -> None:
        for order_id in ("c", "a", "b"):
            ledger.add(make_order(order_id))

        assert [order.id for order in ledger.list()] == ["c", "a", "b"]

    @pytest.mark.unit
    def test_reads_return_copies(self, ledger: OrderLedger) -> None:
        """Test that callers cannot mutate ledger state through a read."""
        ledger.add(make_order("a"))

        snapshot = ledger.get("a")
        snapshot.status = OrderStatus.REFUNDED
        ledger.list()[0].status = OrderStatus.FAILED

        assert ledger.get("a").status == OrderStatus.PENDING

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_locked_mutates_live_record(self, ledger: OrderLedger) -> None:
        ledger.add(make_order("a"))

        async with ledger.locked("a") as order:
            order.mark_paid("pi_test_1")

        assert ledger.get("a").status == OrderStatus.PAID

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_locked_unknown_raises_not_found(self, ledger: OrderLedger) -> None:
        with pytest.raises(NotFound):
            async with ledger.locked("missing"):
                pass

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_locked_serializes_writers(self, ledger: OrderLedger) -> None:
        """Test two writers on the same order never overlap."""
        ledger.add(make_order("a"))
        active = 0
        max_active = 0

        async def writer() -> None:
            nonlocal active, max_active
            async with ledger.locked("a"):
                active += 1
                max_active = max(max_active, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(writer(), writer(), writer())

        assert max_active == 1
