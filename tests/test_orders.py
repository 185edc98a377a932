"""
Unit tests for the order state machine.
"""
import pytest

from merchant_demo.domain import ALLOWED_TRANSITIONS, InvalidState, Order, OrderStatus, can_transition


def new_order() -> Order:
    return Order.create(
        order_id="order_1",
        session_id="cs_test_1",
        amount=9900,
        currency="usd",
        product_name="Test Headphones",
    )


class TestOrderLifecycle:
    """Test suite for Order transitions."""

    @pytest.mark.unit
    def test_new_order_is_pending(self) -> None:
        """Test a created order starts PENDING with no processor ids."""
        order = new_order()

        assert order.status == OrderStatus.PENDING
        assert order.payment_intent_id is None
        assert order.refund_id is None
        assert order.release_timestamp is None
        assert order.created_at == order.updated_at

    @pytest.mark.unit
    def test_blank_email_is_stored_as_none(self) -> None:
        order = Order.create("o", "cs", 100, "usd", "Thing", email="")
        assert order.email is None

    @pytest.mark.unit
    def test_mark_paid_records_payment_intent(self) -> None:
        """Test PENDING → PAID sets the payment intent and session ids."""
        order = new_order()
        order.mark_paid("pi_test_1", session_id="cs_test_2")

        assert order.status == OrderStatus.PAID
        assert order.payment_intent_id == "pi_test_1"
        assert order.session_id == "cs_test_2"
        assert order.updated_at >= order.created_at

    @pytest.mark.unit
    def test_refund_requires_paid(self) -> None:
        """Test REFUNDED is unreachable from PENDING."""
        order = new_order()

        with pytest.raises(InvalidState, match="pending to refunded"):
            order.mark_refunded("re_test_1")

        assert order.status == OrderStatus.PENDING
        assert order.refund_id is None

    @pytest.mark.unit
    def test_paid_to_refunded(self) -> None:
        order = new_order()
        order.mark_paid("pi_test_1")
        order.mark_refunded("re_test_1")

        assert order.status == OrderStatus.REFUNDED
        assert order.refund_id == "re_test_1"

    @pytest.mark.unit
    def test_failed_is_terminal(self) -> None:
        """Test FAILED accepts no further transitions."""
        order = new_order()
        order.mark_failed("pi_test_failed")

        assert order.status == OrderStatus.FAILED
        assert order.is_terminal
        with pytest.raises(InvalidState):
            order.mark_paid("pi_test_1")

    @pytest.mark.unit
    def test_failed_only_from_pending(self) -> None:
        order = new_order()
        order.mark_paid("pi_test_1")

        with pytest.raises(InvalidState):
            order.mark_failed()

    @pytest.mark.unit
    def test_release_sets_timestamp(self) -> None:
        order = new_order()
        order.mark_paid("pi_test_1")
        order.mark_released()

        assert order.status == OrderStatus.RELEASED
        assert order.release_timestamp == order.updated_at

    @pytest.mark.unit
    def test_forced_release_bypasses_table(self) -> None:
        """Test the operator override path for release."""
        order = new_order()

        with pytest.raises(InvalidState):
            order.mark_released()

        order.mark_released(force=True)
        assert order.status == OrderStatus.RELEASED

    @pytest.mark.unit
    @pytest.mark.parametrize("terminal", [OrderStatus.RELEASED, OrderStatus.REFUNDED, OrderStatus.FAILED])
    def test_terminal_states_have_no_exits(self, terminal: OrderStatus) -> None:
        assert ALLOWED_TRANSITIONS[terminal] == frozenset()
        assert not any(can_transition(terminal, target) for target in OrderStatus)

    @pytest.mark.unit
    def test_transition_table_covers_every_status(self) -> None:
        assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)
