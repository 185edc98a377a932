"""
Order entity and its lifecycle.

State machine:
PENDING → PAID → RELEASED
   ↓        ↓
 FAILED   REFUNDED

Every transition goes through Order.transition_to(), which consults
ALLOWED_TRANSITIONS. RELEASED, REFUNDED and FAILED are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional

import structlog

from merchant_demo.domain.errors import InvalidState

logger = structlog.get_logger(__name__)


class OrderStatus(str, Enum):
    """Order lifecycle states."""

    PENDING = "pending"
    PAID = "paid"
    RELEASED = "released"
    REFUNDED = "refunded"
    FAILED = "failed"


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.FAILED}),
    OrderStatus.PAID: frozenset({OrderStatus.RELEASED, OrderStatus.REFUNDED}),
    OrderStatus.RELEASED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
    OrderStatus.FAILED: frozenset(),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Return True if `current → target` is in the transition table."""
    return target in ALLOWED_TRANSITIONS[current]


@dataclass
class Order:
    """
    A single storefront order.

    Descriptive fields (amount, currency, product_name, email) are fixed at
    creation. Processor identifiers and the release/refund markers are only
    set by the matching transition.
    """

    id: str
    session_id: str
    amount: int
    currency: str
    product_name: str
    email: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    payment_intent_id: Optional[str] = None
    release_timestamp: Optional[datetime] = None
    refund_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        order_id: str,
        session_id: str,
        amount: int,
        currency: str,
        product_name: str,
        email: Optional[str] = None,
    ) -> Order:
        """Build a new PENDING order."""
        now = utcnow()
        return cls(
            id=order_id,
            session_id=session_id,
            amount=amount,
            currency=currency,
            product_name=product_name,
            email=email or None,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, target: OrderStatus, force: bool = False) -> None:
        """
        Move the order to `target`.

        Raises InvalidState if the move is not in ALLOWED_TRANSITIONS, unless
        `force` is set (operator override).
        """
        if not force and not can_transition(self.status, target):
            raise InvalidState(
                f"Cannot move order from {self.status.value} to {target.value}",
                order_id=self.id,
            )

        previous = self.status
        self.status = target
        self.updated_at = utcnow()

        logger.info(
            "order_transitioned",
            order_id=self.id,
            from_status=previous.value,
            to_status=target.value,
            forced=force and not can_transition(previous, target),
        )

    def mark_paid(self, payment_intent_id: Optional[str], session_id: Optional[str] = None) -> None:
        self.transition_to(OrderStatus.PAID)
        self.payment_intent_id = payment_intent_id
        if session_id:
            self.session_id = session_id

    def mark_failed(self, payment_intent_id: Optional[str] = None) -> None:
        self.transition_to(OrderStatus.FAILED)
        if payment_intent_id:
            self.payment_intent_id = payment_intent_id

    def mark_released(self, force: bool = False) -> None:
        self.transition_to(OrderStatus.RELEASED, force=force)
        self.release_timestamp = self.updated_at

    def mark_refunded(self, refund_id: str) -> None:
        self.transition_to(OrderStatus.REFUNDED)
        self.refund_id = refund_id
