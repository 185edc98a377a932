"""
Operator actions on paid orders: release funds and refund.

Both run while holding the order's ledger lock, so a release and a refund
racing on the same order are applied one after the other.
"""
from dataclasses import dataclass, replace
from typing import Optional

import structlog

from merchant_demo.config import Settings, get_settings
from merchant_demo.core.ledger import OrderLedger
from merchant_demo.domain import ExternalApiError, InvalidState, Order, OrderStatus
from merchant_demo.integrations.stripe_client import Refund, StripeClient

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RefundOutcome:
    order: Order
    refund: Refund


class OrderActions:
    """Release and refund handlers."""

    def __init__(
        self,
        ledger: OrderLedger,
        stripe_client: StripeClient,
        settings: Optional[Settings] = None,
    ) -> None:
        self.ledger = ledger
        self.stripe_client = stripe_client
        self.settings = settings or get_settings()

    async def release(self, order_id: str) -> Order:
        """
        Mark an order's funds as released.

        Unless `strict_release` is set, this is a manual override that works
        from any status; releasing an order that is not PAID logs a warning.

        Raises:
            NotFound: Unknown order id
            InvalidState: Order not PAID and strict_release is enabled
        """
        async with self.ledger.locked(order_id) as order:
            previous = order.status
            if previous != OrderStatus.PAID:
                if self.settings.strict_release:
                    logger.warning(
                        "order_release_rejected",
                        order_id=order_id,
                        status=previous.value,
                    )
                    raise InvalidState(
                        f"Order is {previous.value}; only paid orders can be released.",
                        order_id=order_id,
                    )
                logger.warning(
                    "order_release_override",
                    order_id=order_id,
                    status=previous.value,
                )

            order.mark_released(force=not self.settings.strict_release)
            snapshot = replace(order)

        logger.info("order_released", order_id=order_id, previous_status=previous.value)
        return snapshot

    async def refund(self, order_id: str, reason: Optional[str] = None) -> RefundOutcome:
        """
        Refund a paid order in full.

        The order is only changed after Stripe confirms the refund.

        Raises:
            NotFound: Unknown order id
            InvalidState: No captured payment yet, or order not PAID
                (already refunded, released or failed)
            ConfigurationMissing: Stripe secret key not set
            ExternalApiError: Stripe rejected or failed the refund
        """
        async with self.ledger.locked(order_id) as order:
            if not order.payment_intent_id:
                logger.warning("order_refund_rejected", order_id=order_id, reason="not_paid")
                raise InvalidState(
                    "Order has no captured payment to refund yet.", order_id=order_id
                )

            if order.status != OrderStatus.PAID:
                logger.warning(
                    "order_refund_rejected",
                    order_id=order_id,
                    reason="invalid_status",
                    status=order.status.value,
                )
                raise InvalidState(
                    f"Order is {order.status.value}; only paid orders can be refunded.",
                    order_id=order_id,
                )

            try:
                refund = await self.stripe_client.create_refund(
                    payment_intent_id=order.payment_intent_id,
                    reason=reason,
                )
            except ExternalApiError as e:
                e.order_id = order_id
                logger.error("order_refund_failed", order_id=order_id, error=str(e))
                raise

            order.mark_refunded(refund.id)
            snapshot = replace(order)

        logger.info("order_refunded", order_id=order_id, refund_id=refund.id)
        return RefundOutcome(order=snapshot, refund=refund)
