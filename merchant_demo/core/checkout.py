"""
Checkout session initiation.

Flow:
1. Generate a fresh order id
2. Ask Stripe for a hosted Checkout Session carrying that id as metadata
3. Only after Stripe succeeds, record a PENDING order in the ledger
"""
import uuid
from dataclasses import dataclass
from typing import Optional

import structlog

from merchant_demo.config import Settings, get_settings
from merchant_demo.core.ledger import OrderLedger
from merchant_demo.domain import ExternalApiError, Order, Product
from merchant_demo.integrations.stripe_client import StripeClient
from merchant_demo.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    session_id: str
    url: str


class CheckoutService:
    """Creates hosted checkout sessions and their pending orders."""

    def __init__(
        self,
        ledger: OrderLedger,
        stripe_client: StripeClient,
        settings: Optional[Settings] = None,
        product: Optional[Product] = None,
    ) -> None:
        self.ledger = ledger
        self.stripe_client = stripe_client
        self.settings = settings or get_settings()
        self.product = product or Product.from_settings(self.settings)

    def success_url(self, order_id: str) -> str:
        # {CHECKOUT_SESSION_ID} is substituted by Stripe on redirect
        return (
            f"{self.settings.domain}/success.html"
            f"?orderId={order_id}&session_id={{CHECKOUT_SESSION_ID}}"
        )

    def cancel_url(self, order_id: str) -> str:
        return f"{self.settings.domain}/cancel.html?orderId={order_id}"

    async def create_session(self, email: Optional[str] = None) -> CheckoutResult:
        """
        Start a checkout for one unit of the catalog product.

        Raises:
            ConfigurationMissing: If the Stripe secret key is not set
            ExternalApiError: If Stripe rejects or fails the request
        """
        order_id = str(uuid.uuid4())
        email = email or None

        try:
            session = await self.stripe_client.create_checkout_session(
                order_id=order_id,
                product=self.product,
                success_url=self.success_url(order_id),
                cancel_url=self.cancel_url(order_id),
                email=email,
                idempotency_key=f"checkout:{order_id}",
            )
        except ExternalApiError as e:
            e.order_id = order_id
            metrics.record_checkout_session("failed")
            logger.error("checkout_session_failed", order_id=order_id, error=str(e))
            raise
        except Exception:
            metrics.record_checkout_session("failed")
            raise

        order = Order.create(
            order_id=order_id,
            session_id=session.id,
            amount=self.product.amount,
            currency=self.product.currency,
            product_name=self.product.name,
            email=email,
        )
        self.ledger.add(order)
        metrics.record_checkout_session("created")

        logger.info("checkout_created", order_id=order_id, session_id=session.id)
        return CheckoutResult(order_id=order_id, session_id=session.id, url=session.url)
