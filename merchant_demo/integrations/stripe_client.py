"""
Stripe API client with error classification and a circuit breaker.

Implements:
- Hosted Checkout Session creation for the catalog product
- Refunds against a PaymentIntent
- Circuit breaker pattern
- Blocking SDK calls moved off the event loop

No local retries: a failed call surfaces to the caller as StripeError.
"""
import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Optional

import stripe
import structlog

from merchant_demo.config import Settings, get_settings
from merchant_demo.domain import ConfigurationMissing, ExternalApiError, Product
from merchant_demo.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

MISSING_KEY_MESSAGE = "Stripe secret key not configured."


class StripeErrorType(Enum):
    """Classification of Stripe errors."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    RATE_LIMIT = "rate_limit"


class StripeError(ExternalApiError):
    """A Stripe call failed."""

    def __init__(
        self,
        message: str,
        error_type: StripeErrorType,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, original_error=original_error)
        self.error_type = error_type


@dataclass(frozen=True)
class CheckoutSession:
    """The parts of a Stripe Checkout Session the storefront needs."""

    id: str
    url: str


@dataclass(frozen=True)
class Refund:
    """Summary of a created Stripe Refund."""

    id: str
    status: Optional[str]
    amount: Optional[int]
    currency: Optional[str]
    payment_intent: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "amount": self.amount,
            "currency": self.currency,
            "payment_intent": self.payment_intent,
        }


def classify_error(error: stripe.StripeError) -> StripeErrorType:
    """Classify a Stripe SDK error."""
    if isinstance(error, stripe.RateLimitError):
        return StripeErrorType.RATE_LIMIT
    elif isinstance(error, (stripe.APIConnectionError, stripe.APIError)):
        return StripeErrorType.TRANSIENT
    elif isinstance(
        error,
        (stripe.CardError, stripe.InvalidRequestError, stripe.AuthenticationError),
    ):
        return StripeErrorType.PERMANENT
    else:
        return StripeErrorType.TRANSIENT


class CircuitBreaker:
    """
    Circuit breaker for Stripe API calls.

    Stops sending requests for `timeout` seconds once `failure_threshold`
    consecutive calls have failed. Permanent errors (bad request, declined
    card, bad key) mean Stripe answered, so they do not count.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: int = 60,
        success_threshold: int = 2,
    ):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.success_threshold = success_threshold
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = "closed"  # closed, open, half_open

    def _set_state(self, state: str) -> None:
        self.state = state
        metrics.set_circuit_breaker_state(state)

    async def call(self, func: Callable[[], Any]) -> Any:
        """
        Run a blocking function in the default executor with circuit breaker
        protection.

        Raises:
            StripeError: If the circuit is open
        """
        if self.state == "open":
            if (
                self.last_failure_time
                and time.time() - self.last_failure_time > self.timeout
            ):
                self._set_state("half_open")
                self.success_count = 0
                logger.info("circuit_breaker_half_open")
            else:
                raise StripeError(
                    "Circuit breaker is open",
                    StripeErrorType.TRANSIENT,
                )

        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, func)
        except stripe.StripeError as e:
            if classify_error(e) != StripeErrorType.PERMANENT:
                self.on_failure()
            raise
        except Exception:
            self.on_failure()
            raise
        self.on_success()
        return result

    def on_success(self) -> None:
        """Record successful call."""
        self.failure_count = 0
        if self.state == "half_open":
            self.success_count += 1
            if self.success_count >= self.success_threshold:
                self._set_state("closed")
                logger.info("circuit_breaker_closed")

    def on_failure(self) -> None:
        """Record failed call."""
        self.failure_count += 1
        self.last_failure_time = time.time()
        if self.failure_count >= self.failure_threshold:
            self._set_state("open")
            logger.warning(
                "circuit_breaker_opened",
                failure_count=self.failure_count,
            )


class StripeClient:
    """
    Thin wrapper around the Stripe SDK.

    Every call checks that a secret key is configured, runs the blocking SDK
    call through the circuit breaker, records metrics, and converts SDK
    exceptions to StripeError.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        if self.settings.stripe_secret_key:
            stripe.api_key = self.settings.stripe_secret_key
        stripe.api_version = self.settings.stripe_api_version
        self.circuit_breaker = CircuitBreaker()

        logger.info(
            "stripe_client_initialized",
            api_version=self.settings.stripe_api_version,
            configured=self.is_configured,
            test_mode=self.settings.is_test_mode,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.stripe_secret_key)

    def _require_key(self) -> None:
        if not self.is_configured:
            logger.error("stripe_secret_key_missing")
            raise ConfigurationMissing(MISSING_KEY_MESSAGE)

    async def _call(self, operation: str, func: Callable[[], Any]) -> Any:
        self._require_key()
        start_time = time.time()
        try:
            result = await self.circuit_breaker.call(func)
        except stripe.StripeError as e:
            error_type = classify_error(e)
            metrics.record_stripe_api_call(operation, "error", time.time() - start_time)
            metrics.record_stripe_api_error(error_type.value)
            logger.error(
                "stripe_api_error",
                operation=operation,
                error_type=error_type.value,
                error_code=getattr(e, "code", None),
                error_message=str(e),
            )
            raise StripeError(str(e), error_type, original_error=e) from e

        metrics.record_stripe_api_call(operation, "success", time.time() - start_time)
        return result

    async def create_checkout_session(
        self,
        order_id: str,
        product: Product,
        success_url: str,
        cancel_url: str,
        email: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a hosted Checkout Session for one unit of `product`.

        The order id is attached to both the session and the PaymentIntent
        metadata so either event family can be correlated back to the order.

        Raises:
            ConfigurationMissing: If no secret key is configured
            StripeError: If the Stripe call fails
        """
        logger.info("creating_checkout_session", order_id=order_id)

        params: Dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "metadata": {
                "orderId": order_id,
                "productName": product.name,
                "buyerEmail": email or "",
            },
            "payment_intent_data": {
                "metadata": {"orderId": order_id, "productName": product.name},
            },
            "line_items": [
                {
                    "price_data": {
                        "currency": product.currency,
                        "product_data": {
                            "name": product.name,
                            "description": product.description,
                        },
                        "unit_amount": product.amount,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        if email:
            params["customer_email"] = email
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        session = await self._call(
            "create_checkout_session", partial(stripe.checkout.Session.create, **params)
        )

        logger.info("checkout_session_created", order_id=order_id, session_id=session.id)
        return CheckoutSession(id=session.id, url=session.url)

    async def create_refund(
        self,
        payment_intent_id: str,
        reason: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Refund:
        """
        Create a full refund for a PaymentIntent.

        Raises:
            ConfigurationMissing: If no secret key is configured
            StripeError: If the Stripe call fails
        """
        logger.info("creating_refund", payment_intent_id=payment_intent_id)

        kwargs: Dict[str, Any] = {"payment_intent": payment_intent_id}
        if reason:
            kwargs["reason"] = reason
        if idempotency_key:
            kwargs["idempotency_key"] = idempotency_key

        refund = await self._call("create_refund", partial(stripe.Refund.create, **kwargs))

        logger.info("refund_created", refund_id=refund.id, status=refund.status)
        return Refund(
            id=refund.id,
            status=getattr(refund, "status", None),
            amount=getattr(refund, "amount", None),
            currency=getattr(refund, "currency", None),
            payment_intent=getattr(refund, "payment_intent", None),
        )
