"""
Stripe webhook reconciliation.

Implements:
- Webhook signature verification (when a signing secret is configured)
- Explicit trust tagging of events (verified / unverified)
- Event type routing to ledger transitions

Delivery is at-least-once, so every handler tolerates replays and unknown
orders: once the payload is accepted the caller always acknowledges.
"""
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import stripe
import structlog

from merchant_demo.config import Settings, get_settings
from merchant_demo.core.ledger import OrderLedger
from merchant_demo.domain import ConfigurationMissing, OrderStatus, VerificationFailure
from merchant_demo.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"


class EventSource(str, Enum):
    """How far an inbound event can be trusted."""

    VERIFIED = "verified"
    UNVERIFIED = "unverified"


class Outcome(str, Enum):
    """What processing an event did to the ledger."""

    APPLIED = "applied"
    REPLAYED = "replayed"
    UNKNOWN_ORDER = "unknown_order"
    IGNORED = "ignored"


@dataclass(frozen=True)
class WebhookEvent:
    """A parsed webhook event and the trust level it arrived with."""

    id: Optional[str]
    type: str
    source: EventSource
    data_object: Dict[str, Any] = field(default_factory=dict)

    @property
    def order_id(self) -> Optional[str]:
        metadata = self.data_object.get("metadata")
        if not isinstance(metadata, dict):
            return None
        order_id = metadata.get("orderId")
        if not isinstance(order_id, str) or not order_id:
            return None
        return order_id


Handler = Callable[[WebhookEvent], Awaitable[Outcome]]


class WebhookReconciler:
    """
    Applies Stripe webhook events to the order ledger.

    Only PENDING orders are ever moved by a webhook, which makes replays of
    the same event a no-op.
    """

    def __init__(self, ledger: OrderLedger, settings: Optional[Settings] = None) -> None:
        self.ledger = ledger
        self.settings = settings or get_settings()
        self.event_handlers: Dict[str, Handler] = {}

        self.register_handler(CHECKOUT_SESSION_COMPLETED, self.handle_checkout_session_completed)
        self.register_handler(PAYMENT_INTENT_FAILED, self.handle_payment_intent_failed)

    def register_handler(self, event_type: str, handler: Handler) -> None:
        """Register a handler for a Stripe event type."""
        self.event_handlers[event_type] = handler
        logger.debug("webhook_handler_registered", event_type=event_type)

    def _verify_signature(self, payload: str, signature: Optional[str]) -> None:
        if not signature:
            metrics.record_webhook_rejection("missing_signature")
            logger.error("webhook_signature_missing")
            raise VerificationFailure("Missing Stripe-Signature header")

        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature,
                self.settings.stripe_webhook_secret,
                self.settings.webhook_tolerance_seconds,
            )
        except stripe.SignatureVerificationError as e:
            metrics.record_webhook_rejection("bad_signature")
            logger.error("webhook_signature_verification_failed", error=str(e))
            raise VerificationFailure(str(e)) from e

    def parse_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        """
        Authenticate and decode a raw webhook body.

        Args:
            payload: Raw request body, exactly as received
            signature: Stripe-Signature header value

        Returns:
            WebhookEvent: Event tagged with its trust level

        Raises:
            VerificationFailure: Bad signature or undecodable payload
            ConfigurationMissing: No signing secret in a production environment
        """
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            metrics.record_webhook_rejection("bad_encoding")
            raise VerificationFailure("Payload is not valid UTF-8") from e

        if self.settings.webhook_verification_enabled:
            self._verify_signature(text, signature)
            source = EventSource.VERIFIED
        elif self.settings.is_production:
            metrics.record_webhook_rejection("unverified_in_production")
            logger.error("webhook_secret_missing_in_production")
            raise ConfigurationMissing("Webhook secret not configured.")
        else:
            logger.warning(
                "webhook_unverified_payload_accepted",
                reason="STRIPE_WEBHOOK_SECRET not set",
            )
            source = EventSource.UNVERIFIED

        try:
            body = json.loads(text)
        except ValueError as e:
            metrics.record_webhook_rejection("bad_json")
            logger.error("webhook_payload_invalid", error=str(e))
            raise VerificationFailure(f"Invalid payload: {e}") from e

        if not isinstance(body, dict) or not isinstance(body.get("type"), str):
            metrics.record_webhook_rejection("bad_json")
            raise VerificationFailure("Invalid payload: missing event type")

        data = body.get("data")
        data_object = data.get("object") if isinstance(data, dict) else None

        return WebhookEvent(
            id=body.get("id"),
            type=body["type"],
            source=source,
            data_object=data_object if isinstance(data_object, dict) else {},
        )

    async def process_event(self, event: WebhookEvent) -> Outcome:
        """Route an accepted event to its handler. Never raises for unknown orders."""
        start_time = time.time()
        logger.info(
            "webhook_event_received",
            event_id=event.id,
            event_type=event.type,
            source=event.source.value,
        )

        handler = self.event_handlers.get(event.type)
        if handler is None:
            outcome = Outcome.IGNORED
        else:
            outcome = await handler(event)

        metrics.record_webhook_event(
            event.type, event.source.value, outcome.value, time.time() - start_time
        )
        logger.info(
            "webhook_event_processed",
            event_id=event.id,
            event_type=event.type,
            outcome=outcome.value,
        )
        return outcome

    async def handle(self, payload: bytes, signature: Optional[str]) -> Outcome:
        """Verify, parse and apply one webhook delivery."""
        event = self.parse_event(payload, signature)
        return await self.process_event(event)

    async def handle_checkout_session_completed(self, event: WebhookEvent) -> Outcome:
        """PENDING → PAID, recording the PaymentIntent and session ids."""
        session = event.data_object
        order_id = event.order_id

        if order_id is None or order_id not in self.ledger:
            logger.warning(
                "webhook_unknown_order",
                event_type=event.type,
                session_id=session.get("id"),
                order_id=order_id,
            )
            return Outcome.UNKNOWN_ORDER

        async with self.ledger.locked(order_id) as order:
            if order.status != OrderStatus.PENDING:
                logger.info(
                    "webhook_replay_ignored",
                    order_id=order_id,
                    status=order.status.value,
                    event_id=event.id,
                )
                return Outcome.REPLAYED

            order.mark_paid(session.get("payment_intent"), session_id=session.get("id"))

        logger.info(
            "order_marked_paid",
            order_id=order_id,
            payment_intent_id=session.get("payment_intent"),
        )
        return Outcome.APPLIED

    async def handle_payment_intent_failed(self, event: WebhookEvent) -> Outcome:
        """PENDING → FAILED for the order named in the PaymentIntent metadata."""
        payment_intent = event.data_object
        order_id = event.order_id

        if order_id is None or order_id not in self.ledger:
            logger.warning(
                "webhook_unknown_order",
                event_type=event.type,
                payment_intent_id=payment_intent.get("id"),
                order_id=order_id,
            )
            return Outcome.UNKNOWN_ORDER

        async with self.ledger.locked(order_id) as order:
            if order.status != OrderStatus.PENDING:
                logger.info(
                    "webhook_replay_ignored",
                    order_id=order_id,
                    status=order.status.value,
                    event_id=event.id,
                )
                return Outcome.REPLAYED

            order.mark_failed(payment_intent.get("id"))

        last_error = payment_intent.get("last_payment_error")
        error = last_error.get("message") if isinstance(last_error, dict) else None
        logger.info("order_marked_failed", order_id=order_id, error=error)
        return Outcome.APPLIED
