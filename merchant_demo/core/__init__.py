"""Order lifecycle services: ledger, checkout, webhook reconciliation, actions."""
from .actions import OrderActions, RefundOutcome
from .checkout import CheckoutResult, CheckoutService
from .ledger import OrderLedger
from .reconciler import EventSource, Outcome, WebhookEvent, WebhookReconciler

__all__ = [
    "CheckoutResult",
    "CheckoutService",
    "EventSource",
    "OrderActions",
    "OrderLedger",
    "Outcome",
    "RefundOutcome",
    "WebhookEvent",
    "WebhookReconciler",
]
