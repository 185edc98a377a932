"""External integrations for checkout and refunds."""
from .stripe_client import (
    CheckoutSession,
    Refund,
    StripeClient,
    StripeError,
    StripeErrorType,
)

__all__ = ["CheckoutSession", "Refund", "StripeClient", "StripeError", "StripeErrorType"]
