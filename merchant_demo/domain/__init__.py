"""
Domain layer - orders, their lifecycle, and the product catalog.

No I/O here: the ledger, the Stripe client and the API build on top.
"""
from .catalog import Product
from .errors import (
    ConfigurationMissing,
    ExternalApiError,
    InvalidState,
    NotFound,
    OrderError,
    VerificationFailure,
)
from .orders import ALLOWED_TRANSITIONS, Order, OrderStatus, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ConfigurationMissing",
    "ExternalApiError",
    "InvalidState",
    "NotFound",
    "Order",
    "OrderError",
    "OrderStatus",
    "Product",
    "VerificationFailure",
    "can_transition",
]
