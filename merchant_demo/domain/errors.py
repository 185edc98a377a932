"""Order error hierarchy shared by the service layer and the API."""
from typing import Optional


class OrderError(Exception):
    """Base exception for order and checkout operations."""

    def __init__(self, message: str, order_id: Optional[str] = None):
        self.order_id = order_id
        super().__init__(message)


class ConfigurationMissing(OrderError):
    """A required secret or setting is absent."""


class ExternalApiError(OrderError):
    """The payment processor call failed."""

    def __init__(
        self,
        message: str,
        order_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, order_id=order_id)
        self.original_error = original_error


class NotFound(OrderError):
    """No order with the given identifier exists."""


class InvalidState(OrderError):
    """The order's current status does not allow the requested action."""


class VerificationFailure(OrderError):
    """Webhook payload failed signature verification or could not be parsed."""
