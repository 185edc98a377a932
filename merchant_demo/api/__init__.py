"""FastAPI application and routes."""
from .main import app, create_app
from .schemas import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    OrderResponse,
    RefundResponse,
    ReleaseResponse,
)

__all__ = [
    "app",
    "create_app",
    "CreateCheckoutSessionRequest",
    "CreateCheckoutSessionResponse",
    "OrderResponse",
    "RefundResponse",
    "ReleaseResponse",
]
