"""
Pydantic schemas for API request/response models.

Responses use camelCase keys, matching what the storefront pages read.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from merchant_demo.domain import Order, OrderStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateCheckoutSessionRequest(BaseModel):
    """Request schema for starting a checkout."""

    email: Optional[str] = Field(default=None, description="Optional buyer email")

    model_config = {
        "json_schema_extra": {"examples": [{"email": "buyer@example.com"}, {}]}
    }


class CreateCheckoutSessionResponse(CamelModel):
    """Hosted checkout redirect plus the new order's id."""

    url: str = Field(..., description="Stripe-hosted checkout page URL")
    order_id: str = Field(..., description="Order identifier")
    session_id: str = Field(..., description="Stripe Checkout Session ID")


class OrderResponse(CamelModel):
    """An order as exposed to the storefront."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str = Field(..., description="Order ID")
    session_id: Optional[str] = Field(default=None, description="Stripe Checkout Session ID")
    payment_intent_id: Optional[str] = Field(default=None, description="Stripe PaymentIntent ID")
    status: OrderStatus = Field(..., description="Order status")
    amount: int = Field(..., description="Amount in minor units")
    currency: str = Field(..., description="Currency code")
    product_name: str = Field(..., description="Product name")
    email: Optional[str] = Field(default=None, description="Buyer email")
    created_at: datetime = Field(..., description="Creation timestamp (ISO 8601)")
    updated_at: datetime = Field(..., description="Last update timestamp (ISO 8601)")
    release_timestamp: Optional[datetime] = Field(default=None, description="When funds were released")
    refund_id: Optional[str] = Field(default=None, description="Stripe Refund ID")

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls.model_validate(order)


class ReleaseResponse(BaseModel):
    """Response schema for releasing funds."""

    message: str
    order: OrderResponse


class RefundRequest(BaseModel):
    """Optional refund parameters."""

    reason: Optional[str] = Field(
        default=None, description="Refund reason (requested_by_customer, duplicate, fraudulent)"
    )


class RefundResponse(BaseModel):
    """Response schema for refund."""

    message: str
    refund: Dict[str, Any] = Field(..., description="Stripe refund summary")
    order: OrderResponse


class ProductResponse(BaseModel):
    """The storefront's product."""

    name: str
    description: str
    amount: int = Field(..., description="Unit price in minor units")
    currency: str


class WebhookResponse(BaseModel):
    """Acknowledgement returned to Stripe."""

    received: bool = True


class ErrorResponse(BaseModel):
    error: str


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual checks")
    message: Optional[str] = Field(default=None, description="Status message")
