"""
API routes for the storefront, order actions and Stripe webhooks.
"""
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from merchant_demo.core import CheckoutService, OrderActions, OrderLedger, WebhookReconciler
from merchant_demo.domain import (
    ConfigurationMissing,
    ExternalApiError,
    InvalidState,
    NotFound,
    Product,
    VerificationFailure,
)
from merchant_demo.monitoring.health import HealthCheck

from .dependencies import (
    get_checkout_service,
    get_health_check,
    get_ledger,
    get_order_actions,
    get_product,
    get_reconciler,
)
from .schemas import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    ErrorResponse,
    HealthCheckResponse,
    OrderResponse,
    ProductResponse,
    RefundRequest,
    RefundResponse,
    ReleaseResponse,
    WebhookResponse,
)

logger = structlog.get_logger(__name__)

storefront_router = APIRouter(tags=["storefront"])
order_router = APIRouter(prefix="/orders", tags=["orders"])
webhook_router = APIRouter(tags=["webhooks"])
monitoring_router = APIRouter(tags=["monitoring"])


@storefront_router.get(
    "/product",
    response_model=ProductResponse,
    summary="Catalog product",
)
async def get_catalog_product(product: Product = Depends(get_product)) -> Dict[str, Any]:
    return {
        "name": product.name,
        "description": product.description,
        "amount": product.amount,
        "currency": product.currency,
    }


@storefront_router.post(
    "/create-checkout-session",
    response_model=CreateCheckoutSessionResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Start a hosted checkout",
    description="Create a Stripe Checkout Session and a pending order",
)
async def create_checkout_session(
    request: Optional[CreateCheckoutSessionRequest] = None,
    checkout_service: CheckoutService = Depends(get_checkout_service),
) -> CreateCheckoutSessionResponse:
    """Create a checkout session. No order is recorded if Stripe fails."""
    email = request.email if request else None

    try:
        result = await checkout_service.create_session(email=email)

    except ConfigurationMissing as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    except ExternalApiError as e:
        logger.error("api_checkout_error", order_id=e.order_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to create checkout session.",
        )

    return CreateCheckoutSessionResponse(
        url=result.url, order_id=result.order_id, session_id=result.session_id
    )


@order_router.get(
    "",
    response_model=List[OrderResponse],
    summary="List orders",
    description="All orders currently held in memory, oldest first",
)
async def list_orders(ledger: OrderLedger = Depends(get_ledger)) -> List[OrderResponse]:
    orders = ledger.list()
    logger.debug(
        "api_list_orders",
        orders=[{"order_id": order.id, "status": order.status.value} for order in orders],
    )
    return [OrderResponse.from_order(order) for order in orders]


@order_router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get one order",
)
async def get_order(order_id: str, ledger: OrderLedger = Depends(get_ledger)) -> OrderResponse:
    try:
        return OrderResponse.from_order(ledger.get(order_id))
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@order_router.post(
    "/{order_id}/release",
    response_model=ReleaseResponse,
    responses={404: {"model": ErrorResponse}, 400: {"model": ErrorResponse}},
    summary="Release funds",
)
async def release_order(
    order_id: str,
    order_actions: OrderActions = Depends(get_order_actions),
) -> ReleaseResponse:
    try:
        order = await order_actions.release(order_id)

    except NotFound as e:
        logger.warning("api_release_not_found", order_id=order_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    except InvalidState as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ReleaseResponse(
        message=f"Funds released for order {order_id}.",
        order=OrderResponse.from_order(order),
    )


@order_router.post(
    "/{order_id}/refund",
    response_model=RefundResponse,
    responses={
        404: {"model": ErrorResponse},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Refund an order",
)
async def refund_order(
    order_id: str,
    request: Optional[RefundRequest] = None,
    order_actions: OrderActions = Depends(get_order_actions),
) -> RefundResponse:
    try:
        outcome = await order_actions.refund(order_id, reason=request.reason if request else None)

    except NotFound as e:
        logger.warning("api_refund_not_found", order_id=order_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    except InvalidState as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except ConfigurationMissing as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    except ExternalApiError as e:
        logger.error("api_refund_error", order_id=order_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to process refund for this order.",
        )

    return RefundResponse(
        message=f"Refund initiated for order {order_id}.",
        refund=outcome.refund.to_dict(),
        order=OrderResponse.from_order(outcome.order),
    )


@webhook_router.post(
    "/webhook",
    response_model=WebhookResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Stripe webhook endpoint",
    description="Verify and apply Stripe webhook events",
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    reconciler: WebhookReconciler = Depends(get_reconciler),
) -> Dict[str, Any]:
    """
    Handle a Stripe webhook delivery.

    Any payload that passes verification is acknowledged, whether or not it
    matched an order, so Stripe stops redelivering it.
    """
    body = await request.body()

    try:
        await reconciler.handle(body, stripe_signature)

    except VerificationFailure as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {e}"
        )

    except ConfigurationMissing as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return {"received": True}


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
)
async def health(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    return await health_check.check_all()


@monitoring_router.get(
    "/health/live",
    response_model=HealthCheckResponse,
    summary="Liveness probe",
)
async def liveness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
)
async def readiness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    result = await health_check.readiness()
    if result["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result)
    return result


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    include_in_schema=False,
)
async def prometheus_metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
