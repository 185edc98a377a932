"""FastAPI dependencies resolving the services wired onto app.state."""
from fastapi import Request

from merchant_demo.core import CheckoutService, OrderActions, OrderLedger, WebhookReconciler
from merchant_demo.domain import Product
from merchant_demo.monitoring.health import HealthCheck


def get_ledger(request: Request) -> OrderLedger:
    return request.app.state.ledger


def get_checkout_service(request: Request) -> CheckoutService:
    return request.app.state.checkout_service


def get_order_actions(request: Request) -> OrderActions:
    return request.app.state.order_actions


def get_reconciler(request: Request) -> WebhookReconciler:
    return request.app.state.reconciler


def get_health_check(request: Request) -> HealthCheck:
    return request.app.state.health_check


def get_product(request: Request) -> Product:
    return request.app.state.checkout_service.product
