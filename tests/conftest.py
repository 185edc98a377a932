"""
Pytest configuration and fixtures.
"""
import itertools
from typing import Any, AsyncGenerator, Callable, Dict
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from factories import WEBHOOK_SECRET
from merchant_demo.api.main import create_app
from merchant_demo.config import Settings
from merchant_demo.core import CheckoutService, OrderActions, OrderLedger, WebhookReconciler
from merchant_demo.domain import Order
from merchant_demo.integrations import CheckoutSession, Refund, StripeClient


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast tests with no HTTP layer")
    config.addinivalue_line("markers", "integration: tests that drive the ASGI app")


def _settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "stripe_secret_key": "sk_test_fake_key_for_testing",
        "stripe_webhook_secret": WEBHOOK_SECRET,
        "domain": "http://shop.test",
        "app_env": "test",
        "log_level": "DEBUG",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Factory for settings with overrides."""
    return _settings


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a fake key and webhook verification enabled."""
    return _settings()


@pytest.fixture
def unverified_settings() -> Settings:
    """Settings with no webhook secret (unverified trust mode)."""
    return _settings(stripe_webhook_secret=None)


@pytest.fixture
def ledger() -> OrderLedger:
    return OrderLedger()


@pytest.fixture
def mock_stripe_client() -> AsyncMock:
    """Stripe client double returning fresh session ids and a fixed refund."""
    client = AsyncMock(spec=StripeClient)
    counter = itertools.count(1)

    async def create_session(order_id: str, **kwargs: Any) -> CheckoutSession:
        n = next(counter)
        return CheckoutSession(
            id=f"cs_test_{n}", url=f"https://checkout.stripe.test/pay/cs_test_{n}"
        )

    client.create_checkout_session.side_effect = create_session
    client.create_refund.return_value = Refund(
        id="re_test_123",
        status="succeeded",
        amount=9900,
        currency="usd",
        payment_intent="pi_test_123",
    )
    return client


@pytest.fixture
def checkout_service(
    ledger: OrderLedger, mock_stripe_client: AsyncMock, test_settings: Settings
) -> CheckoutService:
    return CheckoutService(ledger, mock_stripe_client, test_settings)


@pytest.fixture
def order_actions(
    ledger: OrderLedger, mock_stripe_client: AsyncMock, test_settings: Settings
) -> OrderActions:
    return OrderActions(ledger, mock_stripe_client, test_settings)


@pytest.fixture
def reconciler(ledger: OrderLedger, test_settings: Settings) -> WebhookReconciler:
    return WebhookReconciler(ledger, test_settings)


@pytest.fixture
def pending_order(ledger: OrderLedger) -> Order:
    """A PENDING order already in the ledger."""
    return ledger.add(
        Order.create(
            order_id="order_123",
            session_id="cs_test_abc",
            amount=9900,
            currency="usd",
            product_name="Test Headphones",
            email="buyer@example.com",
        )
    )


@pytest_asyncio.fixture
async def paid_order(ledger: OrderLedger, pending_order: Order) -> Order:
    """The pending order after a completed payment."""
    async with ledger.locked(pending_order.id) as order:
        order.mark_paid("pi_test_123", session_id="cs_test_abc")
    return ledger.get(pending_order.id)


@pytest.fixture
def app(test_settings: Settings, mock_stripe_client: AsyncMock, ledger: OrderLedger) -> FastAPI:
    return create_app(test_settings, stripe_client=mock_stripe_client, ledger=ledger)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, Any]:
    """Create test HTTP client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
