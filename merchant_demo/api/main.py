"""
Main FastAPI application.

Storefront checkout API with:
- CORS configuration
- Error handling ({"error": ...} bodies)
- Request ID tracking
- Structured logging
- Prometheus metrics
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from merchant_demo import __version__
from merchant_demo.config import Settings, get_settings
from merchant_demo.core import CheckoutService, OrderActions, OrderLedger, WebhookReconciler
from merchant_demo.integrations import StripeClient
from merchant_demo.monitoring.health import HealthCheck
from merchant_demo.monitoring.logging import setup_logging

from .routes import monitoring_router, order_router, storefront_router, webhook_router

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    stripe_client: Optional[StripeClient] = None,
    ledger: Optional[OrderLedger] = None,
) -> FastAPI:
    """
    Build the application and wire its services onto app.state.

    Args:
        settings: Settings to use (environment by default)
        stripe_client: Stripe wrapper; tests pass a mock
        ledger: Order ledger; a fresh empty one by default
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
        setup_logging(settings)
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            env=settings.app_env,
            domain=settings.domain,
            webhook_verification=settings.webhook_verification_enabled,
        )
        if not settings.stripe_secret_key:
            logger.warning(
                "stripe_secret_key_missing",
                hint="Stripe API calls will fail until STRIPE_SECRET_KEY is configured",
            )
        yield
        logger.info("application_shutdown", orders=len(app.state.ledger))

    app = FastAPI(
        title="Merchant Demo",
        description=(
            "Single-product storefront backend: Stripe hosted checkout, an in-memory "
            "order ledger and webhook reconciliation."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    ledger = ledger if ledger is not None else OrderLedger()
    stripe_client = stripe_client or StripeClient(settings)

    app.state.settings = settings
    app.state.ledger = ledger
    app.state.checkout_service = CheckoutService(ledger, stripe_client, settings)
    app.state.order_actions = OrderActions(ledger, stripe_client, settings)
    app.state.reconciler = WebhookReconciler(ledger, settings)
    app.state.health_check = HealthCheck(ledger, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next: Any) -> Response:
        """Tag each request with an ID and log its timing."""
        request_id = str(uuid.uuid4())
        start_time = time.time()

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        logger.info(
            "request_started",
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_seconds=time.time() - start_time,
            )
            return response

        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                duration_seconds=time.time() - start_time,
            )
            raise

        finally:
            structlog.contextvars.clear_contextvars()

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    app.include_router(storefront_router)
    app.include_router(order_router)
    app.include_router(webhook_router)
    app.include_router(monitoring_router)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, Any]:
        """Service information."""
        return {
            "service": settings.app_name,
            "version": __version__,
            "environment": settings.app_env,
            "test_mode": settings.is_test_mode,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


def main() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "merchant_demo.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
