"""
Health checks for liveness/readiness probes.

Checks:
- Stripe secret key configured
- Webhook verification mode
- Ledger availability
"""
from typing import Any, Dict, Optional

import structlog

from merchant_demo.config import Settings, get_settings
from merchant_demo.core.ledger import OrderLedger

logger = structlog.get_logger(__name__)


class HealthCheck:
    """Reports whether the service can take checkout traffic."""

    def __init__(self, ledger: OrderLedger, settings: Optional[Settings] = None) -> None:
        self.ledger = ledger
        self.settings = settings or get_settings()

    def check_stripe(self) -> Dict[str, Any]:
        if not self.settings.stripe_secret_key:
            return {
                "status": "unhealthy",
                "service": "stripe",
                "message": "STRIPE_SECRET_KEY is not set",
            }
        return {
            "status": "healthy",
            "service": "stripe",
            "message": "Stripe secret key configured",
            "test_mode": self.settings.is_test_mode,
        }

    def check_webhooks(self) -> Dict[str, Any]:
        if self.settings.webhook_verification_enabled:
            return {"status": "healthy", "service": "webhooks", "mode": "verified"}

        # Unverified mode is refused at request time in production
        return {
            "status": "unhealthy" if self.settings.is_production else "healthy",
            "service": "webhooks",
            "mode": "unverified",
        }

    def check_ledger(self) -> Dict[str, Any]:
        return {"status": "healthy", "service": "ledger", "orders": len(self.ledger)}

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Dict[str, Any]: Overall health status
        """
        checks = {
            "stripe": self.check_stripe(),
            "webhooks": self.check_webhooks(),
            "ledger": self.check_ledger(),
        }
        all_healthy = all(check["status"] == "healthy" for check in checks.values())
        if not all_healthy:
            logger.warning(
                "health_check_degraded",
                failing=[name for name, check in checks.items() if check["status"] != "healthy"],
            )

        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }

    async def liveness(self) -> Dict[str, Any]:
        """Liveness probe. Does not look at configuration."""
        return {
            "status": "alive",
            "message": "Application is running",
        }

    async def readiness(self) -> Dict[str, Any]:
        """Readiness probe: ready only when all checks pass."""
        return await self.check_all()
