"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Stripe Configuration
    stripe_secret_key: Optional[str] = Field(
        default=None, description="Stripe secret API key (sk_test_...)"
    )
    stripe_webhook_secret: Optional[str] = Field(
        default=None,
        description="Stripe webhook signing secret (unset = unverified trust mode)",
    )
    stripe_api_version: str = Field(default="2024-06-20", description="Stripe API version")
    webhook_tolerance_seconds: int = Field(
        default=300, description="Max age of a signed webhook timestamp (seconds)"
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Listen host")
    port: int = Field(default=3000, description="Listen port")
    domain: Optional[str] = Field(
        default=None, description="Public base URL used for checkout redirects"
    )
    allowed_origins: str = Field(default="*", description="CORS allowed origins (comma-separated)")

    # Application Configuration
    app_name: str = Field(default="merchant-demo", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # Order handling
    strict_release: bool = Field(
        default=False,
        description="Only allow releasing funds for orders that are PAID",
    )

    # Catalog
    product_name: str = Field(default="Test Headphones", description="Product display name")
    product_description: str = Field(
        default="High-fidelity over-ear headphones for integration testing.",
        description="Product description shown on the hosted checkout page",
    )
    product_amount: int = Field(default=9900, gt=0, description="Unit price in minor units")
    product_currency: str = Field(default="usd", description="ISO currency code")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("stripe_secret_key", "stripe_webhook_secret")
    @classmethod
    def blank_as_unset(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings from .env files as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("stripe_secret_key")
    @classmethod
    def validate_stripe_key(cls, v: Optional[str]) -> Optional[str]:
        """Validate Stripe secret key format when one is provided."""
        if v is None:
            return v
        if not v.startswith("sk_test_") and not v.startswith("sk_live_"):
            raise ValueError(
                "Invalid Stripe secret key format. Must start with 'sk_test_' or 'sk_live_'"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator("product_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Stripe expects lowercase three-letter currency codes."""
        if len(v) != 3:
            raise ValueError("Currency must be 3-letter code")
        return v.lower()

    @model_validator(mode="after")
    def default_domain(self) -> "Settings":
        """Derive the public domain from the port when not configured."""
        if not self.domain:
            self.domain = f"http://localhost:{self.port}"
        self.domain = self.domain.rstrip("/")
        return self

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def is_test_mode(self) -> bool:
        """Check if using Stripe test mode."""
        return bool(self.stripe_secret_key and self.stripe_secret_key.startswith("sk_test_"))

    @property
    def webhook_verification_enabled(self) -> bool:
        """Whether inbound webhooks are signature-checked."""
        return self.stripe_webhook_secret is not None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
