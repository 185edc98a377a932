"""
Unit tests for environment-driven settings.
"""
import pytest
from pydantic import ValidationError

from merchant_demo.config import Settings


class TestSettings:
    """Test suite for Settings."""

    @pytest.mark.unit
    def test_defaults_without_secrets(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "DOMAIN", "PORT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.stripe_secret_key is None
        assert settings.webhook_verification_enabled is False
        assert settings.port == 3000
        assert settings.domain == "http://localhost:3000"
        assert settings.strict_release is False

    @pytest.mark.unit
    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_from_env")
        monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_from_env")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.delenv("DOMAIN", raising=False)

        settings = Settings(_env_file=None)

        assert settings.stripe_secret_key == "sk_test_from_env"
        assert settings.is_test_mode
        assert settings.webhook_verification_enabled
        assert settings.domain == "http://localhost:8080"

    @pytest.mark.unit
    def test_domain_trailing_slash_stripped(self) -> None:
        settings = Settings(_env_file=None, domain="https://shop.example.com/")
        assert settings.domain == "https://shop.example.com"

    @pytest.mark.unit
    def test_blank_secrets_are_unset(self) -> None:
        settings = Settings(_env_file=None, stripe_secret_key="", stripe_webhook_secret="  ")

        assert settings.stripe_secret_key is None
        assert settings.stripe_webhook_secret is None

    @pytest.mark.unit
    def test_invalid_secret_key_format(self) -> None:
        with pytest.raises(ValidationError, match="sk_test_"):
            Settings(_env_file=None, stripe_secret_key="pk_test_wrong_kind")

    @pytest.mark.unit
    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    @pytest.mark.unit
    def test_currency_normalized(self) -> None:
        assert Settings(_env_file=None, product_currency="EUR").product_currency == "eur"

    @pytest.mark.unit
    def test_env_files_layered(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test .env.local overrides .env."""
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.delenv("APP_ENV", raising=False)
        env = tmp_path / ".env"
        local = tmp_path / ".env.local"
        env.write_text("PORT=4000\nAPP_ENV=staging\n")
        local.write_text("PORT=5000\n")

        settings = Settings(_env_file=(str(env), str(local)))

        assert settings.port == 5000
        assert settings.app_env == "staging"
