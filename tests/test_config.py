"""Tests for Settings."""

from decimal import Decimal
from pathlib import Path

from kixstore.config import Settings
from kixstore.pricing import DEFAULT_POLICY


class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.database_url == "sqlite+aiosqlite:///:memory:"
        assert settings.local_storage_dir is None
        assert settings.pricing == DEFAULT_POLICY

    def test_from_env(self):
        settings = Settings.from_env(
            {
                "KIX_DATABASE_URL": "sqlite+aiosqlite:///kix.db",
                "KIX_LOCAL_STORAGE_DIR": "/tmp/kix",
                "KIX_LOG_LEVEL": "debug",
                "KIX_CURRENCY": "EUR",
                "KIX_FREE_SHIPPING_THRESHOLD": "75",
                "KIX_TAX_RATE": "0.1",
                "OTHER": "ignored",
            }
        )

        assert settings.database_url == "sqlite+aiosqlite:///kix.db"
        assert settings.local_storage_dir == Path("/tmp/kix")
        assert settings.log_level == "debug"
        assert settings.currency == "eur"
        assert settings.pricing.free_shipping_threshold == Decimal("75")
        assert settings.pricing.flat_shipping_fee == Decimal("10")
        assert settings.pricing.tax_rate == Decimal("0.1")

    def test_blank_values_keep_defaults(self):
        assert Settings.from_env({"KIX_DATABASE_URL": "  ", "KIX_TAX_RATE": ""}) == Settings()

    def test_with_returns_copy(self):
        base = Settings()

        changed = base.with_log_level("warning")

        assert base.log_level == "info"
        assert changed.log_level == "warning"
