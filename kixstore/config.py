"""
Storefront settings.

Immutable, fluent. Every with_* call returns a new Settings.

    settings = (
        Settings.from_env()
        .with_database_url("sqlite+aiosqlite:///kix.db")
        .with_local_storage_dir(Path("~/.kix").expanduser())
    )
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal
from pathlib import Path

from kixstore.pricing import PricingPolicy

ENV_PREFIX = "KIX_"


@dataclass(frozen=True, slots=True)
class Settings:
    """Everything the composition root needs to build a storefront."""

    # SQLite (aiosqlite) or PostgreSQL (asyncpg).
    database_url: str = "sqlite+aiosqlite:///:memory:"
    # None keeps guest state in memory only.
    local_storage_dir: Path | None = None
    log_level: str = "info"
    currency: str = "usd"
    pricing: PricingPolicy = field(default_factory=PricingPolicy)

    def with_database_url(self, url: str) -> Settings:
        return replace(self, database_url=url)

    def with_local_storage_dir(self, path: Path | None) -> Settings:
        return replace(self, local_storage_dir=path)

    def with_log_level(self, level: str) -> Settings:
        return replace(self, log_level=level)

    def with_currency(self, currency: str) -> Settings:
        return replace(self, currency=currency.lower())

    def with_pricing(self, pricing: PricingPolicy) -> Settings:
        return replace(self, pricing=pricing)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Read KIX_* variables; anything unset keeps its default.

            KIX_DATABASE_URL, KIX_LOCAL_STORAGE_DIR, KIX_LOG_LEVEL, KIX_CURRENCY,
            KIX_FREE_SHIPPING_THRESHOLD, KIX_FLAT_SHIPPING_FEE, KIX_TAX_RATE
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value and value.strip() else None

        settings = cls()
        if (url := get("DATABASE_URL")) is not None:
            settings = settings.with_database_url(url)
        if (directory := get("LOCAL_STORAGE_DIR")) is not None:
            settings = settings.with_local_storage_dir(Path(directory).expanduser())
        if (level := get("LOG_LEVEL")) is not None:
            settings = settings.with_log_level(level)
        if (currency := get("CURRENCY")) is not None:
            settings = settings.with_currency(currency)

        pricing = settings.pricing
        if (threshold := get("FREE_SHIPPING_THRESHOLD")) is not None:
            pricing = pricing.with_free_shipping_threshold(Decimal(threshold))
        if (fee := get("FLAT_SHIPPING_FEE")) is not None:
            pricing = pricing.with_flat_shipping_fee(Decimal(fee))
        if (rate := get("TAX_RATE")) is not None:
            pricing = pricing.with_tax_rate(Decimal(rate))

        return settings.with_pricing(pricing)


__all__ = ("Settings", "ENV_PREFIX")
