from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

DEFAULT_SITE_URL = "http://localhost:3000"
DEFAULT_BILLING_PERIOD_DAYS = 30
DEFAULT_WEBHOOK_TOLERANCE_SECONDS = 300
DEFAULT_SUBSCRIPTION_TABLE = "user_usage"


@dataclass(frozen=True)
class BillingSettings:
    stripe_secret_key: str | None
    stripe_webhook_secret: str | None
    stripe_price_id: str | None
    webhook_tolerance_seconds: int
    site_url: str
    billing_period_days: int
    supabase_url: str | None
    supabase_service_key: str | None
    supabase_jwt_secret: str | None
    database_url: str | None
    subscription_table: str

    @property
    def billing_period(self) -> timedelta:
        return timedelta(days=self.billing_period_days)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def _optional_env(*names: str) -> str | None:
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def load_settings() -> BillingSettings:
    return BillingSettings(
        stripe_secret_key=_optional_env("STRIPE_SECRET_KEY"),
        stripe_webhook_secret=_optional_env("STRIPE_WEBHOOK_SECRET"),
        stripe_price_id=_optional_env("STRIPE_PRICE_ID"),
        webhook_tolerance_seconds=_int_env(
            "STRIPE_WEBHOOK_TOLERANCE_SECONDS", DEFAULT_WEBHOOK_TOLERANCE_SECONDS
        ),
        site_url=_optional_env("SITE_URL") or DEFAULT_SITE_URL,
        billing_period_days=_int_env("BILLING_PERIOD_DAYS", DEFAULT_BILLING_PERIOD_DAYS),
        supabase_url=_optional_env("APP_SUPABASE_URL", "SUPABASE_URL"),
        supabase_service_key=_optional_env("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_KEY"),
        supabase_jwt_secret=_optional_env("SUPABASE_JWT_SECRET"),
        database_url=_optional_env("DATABASE_URL"),
        subscription_table=_optional_env("SUBSCRIPTION_TABLE") or DEFAULT_SUBSCRIPTION_TABLE,
    )


@lru_cache(maxsize=1)
def get_settings() -> BillingSettings:
    """
    Process-wide settings, read from the environment on first use.
    Tests call `get_settings.cache_clear()` after changing env vars.
    """
    return load_settings()
