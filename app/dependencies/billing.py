from __future__ import annotations

from contextlib import contextmanager

from fastapi import Depends

from app.core.settings import BillingSettings, get_settings
from app.db import get_db
from app.services.reconciliation import ReconciliationEngine
from app.services.stripe_gateway import StripeGateway
from app.services.subscription_store import (
    SqlSubscriptionStore,
    SubscriptionStore,
    SupabaseSubscriptionStore,
)
from app.services.supabase_client import get_supabase


def get_subscription_store(settings: BillingSettings = Depends(get_settings)):
    """DATABASE_URL selects the SQLAlchemy store; otherwise the Supabase table is used."""
    if settings.database_url:
        with contextmanager(get_db)() as db:
            yield SqlSubscriptionStore(db)
        return

    yield SupabaseSubscriptionStore(get_supabase(settings), table=settings.subscription_table)


def get_reconciliation_engine(
    store: SubscriptionStore = Depends(get_subscription_store),
    settings: BillingSettings = Depends(get_settings),
) -> ReconciliationEngine:
    return ReconciliationEngine(store=store, billing_period=settings.billing_period)


def get_stripe_gateway(settings: BillingSettings = Depends(get_settings)) -> StripeGateway:
    return StripeGateway(
        api_key=settings.stripe_secret_key,
        price_id=settings.stripe_price_id,
        site_url=settings.site_url,
    )
