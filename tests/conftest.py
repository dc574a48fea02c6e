import hashlib
import hmac
import json
import time
from dataclasses import replace
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core.billing import FIELD_COLUMNS, SubscriptionRecord
from app.core.errors import RecordNotFound, StoreWriteFailure
from app.core.settings import BillingSettings, get_settings
from app.dependencies.billing import get_reconciliation_engine, get_subscription_store
from app.main import app
from app.services.reconciliation import ReconciliationEngine
from app.services.subscription_store import SubscriptionStore

WEBHOOK_SECRET = "whsec_test_secret"
JWT_SECRET = "jwt-test-secret"
FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeSubscriptionStore(SubscriptionStore):
    """In-memory store that records every call."""

    def __init__(self, records=None):
        self.records = {record.user_id: record for record in (records or [])}
        self.lookups = []
        self.writes = []
        self.fail_writes = False

    def find_user_id_by_customer_id(self, external_customer_id):
        self.lookups.append(external_customer_id)
        for record in self.records.values():
            if record.external_customer_id == external_customer_id:
                return record.user_id
        return None

    def update_by_user_id(self, user_id, fields):
        unknown = set(fields) - set(FIELD_COLUMNS)
        assert not unknown, unknown
        self.writes.append((user_id, dict(fields)))
        if self.fail_writes:
            raise StoreWriteFailure("Database update failed")
        if user_id not in self.records:
            raise RecordNotFound(user_id)
        self.records[user_id] = replace(self.records[user_id], **fields)

    def get_by_user_id(self, user_id):
        return self.records.get(user_id)


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def make_event(event_type, obj=None, event_id="evt_test_1"):
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {"object": obj or {}},
        }
    )


def checkout_completed(user_id="user-1", customer="cus_123", event_id="evt_checkout"):
    obj = {"id": "cs_test_1", "object": "checkout.session", "customer": customer}
    if user_id is not None:
        obj["metadata"] = {"user_id": user_id}
    return make_event("checkout.session.completed", obj, event_id=event_id)


def subscription_deleted(customer="cus_123", event_id="evt_deleted"):
    obj = {"id": "sub_1", "object": "subscription", "customer": customer}
    return make_event("customer.subscription.deleted", obj, event_id=event_id)


def make_token(user_id="user-1", email="user@example.com", secret=JWT_SECRET):
    return jwt.encode(
        {"sub": user_id, "email": email, "aud": "authenticated", "role": "authenticated"},
        secret,
        algorithm="HS256",
    )


@pytest.fixture
def settings():
    return BillingSettings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_price_id="price_123",
        webhook_tolerance_seconds=300,
        site_url="http://localhost:3000",
        billing_period_days=30,
        supabase_url=None,
        supabase_service_key=None,
        supabase_jwt_secret=JWT_SECRET,
        database_url=None,
        subscription_table="user_usage",
    )


@pytest.fixture
def store():
    return FakeSubscriptionStore(
        [
            SubscriptionRecord(user_id="user-1"),
            SubscriptionRecord(user_id="user-2"),
        ]
    )


@pytest.fixture
def client(settings, store):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_subscription_store] = lambda: store
    app.dependency_overrides[get_reconciliation_engine] = lambda: ReconciliationEngine(
        store=store,
        billing_period=settings.billing_period,
        clock=lambda: FIXED_NOW,
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
