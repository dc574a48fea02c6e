from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from app.core.billing import SubscriptionStatus
from app.core.errors import ProviderError
from app.dependencies.billing import get_stripe_gateway
from app.main import app
from conftest import make_token


class FakeGateway:
    def __init__(self):
        self.checkouts = []
        self.portals = []
        self.error = None

    def create_checkout_session(self, user_id, email):
        if self.error:
            raise self.error
        self.checkouts.append((user_id, email))
        return "https://checkout.stripe.test/session"

    def create_portal_session(self, customer_id):
        if self.error:
            raise self.error
        self.portals.append(customer_id)
        return "https://billing.stripe.test/portal"


@pytest.fixture
def gateway(client):
    fake = FakeGateway()
    app.dependency_overrides[get_stripe_gateway] = lambda: fake
    return fake


def _auth(user_id="user-1", **kwargs):
    return {"Authorization": f"Bearer {make_token(user_id=user_id, **kwargs)}"}


def test_checkout_requires_authorization(client, gateway):
    response = client.post("/billing/checkout-session")

    assert response.status_code == 401
    assert response.json()["detail"] == "Missing authorization header"
    assert gateway.checkouts == []


def test_checkout_rejects_forged_token(client, gateway):
    response = client.post("/billing/checkout-session", headers=_auth(secret="not-the-secret"))

    assert response.status_code == 401
    assert gateway.checkouts == []


def test_checkout_stamps_authenticated_user(client, gateway):
    response = client.post("/billing/checkout-session", headers=_auth("user-2", email="two@example.com"))

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.test/session"}
    assert gateway.checkouts == [("user-2", "two@example.com")]


def test_checkout_provider_error_is_bad_gateway(client, gateway):
    gateway.error = ProviderError("card declined")

    response = client.post("/billing/checkout-session", headers=_auth())

    assert response.status_code == 502


def test_portal_without_customer_is_bad_request(client, gateway):
    response = client.post("/billing/portal-session", headers=_auth())

    assert response.status_code == 400
    assert "No Stripe customer ID found" in response.json()["detail"]
    assert gateway.portals == []


def test_portal_uses_stored_customer(client, gateway, store):
    store.records["user-1"] = replace(store.records["user-1"], external_customer_id="cus_42")

    response = client.post("/billing/portal-session", headers=_auth())

    assert response.status_code == 200
    assert response.json() == {"url": "https://billing.stripe.test/portal"}
    assert gateway.portals == ["cus_42"]


def test_status_reports_entitlement(client, store):
    until = datetime.now(timezone.utc) + timedelta(days=5)
    store.records["user-1"] = replace(
        store.records["user-1"],
        is_premium=True,
        subscription_status=SubscriptionStatus.CANCELED,
        premium_until=until,
        next_billing_date=until,
    )

    response = client.get("/billing/status", headers=_auth())

    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == "user-1"
    assert body["subscription_status"] == "canceled"
    assert body["is_premium"] is True
    assert body["has_premium_access"] is True


def test_status_for_unknown_user_is_not_found(client):
    response = client.get("/billing/status", headers=_auth("ghost"))

    assert response.status_code == 404


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
