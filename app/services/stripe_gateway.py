from __future__ import annotations

import logging

import stripe

from app.core.errors import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)


class StripeGateway:
    """Outbound session creation. Every call passes its own api_key; nothing is set on the stripe module."""

    def __init__(self, api_key: str | None, price_id: str | None, site_url: str):
        self.api_key = api_key
        self.price_id = price_id
        self.site_url = site_url.rstrip("/") if site_url else site_url

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("STRIPE_SECRET_KEY not configured")
        return self.api_key

    def create_checkout_session(self, user_id: str, email: str | None) -> str:
        api_key = self._require_key()
        if not self.price_id:
            raise ConfigurationError("STRIPE_PRICE_ID not configured")

        params = {
            "mode": "subscription",
            "billing_address_collection": "required",
            "phone_number_collection": {"enabled": True},
            "line_items": [{"price": self.price_id, "quantity": 1}],
            "success_url": f"{self.site_url}?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": self.site_url,
            # Read back from checkout.session.completed to find the user.
            "metadata": {"user_id": user_id},
        }
        if email:
            params["customer_email"] = email

        try:
            session = stripe.checkout.Session.create(api_key=api_key, **params)
        except stripe.StripeError as exc:
            logger.error("Error creating checkout session: user_id=%s error=%s", user_id, exc)
            raise ProviderError(str(exc.user_message or exc)) from exc

        return session.url

    def create_portal_session(self, customer_id: str) -> str:
        api_key = self._require_key()
        try:
            session = stripe.billing_portal.Session.create(
                api_key=api_key,
                customer=customer_id,
                return_url=self.site_url,
            )
        except stripe.StripeError as exc:
            logger.error("Error creating portal session: customer_id=%s error=%s", customer_id, exc)
            raise ProviderError(str(exc.user_message or exc)) from exc

        return session.url
