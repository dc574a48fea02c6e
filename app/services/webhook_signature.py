from __future__ import annotations

import json
import logging
from typing import Any

import stripe

from app.core.billing import PaymentEvent
from app.core.errors import ConfigurationError, InvalidSignature, MalformedEvent, MissingSignature
from app.core.settings import DEFAULT_WEBHOOK_TOLERANCE_SECONDS

logger = logging.getLogger(__name__)


def verify_stripe_event(
    raw_body: bytes,
    signature: str | None,
    secret: str | None,
    tolerance: int = DEFAULT_WEBHOOK_TOLERANCE_SECONDS,
) -> PaymentEvent:
    """
    Authenticate a raw webhook body and build the PaymentEvent it carries.

    The body is only decoded as JSON after the signature header has been
    checked against the secret (constant-time HMAC-SHA256, timestamp within
    `tolerance` seconds).
    """
    if not signature or not signature.strip():
        raise MissingSignature("No signature")

    if not secret:
        raise ConfigurationError("Stripe webhook secret not configured")

    try:
        text = raw_body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidSignature("Webhook body is not valid UTF-8") from exc

    try:
        stripe.WebhookSignature.verify_header(text, signature.strip(), secret, tolerance)
    except stripe.SignatureVerificationError as exc:
        logger.warning("webhook_signature_rejected reason=%s", exc)
        raise InvalidSignature(f"Invalid webhook signature: {exc}") from exc

    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise MalformedEvent("Invalid JSON payload") from exc

    return parse_payment_event(payload)


def parse_payment_event(payload: Any) -> PaymentEvent:
    if not isinstance(payload, dict):
        raise MalformedEvent("Event payload must be an object")

    event_type = str(payload.get("type") or "").strip()
    if not event_type:
        raise MalformedEvent("Event type is required")

    data = payload.get("data") or {}
    obj = data.get("object") if isinstance(data, dict) else None
    if not isinstance(obj, dict):
        obj = {}

    metadata = obj.get("metadata") or {}
    user_id = metadata.get("user_id") if isinstance(metadata, dict) else None

    return PaymentEvent(
        event_id=str(payload.get("id") or ""),
        type=event_type,
        external_customer_id=_clean_id(obj.get("customer")),
        correlation_user_id=_clean_id(user_id),
        payload=payload,
    )


def _clean_id(value: Any) -> str | None:
    # Expanded objects carry the id under "id".
    if isinstance(value, dict):
        value = value.get("id")
    if value is None:
        return None
    text = str(value).strip()
    return text or None
