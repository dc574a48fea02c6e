from __future__ import annotations

from app.core.billing import (
    EVENT_CHECKOUT_COMPLETED,
    EVENT_SUBSCRIPTION_DELETED,
    Activate,
    Cancel,
    Ignore,
    PaymentEvent,
    Transition,
)


def classify_event(event: PaymentEvent) -> Transition:
    """
    Map a verified event onto the transition it implies.
    Event types we do not act on resolve to Ignore so new provider events never fail delivery.
    """
    if event.type == EVENT_CHECKOUT_COMPLETED:
        return Activate(
            correlation_user_id=event.correlation_user_id,
            external_customer_id=event.external_customer_id,
        )

    if event.type == EVENT_SUBSCRIPTION_DELETED:
        return Cancel(external_customer_id=event.external_customer_id)

    return Ignore(event_type=event.type)
