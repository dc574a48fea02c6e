from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


class SubscriptionStatus(str, Enum):
    NONE = "none"
    ACTIVE = "active"
    CANCELED = "canceled"


EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_SUBSCRIPTION_DELETED = "customer.subscription.deleted"

# Column names on the subscription table, keyed by record field.
FIELD_COLUMNS: dict[str, str] = {
    "user_id": "id",
    "external_customer_id": "stripe_customer_id",
    "is_premium": "is_premium",
    "subscription_status": "subscription_status",
    "next_billing_date": "next_billing_date",
    "premium_until": "premium_until",
}

UPDATABLE_FIELDS = frozenset(FIELD_COLUMNS) - {"user_id"}


@dataclass
class SubscriptionRecord:
    user_id: str
    external_customer_id: str | None = None
    is_premium: bool = False
    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    next_billing_date: datetime | None = None
    premium_until: datetime | None = None


@dataclass(frozen=True)
class PaymentEvent:
    """A provider notification whose signature has already been checked."""

    event_id: str
    type: str
    external_customer_id: str | None
    correlation_user_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Activate:
    correlation_user_id: str | None
    external_customer_id: str | None


@dataclass(frozen=True)
class Cancel:
    external_customer_id: str | None


@dataclass(frozen=True)
class Ignore:
    event_type: str = ""


Transition = Union[Activate, Cancel, Ignore]


def normalize_status(raw_status: Any) -> SubscriptionStatus:
    if isinstance(raw_status, SubscriptionStatus):
        return raw_status
    if not raw_status:
        return SubscriptionStatus.NONE
    try:
        return SubscriptionStatus(str(raw_status).strip().lower())
    except ValueError:
        return SubscriptionStatus.NONE
