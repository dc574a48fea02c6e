from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.core.billing import SubscriptionStatus, normalize_status


def resolve_premium_access(record: Any, now: datetime | None = None) -> bool:
    """
    Pure entitlement resolver.
    Active subscribers always have access. A canceled subscription keeps access
    until premium_until; records without premium_until fall back to the is_premium flag.
    """
    if not bool(getattr(record, "is_premium", False)):
        return False

    status = normalize_status(getattr(record, "subscription_status", None))
    if status != SubscriptionStatus.CANCELED:
        return True

    premium_until = getattr(record, "premium_until", None)
    if not isinstance(premium_until, datetime):
        return True

    if premium_until.tzinfo is None:
        premium_until = premium_until.replace(tzinfo=timezone.utc)

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)

    return current < premium_until
