from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from app.core.billing import (
    Activate,
    Cancel,
    Ignore,
    SubscriptionStatus,
    Transition,
)
from app.core.errors import CorrelationMissing, RecordNotFound
from app.core.settings import DEFAULT_BILLING_PERIOD_DAYS
from app.services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)

ACTION_ACTIVATED = "activated"
ACTION_CANCELED = "canceled"
ACTION_IGNORED = "ignored"
ACTION_SKIPPED = "skipped"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReconciliationResult:
    action: str
    user_id: str | None = None


class ReconciliationEngine:
    """
    Applies one classified transition to the subscription store.

    Holds no state between calls. Every write replaces field values, so a
    redelivered event leaves the record as the first delivery did. Store
    errors propagate so the webhook answers with a server error and the
    provider redelivers.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        billing_period: timedelta = timedelta(days=DEFAULT_BILLING_PERIOD_DAYS),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.billing_period = billing_period
        self.clock = clock

    def apply(self, transition: Transition) -> ReconciliationResult:
        if isinstance(transition, Activate):
            return self._activate(transition)
        if isinstance(transition, Cancel):
            return self._cancel(transition)
        if isinstance(transition, Ignore):
            logger.info("billing_event_ignored type=%s", transition.event_type)
            return ReconciliationResult(action=ACTION_IGNORED)
        raise TypeError(f"Unsupported transition: {transition!r}")

    def _activate(self, transition: Activate) -> ReconciliationResult:
        user_id = transition.correlation_user_id
        if not user_id:
            logger.error(
                "billing_activation_without_user customer_id=%s",
                transition.external_customer_id,
            )
            raise CorrelationMissing("Checkout completed without metadata.user_id")

        logger.info("Processing checkout for user: %s", user_id)

        billing_date = self.clock() + self.billing_period
        fields = {
            "is_premium": True,
            "subscription_status": SubscriptionStatus.ACTIVE,
            "next_billing_date": billing_date,
            "premium_until": billing_date,
        }
        # A stored customer id is never cleared by an event that lacks one.
        if transition.external_customer_id:
            fields["external_customer_id"] = transition.external_customer_id
        self.store.update_by_user_id(user_id, fields)
        logger.info(
            "billing_subscription_activated user_id=%s customer_id=%s next_billing_date=%s",
            user_id,
            transition.external_customer_id,
            billing_date.isoformat(),
        )
        return ReconciliationResult(action=ACTION_ACTIVATED, user_id=user_id)

    def _cancel(self, transition: Cancel) -> ReconciliationResult:
        customer_id = transition.external_customer_id
        if not customer_id:
            logger.warning("billing_cancellation_without_customer")
            return ReconciliationResult(action=ACTION_SKIPPED)

        user_id = self.store.find_user_id_by_customer_id(customer_id)
        if not user_id:
            logger.info("billing_cancellation_unmatched customer_id=%s", customer_id)
            return ReconciliationResult(action=ACTION_SKIPPED)

        # is_premium stays as-is; entitlement lapses through premium_until.
        try:
            self.store.update_by_user_id(
                user_id,
                {"subscription_status": SubscriptionStatus.CANCELED},
            )
        except RecordNotFound:
            logger.info("billing_cancellation_record_gone user_id=%s", user_id)
            return ReconciliationResult(action=ACTION_SKIPPED)
        logger.info("billing_subscription_canceled user_id=%s customer_id=%s", user_id, customer_id)
        return ReconciliationResult(action=ACTION_CANCELED, user_id=user_id)
