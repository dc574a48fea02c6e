from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.billing import (
    FIELD_COLUMNS,
    UPDATABLE_FIELDS,
    SubscriptionRecord,
    normalize_status,
)
from app.core.errors import RecordNotFound, StoreReadFailure, StoreWriteFailure
from app.core.settings import DEFAULT_SUBSCRIPTION_TABLE
from app.models.user_usage import UserUsage

logger = logging.getLogger(__name__)


class SubscriptionStore(ABC):
    """
    Sole writer of subscription state.

    No application-level locking: every update is a single statement keyed by
    user id and relies on the backing store's row atomicity.
    """

    @abstractmethod
    def find_user_id_by_customer_id(self, external_customer_id: str) -> str | None:
        pass

    @abstractmethod
    def update_by_user_id(self, user_id: str, fields: dict[str, Any]) -> None:
        """
        Partial update: only supplied fields change.
        Raises RecordNotFound when no row has this user id, StoreWriteFailure on backend errors.
        """
        pass

    @abstractmethod
    def get_by_user_id(self, user_id: str) -> SubscriptionRecord | None:
        pass


def to_columns(fields: dict[str, Any], serialize_datetimes: bool = False) -> dict[str, Any]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown subscription fields: {sorted(unknown)}")

    columns: dict[str, Any] = {}
    for name, value in fields.items():
        if isinstance(value, Enum):
            value = value.value
        elif serialize_datetimes and isinstance(value, datetime):
            value = value.isoformat()
        columns[FIELD_COLUMNS[name]] = value
    return columns


def record_from_row(row: dict[str, Any]) -> SubscriptionRecord:
    return SubscriptionRecord(
        user_id=str(row["id"]),
        external_customer_id=row.get("stripe_customer_id"),
        is_premium=bool(row.get("is_premium")),
        subscription_status=normalize_status(row.get("subscription_status")),
        next_billing_date=_parse_datetime(row.get("next_billing_date")),
        premium_until=_parse_datetime(row.get("premium_until")),
    )


class SqlSubscriptionStore(SubscriptionStore):
    def __init__(self, db: Session):
        self.db = db

    def find_user_id_by_customer_id(self, external_customer_id: str) -> str | None:
        try:
            row = (
                self.db.query(UserUsage.id)
                .filter(UserUsage.stripe_customer_id == external_customer_id)
                .first()
            )
        except SQLAlchemyError as exc:
            logger.error("subscription_lookup_failed customer_id=%s error=%s", external_customer_id, exc)
            raise StoreReadFailure("Failed to look up subscription record") from exc
        return str(row[0]) if row else None

    def update_by_user_id(self, user_id: str, fields: dict[str, Any]) -> None:
        columns = to_columns(fields)
        try:
            matched = (
                self.db.query(UserUsage)
                .filter(UserUsage.id == user_id)
                .update(columns, synchronize_session=False)
            )
            if matched:
                self.db.commit()
            else:
                self.db.rollback()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("subscription_update_failed user_id=%s error=%s", user_id, exc)
            raise StoreWriteFailure("Database update failed") from exc

        if not matched:
            raise RecordNotFound(f"No subscription record for user {user_id}")

    def get_by_user_id(self, user_id: str) -> SubscriptionRecord | None:
        try:
            row = self.db.get(UserUsage, user_id)
        except SQLAlchemyError as exc:
            raise StoreReadFailure("Failed to fetch subscription record") from exc
        if row is None:
            return None
        return record_from_row(
            {
                "id": row.id,
                "stripe_customer_id": row.stripe_customer_id,
                "is_premium": row.is_premium,
                "subscription_status": row.subscription_status,
                "next_billing_date": row.next_billing_date,
                "premium_until": row.premium_until,
            }
        )


class SupabaseSubscriptionStore(SubscriptionStore):
    """Store backed by a Supabase (PostgREST) table, using the service-role client."""

    def __init__(self, client, table: str = DEFAULT_SUBSCRIPTION_TABLE):
        self.client = client
        self.table = table

    def find_user_id_by_customer_id(self, external_customer_id: str) -> str | None:
        try:
            response = (
                self.client.table(self.table)
                .select("id")
                .eq("stripe_customer_id", external_customer_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            logger.error("subscription_lookup_failed customer_id=%s error=%s", external_customer_id, exc)
            raise StoreReadFailure("Failed to look up subscription record") from exc

        rows = response.data or []
        return str(rows[0]["id"]) if rows else None

    def update_by_user_id(self, user_id: str, fields: dict[str, Any]) -> None:
        columns = to_columns(fields, serialize_datetimes=True)
        try:
            response = (
                self.client.table(self.table)
                .update(columns)
                .eq("id", user_id)
                .execute()
            )
        except Exception as exc:
            logger.error("subscription_update_failed user_id=%s error=%s", user_id, exc)
            raise StoreWriteFailure("Database update failed") from exc

        if not response.data:
            raise RecordNotFound(f"No subscription record for user {user_id}")

    def get_by_user_id(self, user_id: str) -> SubscriptionRecord | None:
        try:
            response = (
                self.client.table(self.table)
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            logger.error("subscription_fetch_failed user_id=%s error=%s", user_id, exc)
            raise StoreReadFailure("Failed to fetch user data") from exc

        rows = response.data or []
        return record_from_row(rows[0]) if rows else None


def _parse_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
