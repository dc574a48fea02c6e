import logging

from fastapi import APIRouter, Depends, HTTPException

from app.core.errors import BillingError
from app.dependencies.auth import AuthenticatedUser, get_current_user
from app.dependencies.billing import get_stripe_gateway, get_subscription_store
from app.schemas.billing_schemas import BillingStatusResponse, SessionUrlResponse
from app.services.entitlement import resolve_premium_access
from app.services.stripe_gateway import StripeGateway
from app.services.subscription_store import SubscriptionStore

router = APIRouter(prefix="/billing", tags=["Billing"])
logger = logging.getLogger(__name__)


def _raise_http(exc: BillingError, context: str):
    logger.error("%s failed error=%s detail=%s", context, exc.__class__.__name__, exc.message)
    raise HTTPException(status_code=exc.status_code, detail=exc.message)


@router.post("/checkout-session", response_model=SessionUrlResponse)
def create_checkout_session(
    current_user: AuthenticatedUser = Depends(get_current_user),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    try:
        url = gateway.create_checkout_session(user_id=current_user.id, email=current_user.email)
    except BillingError as exc:
        _raise_http(exc, "checkout_session")

    logger.info("checkout_session_created user_id=%s", current_user.id)
    return SessionUrlResponse(url=url)


@router.post("/portal-session", response_model=SessionUrlResponse)
def create_portal_session(
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    try:
        record = store.get_by_user_id(current_user.id)
    except BillingError as exc:
        _raise_http(exc, "portal_session_lookup")

    if record is None or not record.external_customer_id:
        raise HTTPException(
            status_code=400,
            detail="No Stripe customer ID found. Please contact support.",
        )

    try:
        url = gateway.create_portal_session(record.external_customer_id)
    except BillingError as exc:
        _raise_http(exc, "portal_session")

    logger.info("portal_session_created user_id=%s", current_user.id)
    return SessionUrlResponse(url=url)


@router.get("/status", response_model=BillingStatusResponse)
def get_billing_status(
    current_user: AuthenticatedUser = Depends(get_current_user),
    store: SubscriptionStore = Depends(get_subscription_store),
):
    try:
        record = store.get_by_user_id(current_user.id)
    except BillingError as exc:
        _raise_http(exc, "billing_status")

    if record is None:
        raise HTTPException(status_code=404, detail="Subscription record not found")

    return BillingStatusResponse(
        user_id=record.user_id,
        subscription_status=record.subscription_status.value,
        is_premium=record.is_premium,
        has_premium_access=resolve_premium_access(record),
        next_billing_date=record.next_billing_date,
        premium_until=record.premium_until,
    )
