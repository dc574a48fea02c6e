from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SessionUrlResponse(BaseModel):
    url: str


class BillingStatusResponse(BaseModel):
    user_id: str
    subscription_status: str
    is_premium: bool
    has_premium_access: bool
    next_billing_date: Optional[datetime] = None
    premium_until: Optional[datetime] = None
