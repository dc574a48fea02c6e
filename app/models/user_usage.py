from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import func

from app.db import Base


class UserUsage(Base):
    __tablename__ = "user_usage"

    # Identity rows are provisioned elsewhere; billing only updates them.
    id = Column(String(64), primary_key=True)

    stripe_customer_id = Column(String(255), nullable=True, unique=True, index=True)
    is_premium = Column(Boolean, nullable=False, default=False, server_default="false")
    subscription_status = Column(String(32), nullable=False, default="none", server_default="none")
    next_billing_date = Column(DateTime(timezone=True), nullable=True)
    premium_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now()
    )

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )
