from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.settings import BillingSettings, get_settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
AUDIENCE = "authenticated"

security_optional = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    email: Optional[str] = None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
    settings: BillingSettings = Depends(get_settings),
) -> AuthenticatedUser:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    if not settings.supabase_jwt_secret:
        raise HTTPException(status_code=500, detail="Auth secret not configured")

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.supabase_jwt_secret,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
        )
    except JWTError as exc:
        logger.warning("auth_token_rejected error=%s", exc)
        raise HTTPException(status_code=401, detail="Unauthorized")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return AuthenticatedUser(id=str(user_id), email=payload.get("email"))
