# app/core/security.py
from __future__ import annotations

"""
Media CMS — request authentication
==================================
- `get_current_user`: FastAPI dependency resolving the caller from a bearer
  **access** token (signature, expiry, issuer/audience via `app.core.jwt`)
- `create_access_token`: signs a token with the shared secret (tests and
  `scripts/mint_token.py`)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt

from app.core.config import settings
from app.core.exceptions import InvalidTokenException
from app.core.jwt import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: UUID
    email: Optional[str] = None


# ───────────────────────────────────────────────
# 🪪 JWT — Access Token Generation
# ───────────────────────────────────────────────
def create_access_token(
    user_id: UUID,
    expires_delta: Optional[timedelta] = None,
    *,
    email: Optional[str] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "nbf": now,
        "jti": str(uuid4()),
        "token_type": "access",
    }
    if email:
        payload["email"] = email
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE

    return jwt.encode(payload, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


# ───────────────────────────────────────────────
# 🆔 Helpers — Extract User ID from Payload
# ───────────────────────────────────────────────
def get_user_id_from_payload(payload: Dict[str, Any]) -> UUID:
    """Extract and validate `sub` as a UUID; raise 401 if malformed/missing."""
    user_id = payload.get("sub") or payload.get("user_id")
    try:
        return UUID(str(user_id))
    except (TypeError, ValueError):
        raise InvalidTokenException(detail="Invalid token: malformed user_id")


# ───────────────────────────────────────────────
# 👤 Dependency — Get Current User
# ───────────────────────────────────────────────
async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise InvalidTokenException(detail="Missing bearer token.")

    payload = decode_access_token(credentials.credentials)
    user = CurrentUser(id=get_user_id_from_payload(payload), email=payload.get("email"))

    request.state.user_id = user.id
    logger.debug("Authenticated user %s", user.id)
    return user


__all__ = ["CurrentUser", "create_access_token", "get_current_user", "get_user_id_from_payload"]
