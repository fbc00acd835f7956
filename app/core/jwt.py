# app/core/jwt.py
from __future__ import annotations

"""
Media CMS — JWT helpers (verification)
======================================
- `decode_token` with optional issuer/audience enforcement
- Thin `decode_access_token()` wrapper (access-only)

Notes
-----
- Tokens are issued by the identity service; this API only verifies them.
  `app.core.security.create_access_token` exists for tests and local tooling.
- No `leeway` is passed to python-jose (unsupported); standard `exp`/`nbf`/`iat` checks apply.
"""

from typing import Any, Dict, Optional, Sequence
import logging

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import InvalidTokenException

logger = logging.getLogger(__name__)


def decode_token(token: str, *, expected_types: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """Decode and validate a JWT.

    Security checks
    ---------------
    1) Verify signature and standard claims (exp/nbf/iat)
    2) Enforce issuer/audience when configured
    3) Require a subject and, optionally, `token_type` membership

    Raises
    ------
    InvalidTokenException
      - 401 for invalid/expired tokens or type mismatch
    """
    issuer = settings.JWT_ISSUER or None
    audience = settings.JWT_AUDIENCE or None

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": bool(audience)},
            audience=audience,
            issuer=issuer,
        )
    except ExpiredSignatureError:
        logger.info("Token expired.")
        raise InvalidTokenException(detail="Token has expired.")
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise InvalidTokenException(detail="Invalid token.")

    if not (payload.get("sub") or payload.get("user_id")):
        logger.warning("Missing user_id/sub in token payload.")
        raise InvalidTokenException(detail="Token missing user ID.")

    if expected_types is not None:
        token_type = payload.get("token_type")
        if token_type not in set(expected_types):
            logger.warning("Token type mismatch: got %r, expected one of %s", token_type, list(expected_types))
            raise InvalidTokenException(detail="Invalid token type.")

    return payload


def decode_access_token(token: str) -> Dict[str, Any]:
    """Enforces `token_type == 'access'`."""
    return decode_token(token, expected_types=["access"])


__all__ = ["decode_token", "decode_access_token"]
