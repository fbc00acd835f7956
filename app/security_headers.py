from __future__ import annotations

"""
HTTP hardening helpers for the Media CMS API
============================================
- `configure_cors(app)`: strict CORS allow-list from settings
  (`FRONTEND_ORIGINS` CSV, else `BACKEND_CORS_ORIGINS`) plus an optional
  `ALLOW_ORIGINS_REGEX`
- `set_sensitive_cache(response)`: `no-store` for responses that carry
  presigned URLs or other short-lived secrets
"""

import os
from typing import Iterable, Optional

from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response

from app.core.config import settings


def configure_cors(
    app,
    *,
    allow_credentials: bool = True,
    allow_methods: Optional[Iterable[str]] = None,
    allow_headers: Optional[Iterable[str]] = None,
) -> None:
    """Install CORS based on configuration."""
    allow_methods = allow_methods or ["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]
    allow_headers = allow_headers or ["Authorization", "Content-Type", "X-Request-ID"]
    origins_regex = os.getenv("ALLOW_ORIGINS_REGEX", "").strip() or None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_origins_list,
        allow_origin_regex=origins_regex,
        allow_credentials=allow_credentials,
        allow_methods=list(allow_methods),
        allow_headers=list(allow_headers),
        expose_headers=["Location", "Retry-After", "X-Request-ID"],
        max_age=3600,
    )


def set_sensitive_cache(response: Response, *, seconds: int = 0) -> None:
    """
    Mark a response as sensitive for caching (idempotent).

    `seconds > 0` allows a short **private** cache varied on `Authorization`.
    """
    if seconds <= 0:
        response.headers["Cache-Control"] = "no-store"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return
    response.headers["Cache-Control"] = f"private, max-age={seconds}"
    response.headers["Vary"] = "Authorization"


__all__ = ["configure_cors", "set_sensitive_cache"]
