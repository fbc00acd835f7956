from __future__ import annotations

"""
Media CMS — HTTP Rate Limiting (SlowAPI)
========================================

Highlights
----------
- **User/IP aware** keying: per-user once auth sets `request.state.user_id`,
  else per-client-IP (X-Forwarded-For / X-Real-IP / client.host).
- **Exemptions**: health/docs paths and the test bypass.
- **Backends**: Redis via `RATELIMIT_STORAGE_URI` or in-memory fallback.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
DEFAULT_RATE_LIMIT           default: "100/minute"
RATELIMIT_STORAGE_URI        default: "" (falls back to "memory://")
RATE_LIMIT_SKIP_PATHS        default: "/healthz,/readyz,/docs,/openapi.json"
RATE_LIMIT_TEST_BYPASS       default: "" (truthy to bypass in tests/CI)

Usage
-----
    @router.post("/upload/sign-video")
    @rate_limit("30/minute")
    async def sign_video(request: Request, ...): ...
"""

import os
from typing import Callable, List, Optional

from loguru import logger
from starlette.requests import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from app.core.config import settings

_TRUTHY = {"1", "true", "yes", "on"}

DEFAULT_LIMIT = (settings.DEFAULT_RATE_LIMIT or "100/minute").strip()
STORAGE_URI = settings.ratelimit_storage or "memory://"
SKIP_PATHS: List[str] = [
    p.strip()
    for p in os.getenv("RATE_LIMIT_SKIP_PATHS", "/healthz,/readyz,/docs,/openapi.json").split(",")
    if p.strip()
]


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def _client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff and xff.split(",")[0].strip():
        return xff.split(",")[0].strip()
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return get_remote_address(request) or "unknown"


def get_user_rate_limit_key(request: Request) -> str:
    """`user:<id>` when authenticated, else `ip:<addr>`."""
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{_client_ip(request)}"


def should_exempt_request(request: Optional[Request]) -> bool:
    # Env is re-read per request so tests can toggle without re-importing
    if os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() not in _TRUTHY:
        return True
    if os.getenv("RATE_LIMIT_TEST_BYPASS", "").strip().lower() in _TRUTHY:
        return True
    if request is None:
        return False
    path = request.url.path
    return any(path == p or path.startswith(p.rstrip("/") + "/") for p in SKIP_PATHS)


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance
# ──────────────────────────────────────────────────────────────
def _default_limits() -> List[str]:
    return [chunk.strip() for chunk in DEFAULT_LIMIT.split(",") if chunk.strip()]


limiter = Limiter(
    key_func=get_user_rate_limit_key,
    default_limits=_default_limits(),
    headers_enabled=False,
    storage_uri=STORAGE_URI,
)


def _exempt_when(request: Optional[Request] = None) -> bool:
    """SlowAPI may call this with or without the request."""
    if request is None:
        ctx = getattr(limiter, "_request_context", None)
        request = ctx.get(None) if ctx is not None else None
    return should_exempt_request(request)


# ──────────────────────────────────────────────────────────────
# 🎛 Decorators
# ──────────────────────────────────────────────────────────────
def rate_limit(*limits: str) -> Callable:
    """
    Apply per-route limits (route must accept `request: Request`).

    @rate_limit("10/minute")
    @rate_limit("5/second", "100/minute")
    """
    selected = list(limits) if limits else _default_limits()

    def _apply(fn: Callable) -> Callable:
        for value in reversed(selected):
            fn = limiter.limit(value, exempt_when=_exempt_when)(fn)
        return fn

    return _apply


def rate_limit_exempt() -> Callable:
    """Explicitly exempt a route from limiting."""
    return limiter.exempt


# ──────────────────────────────────────────────────────────────
# 🔧 Installer
# ──────────────────────────────────────────────────────────────
def install_rate_limiter(app) -> None:
    """Attach SlowAPI state, its 429 handler and middleware."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    if os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() not in _TRUTHY:
        logger.info("RateLimiter disabled by env; middleware not installed")
        return
    app.add_middleware(SlowAPIMiddleware)
    logger.info("✅ SlowAPI ready | default={} | storage={}", _default_limits(), STORAGE_URI)


__all__ = [
    "limiter",
    "rate_limit",
    "rate_limit_exempt",
    "install_rate_limiter",
    "get_user_rate_limit_key",
    "should_exempt_request",
]
