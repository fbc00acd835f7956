# app/middleware/request_id.py
from __future__ import annotations

"""
# Media CMS — Request ID Middleware (pure ASGI)

- Reuses a client-supplied `X-Request-ID` / `X-Correlation-ID` when it is a
  valid UUIDv4; otherwise generates one.
- Stores it on `request.state.request_id` (read by the problem+json handlers).
- Echoes it on the response and binds it into the **loguru** context for the
  lifetime of the request.

    app.add_middleware(RequestIDMiddleware)
"""

import os
import uuid
from typing import Optional

from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER_NAME = os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID")
TRUST_CLIENT_IDS = os.getenv("REQUEST_ID_TRUST_CLIENT_IDS", "true").lower() == "true"
MAX_ID_LENGTH = 64


def _valid_uuid4(value: Optional[str]) -> Optional[str]:
    candidate = (value or "").strip()
    if not candidate or len(candidate) > MAX_ID_LENGTH:
        return None
    try:
        parsed = uuid.UUID(candidate)
    except ValueError:
        return None
    return str(parsed) if parsed.version == 4 else None


class RequestIDMiddleware:
    """Per-request correlation id, exposed to handlers, logs and the client."""

    def __init__(self, app: ASGIApp, header_name: str = HEADER_NAME) -> None:
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        req_id = self.choose_request_id(Headers(scope=scope))
        scope.setdefault("state", {})["request_id"] = req_id
        name_bytes = self.header_name.lower().encode("latin-1")

        async def _send(message: Message) -> None:
            if message.get("type") == "http.response.start":
                raw = [(k, v) for (k, v) in message.get("headers", []) if k.lower() != name_bytes]
                raw.append((name_bytes, req_id.encode("latin-1")))
                message["headers"] = raw
            await send(message)

        with logger.contextualize(request_id=req_id):
            await self.app(scope, receive, _send)

    def choose_request_id(self, headers: Headers) -> str:
        if TRUST_CLIENT_IDS:
            incoming = _valid_uuid4(headers.get(self.header_name) or headers.get("X-Correlation-ID"))
            if incoming:
                return incoming
        return str(uuid.uuid4())


def get_request_id(request) -> str:
    """Current request id from `request.state` ("" when absent)."""
    return getattr(getattr(request, "state", None), "request_id", "") or ""


__all__ = ["RequestIDMiddleware", "get_request_id"]
