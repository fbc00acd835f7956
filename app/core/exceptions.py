# app/core/exceptions.py
from __future__ import annotations

"""
Media CMS — Application Exceptions
==================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets us attach structured metadata and integrate cleanly with the
problem+json shape from `app.core.exception_handlers`.

Key ideas
---------
- One base `AppException` that carries `code`, `request_id`, `details`, `extra`.
- Domain exceptions inherit from it and set sane defaults.
- Failures that must never reach a caller (search projection, scheduler
  ticks) are plain `RuntimeError` subclasses: they are only ever logged.

Usage
-----
    raise NotFoundException(resource="Episode", resource_id=episode_id)
    raise InvalidOperationException("Episode must have a video before it can be published")
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "NotFoundException",
    "InvalidOperationException",
    "ConflictException",
    "InvalidTokenException",
    "DownstreamProjectionError",
    "SchedulerTickError",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code (e.g., 400/401/404/409/500).
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : int
        Optional internal/typed error code. Defaults to `status_code`.
    request_id : str | None
        Optional request correlation id.
    details : dict | list | str | None
        Machine-readable details (e.g., ids, constraints).
    extra : dict | None
        Additional non-sensitive metadata to surface to clients.
    headers : dict | None
        Optional headers (e.g., `{"WWW-Authenticate": "Bearer"}`).
    """

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[int] = None,
        request_id: Optional[str] = None,
        details: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code: int = int(code or status_code)
        self.message: str = message
        self.request_id: Optional[str] = request_id
        self.details: Optional[Any] = details
        self.extra: Dict[str, Any] = extra or {}

    def __str__(self) -> str:
        return self.message

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self, *, fallback_request_id: Optional[str] = None) -> Dict[str, Any]:
        """Return a dict matching our problem-like JSON shape."""
        body: Dict[str, Any] = {
            "error": True,
            "message": self.message,
            "code": self.code,
            "request_id": self.request_id or fallback_request_id or "N/A",
        }
        if self.details is not None:
            body["details"] = self.details
        extra_sanitized = dict(self.extra) if self.extra else {}
        for k in ("token", "authorization", "password", "secret"):
            extra_sanitized.pop(k, None)
        body.update(extra_sanitized)
        return body


# ──────────────────────────────────────────────────────────────
# 🎬 Domain exceptions (surfaced to callers)
# ──────────────────────────────────────────────────────────────
class NotFoundException(AppException):
    """Raised when a referenced program/episode does not exist (404)."""

    def __init__(self, *, resource: str, resource_id: Any, request_id: Optional[str] = None) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            message=f"{resource} with ID {resource_id} not found",
            request_id=request_id,
            details={"resource": resource, "id": str(resource_id)},
        )
        self.resource = resource
        self.resource_id = resource_id


class InvalidOperationException(AppException):
    """Raised when a lifecycle precondition is violated (400)."""

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            message=message,
            details=details,
        )


class ConflictException(AppException):
    """Raised when a write would break a uniqueness rule (409)."""

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            message=message,
            details=details,
        )


# ──────────────────────────────────────────────────────────────
# 🔑 Auth/Token exceptions
# ──────────────────────────────────────────────────────────────
class InvalidTokenException(AppException):
    """Raised for invalid or expired tokens (401 by default)."""

    def __init__(
        self,
        *,
        detail: str = "Invalid or expired token",
        status_code: int = status.HTTP_401_UNAUTHORIZED,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(
            status_code=status_code,
            message=detail,
            headers=headers or {"WWW-Authenticate": "Bearer"},
        )


# ──────────────────────────────────────────────────────────────
# 🧯 Background-only failures (logged, never surfaced)
# ──────────────────────────────────────────────────────────────
class DownstreamProjectionError(RuntimeError):
    """The search projection failed after an authoritative write succeeded."""

    def __init__(self, operation: str, target_id: Any, cause: BaseException) -> None:
        super().__init__(f"{operation} failed for {target_id}: {cause!r}")
        self.operation = operation
        self.target_id = target_id
        self.cause = cause


class SchedulerTickError(RuntimeError):
    """A scheduled publication sweep raised; the loop keeps running."""
