# app/utils/aws.py
from __future__ import annotations

"""
🧊 Media CMS • AWS Utilities
============================

Thin, hardened wrappers over boto3 used by:
- Episode uploads (presigned PUT for direct-to-S3 video uploads)
- Thumbnails (small server-side writes)
- Upload completion (public URL for a completed object key)
- The SQS upload-notification consumer (shared client construction)

🎯 Goals
--------
- Safe presigned PUT (SigV4), 1 hour by default
- Explicit timeouts + bounded retries
- Strict key normalization (no leading slash, no `..`)
- Pluggable creds (env / role / IRSA) with explicit override if provided
- CloudFront-aware public URL building
- Zero secret leakage in logs

Key layout
----------
    episodes/<episode-id>/<file-name>      # video uploads ("original" by default)
    thumbnails/<uuid>-<file-name>          # episode thumbnails
"""

from functools import lru_cache
from typing import Any, Dict, Optional
from uuid import UUID, uuid4
import logging
import re

import boto3
import botocore
from botocore.config import Config as BotoConfig
from pydantic import SecretStr

from app.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_VIDEO_FILE_NAME = "original"

# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class S3StorageError(RuntimeError):
    """Raised when a storage operation fails (network, auth, policy, bad key)."""


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Key and value validation
# ─────────────────────────────────────────────────────────────────────────────

# Keep keys strict: readable + safe across tools, CDNs, and logs.
_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")


def _normalize_key(key: str) -> str:
    """
    Normalize and validate S3 object keys.

    Steps
    -----
    1) Coerce to str, strip whitespace
    2) Remove leading '/'
    3) Collapse '//' runs
    4) Reject path traversal ('..') and disallowed characters

    Raises
    ------
    S3StorageError
        If key is empty or contains unsafe characters.
    """
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k:
        raise S3StorageError("Invalid storage key: empty")
    if ".." in k:
        raise S3StorageError("Invalid storage key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise S3StorageError("Invalid storage key: contains forbidden characters")
    return k


def _secret_value(v: Optional[SecretStr | str]) -> Optional[str]:
    """Return the underlying secret string without raising if not SecretStr."""
    if v is None:
        return None
    return v.get_secret_value() if isinstance(v, SecretStr) else str(v)


def episode_video_key(episode_id: UUID | str, file_name: str = DEFAULT_VIDEO_FILE_NAME) -> str:
    """Object key a client uploads an episode's video to."""
    return _normalize_key(f"episodes/{episode_id}/{file_name}")


def thumbnail_key(file_name: str) -> str:
    """Collision-free object key for an uploaded thumbnail."""
    safe_name = re.sub(r"[^A-Za-z0-9._\-]", "_", (file_name or "thumbnail").strip()) or "thumbnail"
    return _normalize_key(f"thumbnails/{uuid4()}-{safe_name}")


def boto_client_kwargs(*, endpoint_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Shared boto3 client kwargs (region, endpoint, explicit creds when set).

    If `AWS_ACCESS_KEY_ID` + `AWS_SECRET_ACCESS_KEY` are configured they are
    used explicitly; otherwise the standard AWS credential chain applies.
    """
    kwargs: Dict[str, Any] = {"region_name": settings.AWS_REGION}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url

    ak = settings.AWS_ACCESS_KEY_ID
    sk = _secret_value(settings.AWS_SECRET_ACCESS_KEY)
    st = _secret_value(settings.AWS_SESSION_TOKEN)
    if ak and sk:
        kwargs["aws_access_key_id"] = ak
        kwargs["aws_secret_access_key"] = sk
        if st:
            kwargs["aws_session_token"] = st
    return kwargs


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3 Client
# ─────────────────────────────────────────────────────────────────────────────

class S3Client:
    """
    High-level S3 wrapper with safe defaults.

    Parameters
    ----------
    bucket : str | None
        Destination bucket. Defaults to `settings.AWS_BUCKET_NAME`.
    region_name : str | None
        Region used for the client and for bucket URLs. Defaults to
        `settings.AWS_REGION`.
    endpoint_url : str | None
        Custom S3-compatible endpoint (e.g., LocalStack/MinIO). Defaults
        to `settings.AWS_S3_ENDPOINT_URL`.
    cdn_base_url : str | None
        If set, `public_url()` joins this with normalized keys.
        Defaults to `settings.cdn_base_url` (CloudFront).
    client : Any
        Pre-built boto3 client (tests inject a stub here).

    Notes
    -----
    * Retries/Timeouts:
        - Bounded retry policy (5 attempts) and short connect timeout help fail fast.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        *,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        cdn_base_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket = bucket or settings.AWS_BUCKET_NAME
        if not self.bucket:
            raise S3StorageError("AWS_BUCKET_NAME not configured")

        self.region = region_name or settings.AWS_REGION
        endpoint_cfg = endpoint_url or settings.AWS_S3_ENDPOINT_URL
        self._cdn_base = (cdn_base_url if cdn_base_url is not None else settings.cdn_base_url).rstrip("/")

        if client is not None:
            self.client = client
        else:
            cfg = BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": 5, "mode": "standard"},
                connect_timeout=3,
                read_timeout=10,
                s3={"addressing_style": "path" if endpoint_cfg else "virtual"},
            )
            kwargs = boto_client_kwargs(endpoint_url=endpoint_cfg)
            kwargs["region_name"] = self.region
            try:
                self.client = boto3.client("s3", config=cfg, **kwargs)
            except Exception as e:  # pragma: no cover
                raise S3StorageError(f"Failed to create S3 client: {e}") from e

        self._endpoint = endpoint_cfg
        self._repr = f"S3Client(bucket={self.bucket}, region={self.region}, endpoint={'yes' if endpoint_cfg else 'no'})"

    # ────────────────────────────────────────────────────────────────────────
    # 🔐 Signed URL helpers
    # ────────────────────────────────────────────────────────────────────────

    def presigned_put(
        self,
        key: str,
        *,
        content_type: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> str:
        """
        Generate a **presigned PUT** URL for direct-to-S3 uploads.

        Parameters
        ----------
        key : str
            Object key (will be normalized; no leading `/`, no `..`).
        content_type : str | None
            When given, clients **must** send the same `Content-Type` header.
        expires_in : int | None
            URL TTL in seconds (default `settings.UPLOAD_URL_TTL_SECONDS`, 1 hour).

        Raises
        ------
        S3StorageError
            On signing failure or invalid key.
        """
        k = _normalize_key(key)
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": k}
        if content_type:
            params["ContentType"] = content_type

        ttl = int(expires_in or settings.UPLOAD_URL_TTL_SECONDS)
        try:
            return self.client.generate_presigned_url(
                ClientMethod="put_object",
                Params=params,
                ExpiresIn=ttl,
                HttpMethod="PUT",
            )
        except Exception as e:
            raise S3StorageError(f"Failed to create presigned PUT: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 🚀 Direct server-side ops (small files)
    # ────────────────────────────────────────────────────────────────────────

    def put_bytes(self, key: str, data: bytes, *, content_type: str) -> None:
        """
        Upload a small payload from the server (thumbnails).

        Videos never go through here: clients upload them with a presigned PUT.
        """
        k = _normalize_key(key)
        try:
            self.client.put_object(Bucket=self.bucket, Key=k, Body=data, ContentType=content_type)
        except Exception as e:
            raise S3StorageError(f"Failed to upload object: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 🌐 Public URL helpers
    # ────────────────────────────────────────────────────────────────────────

    def public_url(self, key: str) -> str:
        """
        Playable/public URL for `key`: CloudFront when configured, else the
        bucket URL (custom endpoints use path-style `<endpoint>/<bucket>/<key>`).
        """
        k = _normalize_key(key)
        if self._cdn_base:
            return f"{self._cdn_base}/{k}"
        if self._endpoint:
            return f"{self._endpoint.rstrip('/')}/{self.bucket}/{k}"
        return f"https://{self.bucket}.s3.{self.region or 'us-east-1'}.amazonaws.com/{k}"

    # ────────────────────────────────────────────────────────────────────────
    # 🔎 Metadata helpers
    # ────────────────────────────────────────────────────────────────────────

    def head(self, key: str) -> Optional[Dict[str, Any]]:
        """HEAD the object; returns metadata or None when it does not exist."""
        k = _normalize_key(key)
        try:
            return dict(self.client.head_object(Bucket=self.bucket, Key=k) or {})
        except botocore.exceptions.ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in {"404", "NoSuchKey", "NotFound"}:
                return None
            raise S3StorageError(f"Failed to HEAD object: {e}") from e

    def exists(self, key: str) -> bool:
        """Boolean existence check using `HEAD`."""
        return self.head(key) is not None

    def __repr__(self) -> str:  # pragma: no cover
        return self._repr


@lru_cache(maxsize=1)
def get_s3_client() -> S3Client:
    """Process-wide S3 client (FastAPI dependency and worker wiring)."""
    return S3Client()


__all__ = [
    "S3Client",
    "S3StorageError",
    "DEFAULT_VIDEO_FILE_NAME",
    "episode_video_key",
    "thumbnail_key",
    "boto_client_kwargs",
    "get_s3_client",
]
