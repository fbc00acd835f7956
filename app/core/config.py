# app/core/config.py
from __future__ import annotations

"""
# Media CMS — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- Robust URL normalization and CSV → list helpers.
- Optional external systems (S3/SQS/Elasticsearch) so imports never crash in dev.
- Publication lifecycle knobs (scheduler period, upload URL TTL) in one place.

## Usage
    from app.core.config import settings
"""

import logging
from typing import List, Optional, Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _normalize_url_like(v: str | None, *, require_scheme: bool = True) -> str:
    """Normalize to a string URL without trailing slash."""
    s = (v or "").strip()
    if not s:
        return ""
    if require_scheme and not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Storage:
        - S3 bucket + optional CloudFront domain for playable URLs.
        - SQS queue receiving S3 "object created" notifications.

    Publication:
        - Scheduler period and optional cross-replica Redis lock.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "Media CMS API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Security / JWT (verification only) ────────────────────
    JWT_SECRET_KEY: SecretStr = Field(...)
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60, ge=5, le=24 * 60)

    # ── Redis / Rate limiting ─────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    DEFAULT_RATE_LIMIT: Optional[str] = None  # e.g., "200/minute"
    RATELIMIT_STORAGE_URI: Optional[str] = None

    # ── Database (PostgreSQL) ─────────────────────────────────
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = Field(...)
    POSTGRES_DB: str = "media_cms"

    # ── CORS ──────────────────────────────────────────────────
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = Field(
        default_factory=lambda: ["http://localhost:8000", "http://localhost:5173"]
    )
    FRONTEND_ORIGINS: Optional[str] = None  # CSV

    # ── Object storage (S3 + CloudFront) ──────────────────────
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    AWS_SESSION_TOKEN: Optional[SecretStr] = None
    AWS_REGION: str = "us-east-1"
    AWS_BUCKET_NAME: Optional[str] = None
    AWS_S3_ENDPOINT_URL: Optional[str] = None  # LocalStack / MinIO
    CLOUDFRONT_DOMAIN: Optional[str] = None  # e.g., cdn.example.com or https://cdn.example.com
    UPLOAD_URL_TTL_SECONDS: int = Field(3600, ge=60, le=7 * 24 * 60 * 60)
    THUMBNAIL_MAX_BYTES: int = Field(5 * 1024 * 1024, ge=1024)

    # ── Upload completion queue (SQS) ─────────────────────────
    SQS_QUEUE_URL: Optional[str] = None
    SQS_WAIT_TIME_SECONDS: int = Field(20, ge=0, le=20)
    SQS_MAX_MESSAGES: int = Field(1, ge=1, le=10)
    SQS_VISIBILITY_TIMEOUT: int = Field(60, ge=0, le=12 * 60 * 60)
    UPLOAD_CONSUMER_ENABLED: bool = True

    # ── Search projection (Elasticsearch) ─────────────────────
    ELASTIC_NODE: str = "http://localhost:9200"
    SEARCH_ENABLED: bool = True
    SEARCH_PROGRAMS_INDEX: str = "programs"
    SEARCH_EPISODES_INDEX: str = "episodes"
    DISCOVERY_SEARCH_CACHE_TTL_SECONDS: int = Field(120, ge=0)
    DISCOVERY_DETAIL_CACHE_TTL_SECONDS: int = Field(180, ge=0)

    # ── Publication scheduler ─────────────────────────────────
    PUBLICATION_SCHEDULER_ENABLED: bool = True
    PUBLICATION_SCHEDULER_INTERVAL_SECONDS: int = Field(60, ge=1, le=24 * 60 * 60)
    PUBLICATION_SCHEDULER_LOCK: bool = False
    PUBLICATION_SCHEDULER_LOCK_TTL_SECONDS: int = Field(55, ge=1)

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    @field_validator("CLOUDFRONT_DOMAIN", mode="before")
    @classmethod
    def _normalize_cdn_domain(cls, v: str | None) -> str | None:
        """
        Accepts either 'cdn.example.com' or 'https://cdn.example.com' and
        normalizes to 'https://cdn.example.com' (no trailing slash).
        """
        s = (v or "").strip()
        if not s:
            return None
        return _normalize_url_like(s)

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV.lower() == "development"

    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN (Alembic offline mode, tooling)."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN."""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def frontend_origins_list(self) -> List[str]:
        """
        Preferred CORS allowlist:
        Priority → FRONTEND_ORIGINS (CSV) → BACKEND_CORS_ORIGINS (typed list).
        """
        if self.FRONTEND_ORIGINS:
            return _split_csv(self.FRONTEND_ORIGINS)
        return [str(u).rstrip("/") for u in (self.BACKEND_CORS_ORIGINS or [])]

    @property
    def ratelimit_storage(self) -> Optional[str]:
        return self.RATELIMIT_STORAGE_URI or None

    @property
    def cdn_base_url(self) -> str:
        """
        CloudFront base URL normalized to a full https URL without trailing slash.
        Examples:
          'cdn.example.com'             -> 'https://cdn.example.com'
          'https://cdn.example.com'     -> 'https://cdn.example.com'
        """
        d = (self.CLOUDFRONT_DOMAIN or "").strip().rstrip("/")
        if not d:
            return ""
        return d if d.startswith(("http://", "https://")) else f"https://{d}"


# Singleton instance
settings = Settings()
