from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.enums import EpisodeStatus
from app.schemas.uploads import UploadHandle


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EpisodeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    duration_in_seconds: int = Field(..., ge=0, description="Total length of the video")
    episode_number: int = Field(..., ge=1)
    season_number: Optional[int] = Field(None, ge=1, description="Required for series, optional otherwise")
    publication_date: Optional[datetime] = Field(
        None,
        description="When to publish once the video is uploaded. Must be in the future.",
    )
    extra_info: Optional[Dict[str, Any]] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v

    @field_validator("publication_date")
    @classmethod
    def _future_publication_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        v = _aware(v)
        if v is not None and v <= datetime.now(timezone.utc):
            raise ValueError("Publication date must be in the future for scheduling")
        return v


class EpisodeUpdate(BaseModel):
    """
    Sparse update. Status is recomputed only when `publication_date` is sent:
    a future date schedules, a past date or explicit `null` publishes once a
    video exists, and without a video the episode stays `draft`. Other fields
    never change the status.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    duration_in_seconds: Optional[int] = Field(None, ge=0)
    episode_number: Optional[int] = Field(None, ge=1)
    season_number: Optional[int] = Field(None, ge=1)
    publication_date: Optional[datetime] = None
    extra_info: Optional[Dict[str, Any]] = None

    @field_validator("publication_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _aware(v)


class ScheduleRequest(BaseModel):
    publication_date: datetime

    @field_validator("publication_date")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _aware(v)


class EpisodeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    program_id: UUID
    title: str
    description: Optional[str] = None
    duration_in_seconds: int
    episode_number: int
    season_number: Optional[int] = None
    publication_date: Optional[datetime] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    extra_info: Optional[Dict[str, Any]] = None
    status: EpisodeStatus
    created_at: datetime
    updated_at: datetime


class EpisodeCreated(EpisodeRead):
    upload: UploadHandle


class PaginatedEpisodes(BaseModel):
    items: List[EpisodeRead]
    total: int
    page: int
    limit: int
    total_pages: int
