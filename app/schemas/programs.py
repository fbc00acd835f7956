from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.enums import Language, ProgramType
from app.schemas.episodes import EpisodeRead


class ProgramCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    type: ProgramType
    category: str = Field(..., min_length=1, max_length=100, description="e.g., Technology, Culture, Business")
    language: Language
    cover_image_url: Optional[str] = None
    extra_info: Optional[Dict[str, Any]] = None


class ProgramUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    type: Optional[ProgramType] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    language: Optional[Language] = None
    cover_image_url: Optional[str] = None
    extra_info: Optional[Dict[str, Any]] = None


class ProgramRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str] = None
    type: ProgramType
    category: str
    language: Language
    cover_image_url: Optional[str] = None
    extra_info: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime


class ProgramDetail(ProgramRead):
    episodes: List[EpisodeRead] = []


class PaginatedPrograms(BaseModel):
    items: List[ProgramRead]
    total: int
    page: int
    limit: int
    total_pages: int
