from __future__ import annotations

"""
Public read models for the discovery API.

Built from search documents, not ORM rows, and serialized in camelCase (the
same field names the search documents use).
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.enums import Language, ProgramType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchItem(_CamelModel):
    """One hit: a program or a published episode."""
    type: Literal["program", "episode"]
    id: str
    title: str
    description: Optional[str] = None
    # program hits
    program_type: Optional[str] = None
    category: Optional[str] = None
    language: Optional[str] = None
    cover_image_url: Optional[str] = None
    # episode hits
    program_id: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_in_seconds: Optional[int] = None
    episode_number: Optional[int] = None
    season_number: Optional[int] = None
    publication_date: Optional[datetime] = None


class SearchResult(_CamelModel):
    items: List[SearchItem] = Field(default_factory=list)
    total: int = 0
    page: int
    limit: int


class EpisodeSummary(_CamelModel):
    id: str
    title: str
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    duration_in_seconds: Optional[int] = None
    episode_number: Optional[int] = None
    season_number: Optional[int] = None
    publication_date: Optional[datetime] = None


class ProgramSummary(_CamelModel):
    id: str
    title: str
    cover_image_url: Optional[str] = None


class PublicProgramDetail(_CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    type: ProgramType
    category: str
    language: Language
    cover_image_url: Optional[str] = None
    extra_info: Optional[Dict[str, Any]] = None
    episodes: List[EpisodeSummary] = Field(default_factory=list)


class PublicEpisodeDetail(_CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_in_seconds: Optional[int] = None
    episode_number: Optional[int] = None
    season_number: Optional[int] = None
    publication_date: Optional[datetime] = None
    program: Optional[ProgramSummary] = None


__all__ = [
    "SearchItem",
    "SearchResult",
    "EpisodeSummary",
    "ProgramSummary",
    "PublicProgramDetail",
    "PublicEpisodeDetail",
]
