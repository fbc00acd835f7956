# app/services/discovery_service.py
from __future__ import annotations

"""
Media CMS — Discovery (public read side)
========================================
Answers public search and detail reads from the search projection, never
from the database, with a short-lived Redis cache in front.

- search         → programs + published episodes, cached `DISCOVERY_SEARCH_CACHE_TTL_SECONDS`
- get_program    → program document + a page of its episodes (season, number order)
- get_episode    → episode document + a summary of its program

The cache is optional. A read or write failure is logged and treated as a
miss, so discovery keeps answering while Redis is down.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import NotFoundException
from app.core.redis_client import RedisClient, redis_wrapper
from app.schemas.discovery import (
    EpisodeSummary,
    ProgramSummary,
    PublicEpisodeDetail,
    PublicProgramDetail,
    SearchItem,
    SearchResult,
)
from app.services.search_service import SearchService

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

CACHE_PREFIX = "discovery:"


def search_item(index: str, source: Dict[str, Any], *, programs_index: str) -> SearchItem:
    """Map a raw hit onto `SearchItem`; the index decides the kind."""
    if index == programs_index:
        return SearchItem(
            type="program",
            id=source.get("id", ""),
            title=source.get("title", ""),
            description=source.get("description"),
            program_type=source.get("type"),
            category=source.get("category"),
            language=source.get("language"),
            cover_image_url=source.get("coverImageUrl"),
        )
    return SearchItem(
        type="episode",
        id=source.get("id", ""),
        title=source.get("title", ""),
        description=source.get("description"),
        program_id=source.get("programId"),
        thumbnail_url=source.get("thumbnailUrl"),
        duration_in_seconds=source.get("durationInSeconds"),
        episode_number=source.get("episodeNumber"),
        season_number=source.get("seasonNumber"),
        publication_date=source.get("publicationDate"),
    )


class DiscoveryService:
    def __init__(self, search: SearchService, *, cache: Optional[RedisClient] = redis_wrapper) -> None:
        self.search_index = search
        self.cache = cache

    # ── Search ────────────────────────────────────────────────
    async def search(
        self,
        q: Optional[str] = None,
        *,
        category: Optional[str] = None,
        language: Optional[str] = None,
        page: int = 1,
        size: int = 10,
    ) -> SearchResult:
        key = f"{CACHE_PREFIX}search|{q or ''}|{category or ''}|{language or ''}|{page}|{size}"
        cached = await self._cached(key, SearchResult)
        if cached is not None:
            return cached

        hits, total = await self.search_index.search(
            q,
            category=category,
            language=language,
            offset=(page - 1) * size,
            size=size,
        )
        programs_index = self.search_index.programs_index
        result = SearchResult(
            items=[search_item(index, source, programs_index=programs_index) for index, source in hits],
            total=total,
            page=page,
            limit=size,
        )
        await self._store(key, result, settings.DISCOVERY_SEARCH_CACHE_TTL_SECONDS)
        return result

    # ── Details ───────────────────────────────────────────────
    async def get_program(
        self,
        program_id: UUID,
        *,
        episode_page: int = 1,
        episode_size: int = 20,
    ) -> PublicProgramDetail:
        key = f"{CACHE_PREFIX}program|{program_id}|{episode_page}|{episode_size}"
        cached = await self._cached(key, PublicProgramDetail)
        if cached is not None:
            return cached

        document, episodes = await asyncio.gather(
            self.search_index.get_program_document(program_id),
            self.search_index.episodes_for_program(
                program_id,
                offset=(episode_page - 1) * episode_size,
                size=episode_size,
            ),
        )
        if document is None:
            raise NotFoundException(resource="Program", resource_id=program_id)

        detail = PublicProgramDetail.model_validate(
            {**document, "episodes": [EpisodeSummary.model_validate(e) for e in episodes]}
        )
        await self._store(key, detail, settings.DISCOVERY_DETAIL_CACHE_TTL_SECONDS)
        return detail

    async def get_episode(self, episode_id: UUID) -> PublicEpisodeDetail:
        key = f"{CACHE_PREFIX}episode|{episode_id}"
        cached = await self._cached(key, PublicEpisodeDetail)
        if cached is not None:
            return cached

        document = await self.search_index.get_episode_document(episode_id)
        if document is None:
            raise NotFoundException(resource="Episode", resource_id=episode_id)

        program = None
        if document.get("programId"):
            program_doc = await self.search_index.get_program_document(document["programId"])
            if program_doc is not None:
                program = ProgramSummary.model_validate(program_doc)

        detail = PublicEpisodeDetail.model_validate({**document, "program": program})
        await self._store(key, detail, settings.DISCOVERY_DETAIL_CACHE_TTL_SECONDS)
        return detail

    # ── Cache ─────────────────────────────────────────────────
    async def _cached(self, key: str, model: Type[M]) -> Optional[M]:
        if self.cache is None:
            return None
        try:
            raw = await self.cache.json_get(key)
        except (RedisError, RuntimeError) as e:
            logger.warning("Discovery cache read failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding stale discovery cache entry %s", key)
            return None

    async def _store(self, key: str, value: BaseModel, ttl: int) -> None:
        if self.cache is None or ttl <= 0:
            return
        try:
            await self.cache.json_set(key, value.model_dump(mode="json", by_alias=True), ttl_seconds=ttl)
        except (RedisError, RuntimeError) as e:
            logger.warning("Discovery cache write failed for %s: %s", key, e)


__all__ = ["DiscoveryService", "search_item", "CACHE_PREFIX"]
