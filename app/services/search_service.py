# app/services/search_service.py

from __future__ import annotations

"""
Media CMS — Search Projection (Elasticsearch)
=============================================
Keeps the `programs` / `episodes` indices in step with the database.

- Only **published** episodes are searchable: any other status removes the
  document
- Projection failures never reach the writer: `SearchIndexSubscriber` logs
  them as `DownstreamProjectionError` and moves on
- Deleting an already-missing document is not an error (404 ignored)

Documents use camelCase field names, the shape the discovery API reads.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from elasticsearch import AsyncElasticsearch

from app.core.config import settings
from app.core.events import (
    DomainEvent,
    EpisodeDeleted,
    EpisodeStatusChanged,
    ProgramCreated,
    ProgramDeleted,
    ProgramUpdated,
)
from app.core.exceptions import DownstreamProjectionError
from app.schemas.enums import EpisodeStatus

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# 🗺️ Index mappings
# ──────────────────────────────────────────────────────────────────────────────
PROGRAM_MAPPINGS: Dict[str, Any] = {
    "properties": {
        "id": {"type": "keyword"},
        "title": {"type": "text", "analyzer": "arabic"},
        "description": {"type": "text", "analyzer": "arabic"},
        "type": {"type": "keyword"},
        "category": {"type": "keyword"},
        "language": {"type": "keyword"},
        "coverImageUrl": {"type": "keyword"},
        "extraInfo": {"type": "object", "enabled": False},
        "createdAt": {"type": "date"},
        "updatedAt": {"type": "date"},
    }
}

EPISODE_MAPPINGS: Dict[str, Any] = {
    "properties": {
        "id": {"type": "keyword"},
        "programId": {"type": "keyword"},
        "title": {"type": "text", "analyzer": "arabic"},
        "description": {"type": "text", "analyzer": "arabic"},
        "durationInSeconds": {"type": "integer"},
        "publicationDate": {"type": "date"},
        "videoUrl": {"type": "keyword"},
        "thumbnailUrl": {"type": "keyword"},
        "status": {"type": "keyword"},
        "episodeNumber": {"type": "integer"},
        "seasonNumber": {"type": "integer"},
        "extraInfo": {"type": "object", "enabled": False},
        "createdAt": {"type": "date"},
        "updatedAt": {"type": "date"},
    }
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _body(resp: Any) -> Dict[str, Any]:
    return getattr(resp, "body", resp) or {}


def program_document(program: Any) -> Dict[str, Any]:
    return {
        "id": str(program.id),
        "title": program.title,
        "description": program.description,
        "type": _enum_value(program.type),
        "category": program.category,
        "language": _enum_value(program.language),
        "coverImageUrl": program.cover_image_url,
        "extraInfo": program.extra_info,
        "createdAt": _iso(program.created_at),
        "updatedAt": _iso(program.updated_at),
    }


def episode_document(episode: Any) -> Dict[str, Any]:
    return {
        "id": str(episode.id),
        "programId": str(episode.program_id),
        "title": episode.title,
        "description": episode.description,
        "durationInSeconds": episode.duration_in_seconds,
        "publicationDate": _iso(episode.publication_date),
        "videoUrl": episode.video_url,
        "thumbnailUrl": episode.thumbnail_url,
        "status": _enum_value(episode.status),
        "episodeNumber": episode.episode_number,
        "seasonNumber": episode.season_number,
        "extraInfo": episode.extra_info,
        "createdAt": _iso(episode.created_at),
        "updatedAt": _iso(episode.updated_at),
    }


# ──────────────────────────────────────────────────────────────────────────────
# 🔎 Service
# ──────────────────────────────────────────────────────────────────────────────
class SearchService:
    def __init__(
        self,
        client: Optional[AsyncElasticsearch] = None,
        *,
        programs_index: Optional[str] = None,
        episodes_index: Optional[str] = None,
    ) -> None:
        self.client = client or AsyncElasticsearch(settings.ELASTIC_NODE)
        self.programs_index = programs_index or settings.SEARCH_PROGRAMS_INDEX
        self.episodes_index = episodes_index or settings.SEARCH_EPISODES_INDEX

    async def ensure_indices(self) -> None:
        """Create missing indices. Failure is logged; the API still starts."""
        for index, mappings in (
            (self.programs_index, PROGRAM_MAPPINGS),
            (self.episodes_index, EPISODE_MAPPINGS),
        ):
            try:
                if not await self.client.indices.exists(index=index):
                    await self.client.indices.create(index=index, mappings=mappings)
                    logger.info("Search index %s created", index)
            except Exception:
                logger.exception("Error creating search index %s", index)

    # ── Programs ──────────────────────────────────────────────
    async def index_program(self, program: Any) -> None:
        await self.client.index(
            index=self.programs_index,
            id=str(program.id),
            document=program_document(program),
            refresh=False,
        )
        logger.info("Program %s indexed", program.id)

    async def delete_program(self, program_id: UUID) -> None:
        """Remove the program and every episode document that belongs to it."""
        await self.client.options(ignore_status=404).delete(index=self.programs_index, id=str(program_id))
        await self.client.delete_by_query(
            index=self.episodes_index,
            query={"term": {"programId": str(program_id)}},
            conflicts="proceed",
        )
        logger.info("Program %s removed from search", program_id)

    # ── Episodes ──────────────────────────────────────────────
    async def index_episode(self, episode: Any) -> None:
        await self.client.index(
            index=self.episodes_index,
            id=str(episode.id),
            document=episode_document(episode),
            refresh=False,
        )
        logger.info("Episode %s indexed", episode.id)

    async def delete_episode(self, episode_id: UUID) -> None:
        await self.client.options(ignore_status=404).delete(index=self.episodes_index, id=str(episode_id))
        logger.info("Episode %s removed from search", episode_id)

    async def sync_episode(self, episode: Any) -> None:
        """Upsert when published, remove otherwise."""
        if _enum_value(episode.status) == EpisodeStatus.PUBLISHED.value:
            await self.index_episode(episode)
        else:
            await self.delete_episode(episode.id)

    # ── Reads (discovery) ─────────────────────────────────────
    async def search(
        self,
        q: Optional[str] = None,
        *,
        category: Optional[str] = None,
        language: Optional[str] = None,
        offset: int = 0,
        size: int = 10,
    ) -> Tuple[List[Tuple[str, Dict[str, Any]]], int]:
        """
        Full-text query over both indices.

        Returns `([(index, source), ...], total)`. A missing index yields no
        hits rather than an error.
        """
        if q:
            must: List[Dict[str, Any]] = [
                {"multi_match": {"query": q, "fields": ["title^2", "description"], "type": "best_fields"}}
            ]
        else:
            must = [{"match_all": {}}]
        filters: List[Dict[str, Any]] = []
        if category:
            filters.append({"term": {"category": category}})
        if language:
            filters.append({"term": {"language": language}})

        resp = await self.client.options(ignore_status=404).search(
            index=f"{self.programs_index},{self.episodes_index}",
            query={"bool": {"must": must, "filter": filters}},
            from_=offset,
            size=size,
        )
        hits = _body(resp).get("hits") or {}
        found = [(h.get("_index", ""), h.get("_source") or {}) for h in hits.get("hits") or []]
        return found, int((hits.get("total") or {}).get("value") or 0)

    async def get_program_document(self, program_id: UUID | str) -> Optional[Dict[str, Any]]:
        return await self._get_source(self.programs_index, program_id)

    async def get_episode_document(self, episode_id: UUID | str) -> Optional[Dict[str, Any]]:
        return await self._get_source(self.episodes_index, episode_id)

    async def episodes_for_program(
        self,
        program_id: UUID | str,
        *,
        offset: int = 0,
        size: int = 20,
    ) -> List[Dict[str, Any]]:
        """Published episodes of a program, ordered by season then number."""
        resp = await self.client.options(ignore_status=404).search(
            index=self.episodes_index,
            query={"term": {"programId": str(program_id)}},
            sort=[
                {"seasonNumber": {"order": "asc", "missing": "_first"}},
                {"episodeNumber": {"order": "asc"}},
            ],
            from_=offset,
            size=size,
        )
        hits = _body(resp).get("hits") or {}
        return [h.get("_source") or {} for h in hits.get("hits") or []]

    async def _get_source(self, index: str, doc_id: UUID | str) -> Optional[Dict[str, Any]]:
        resp = await self.client.options(ignore_status=404).get(index=index, id=str(doc_id))
        body = _body(resp)
        if not body.get("found"):
            return None
        return body.get("_source")

    async def close(self) -> None:
        await self.client.close()


# ──────────────────────────────────────────────────────────────────────────────
# 📨 Event subscriber
# ──────────────────────────────────────────────────────────────────────────────
class SearchIndexSubscriber:
    """Maps domain events onto the search projection; never raises."""

    def __init__(self, search: SearchService) -> None:
        self.search = search

    async def handle(self, event: DomainEvent) -> None:
        if isinstance(event, EpisodeStatusChanged):
            await self._run("sync_episode", event.episode.id, self.search.sync_episode(event.episode))
        elif isinstance(event, EpisodeDeleted):
            await self._run("delete_episode", event.episode_id, self.search.delete_episode(event.episode_id))
        elif isinstance(event, (ProgramCreated, ProgramUpdated)):
            await self._run("index_program", event.program.id, self.search.index_program(event.program))
        elif isinstance(event, ProgramDeleted):
            await self._run("delete_program", event.program_id, self.search.delete_program(event.program_id))

    async def _run(self, operation: str, target_id: Any, call) -> None:
        try:
            await call
        except Exception as exc:
            error = DownstreamProjectionError(operation, target_id, exc)
            logger.error("CRITICAL: search projection out of sync: %s", error)


__all__ = [
    "SearchService",
    "SearchIndexSubscriber",
    "program_document",
    "episode_document",
]
