# app/services/episode_service.py

from __future__ import annotations

"""
Media CMS — Episode Service
===========================
Orchestrates episode CRUD around the publication engine:

- create → always `draft` (no video yet) + a presigned upload handle for
  `episodes/<id>/original`
- update → sparse; status recomputed only when `publication_date` is sent
- remove → `EpisodeDeleted`
- upload helpers → re-issue a presigned PUT, store a thumbnail

Every successful write is committed before its event is published.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.events import EpisodeDeleted, EpisodeStatusChanged, EventBus, event_bus
from app.core.exceptions import ConflictException, InvalidOperationException, NotFoundException
from app.db.models.episode import Episode
from app.repositories.episodes import EpisodeRepository
from app.repositories.programs import ProgramRepository
from app.schemas.enums import EpisodeStatus
from app.schemas.episodes import EpisodeCreate, EpisodeUpdate
from app.schemas.uploads import UploadHandle
from app.services.publication_service import PublicationService
from app.utils.aws import S3Client, episode_video_key, thumbnail_key

logger = logging.getLogger(__name__)

ALLOWED_THUMBNAIL_TYPES = {"image/jpeg", "image/png"}
# Columns an update may explicitly clear with null
CLEARABLE_FIELDS = {"description", "season_number", "publication_date", "extra_info"}


def _duplicate_number(program_id: UUID, season_number: Optional[int], episode_number: int) -> ConflictException:
    return ConflictException(
        "An episode with this number already exists for the program/season",
        details={
            "program_id": str(program_id),
            "season_number": season_number,
            "episode_number": episode_number,
        },
    )


class EpisodeService:
    def __init__(
        self,
        episodes: EpisodeRepository,
        programs: ProgramRepository,
        storage: S3Client,
        *,
        publication: Optional[PublicationService] = None,
        bus: EventBus = event_bus,
    ) -> None:
        self.episodes = episodes
        self.programs = programs
        self.storage = storage
        self.bus = bus
        self.publication = publication or PublicationService(episodes, bus=bus)

    # ── Helpers ───────────────────────────────────────────────
    def _now(self) -> datetime:
        return self.publication.clock()

    def upload_handle(self, key: str, content_type: Optional[str] = None) -> UploadHandle:
        ttl = settings.UPLOAD_URL_TTL_SECONDS
        url = self.storage.presigned_put(key, content_type=content_type, expires_in=ttl)
        return UploadHandle(
            upload_url=url,
            key=key,
            expires_in=ttl,
            expires_at=self._now() + timedelta(seconds=ttl),
        )

    async def _get_or_404(self, episode_id: UUID) -> Episode:
        episode = await self.episodes.find_by_id(episode_id)
        if episode is None:
            raise NotFoundException(resource="Episode", resource_id=episode_id)
        return episode

    async def _commit_or_conflict(self, program_id: UUID, season_number: Optional[int], episode_number: int) -> None:
        try:
            await self.episodes.commit()
        except IntegrityError:
            await self.episodes.rollback()
            raise _duplicate_number(program_id, season_number, episode_number)

    # ── Create ────────────────────────────────────────────────
    async def create(self, program_id: UUID, data: EpisodeCreate) -> Tuple[Episode, UploadHandle]:
        if not await self.programs.exists(program_id):
            raise NotFoundException(resource="Program", resource_id=program_id)
        if await self.episodes.exists_number(program_id, data.season_number, data.episode_number):
            raise _duplicate_number(program_id, data.season_number, data.episode_number)

        status = self.publication.determine_status(data.publication_date, False)
        try:
            episode = await self.episodes.insert(
                program_id=program_id,
                status=status,
                **data.model_dump(),
            )
        except IntegrityError:
            await self.episodes.rollback()
            raise _duplicate_number(program_id, data.season_number, data.episode_number)

        handle = self.upload_handle(episode_video_key(episode.id))
        await self._commit_or_conflict(program_id, data.season_number, data.episode_number)

        logger.info("Episode %s created for program %s (status=%s)", episode.id, program_id, status.value)
        await self.bus.publish(EpisodeStatusChanged(episode))
        return episode, handle

    # ── Reads ─────────────────────────────────────────────────
    async def get(self, episode_id: UUID) -> Episode:
        return await self._get_or_404(episode_id)

    async def list_for_program(
        self,
        program_id: UUID,
        *,
        page: int = 1,
        limit: int = 10,
        status: Optional[EpisodeStatus] = None,
        published_after: Optional[datetime] = None,
        published_before: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        if not await self.programs.exists(program_id):
            raise NotFoundException(resource="Program", resource_id=program_id)

        filters = dict(status=status, published_after=published_after, published_before=published_before)
        items = await self.episodes.find_many(program_id, offset=(page - 1) * limit, limit=limit, **filters)
        total = await self.episodes.count(program_id, **filters)
        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

    # ── Update / delete ───────────────────────────────────────
    async def update(self, episode_id: UUID, data: EpisodeUpdate) -> Episode:
        episode = await self._get_or_404(episode_id)
        fields = {
            k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k in CLEARABLE_FIELDS
        }

        season_number = fields.get("season_number", episode.season_number)
        episode_number = fields.get("episode_number", episode.episode_number)
        if "season_number" in fields or "episode_number" in fields:
            if await self.episodes.exists_number(
                episode.program_id, season_number, episode_number, exclude_id=episode_id
            ):
                raise _duplicate_number(episode.program_id, season_number, episode_number)

        now = self._now()
        if "publication_date" in fields:
            publication_date = fields["publication_date"]
            fields["status"] = self.publication.determine_status(publication_date, bool(episode.video_url), now)
        fields["updated_at"] = now

        try:
            updated = await self.episodes.update(episode_id, **fields)
        except IntegrityError:
            await self.episodes.rollback()
            raise _duplicate_number(episode.program_id, season_number, episode_number)
        if updated is None:
            raise NotFoundException(resource="Episode", resource_id=episode_id)
        await self._commit_or_conflict(episode.program_id, season_number, episode_number)

        await self.bus.publish(EpisodeStatusChanged(updated))
        return updated

    async def remove(self, episode_id: UUID) -> None:
        if not await self.episodes.delete(episode_id):
            raise NotFoundException(resource="Episode", resource_id=episode_id)
        await self.episodes.commit()
        logger.info("Episode %s deleted", episode_id)
        await self.bus.publish(EpisodeDeleted(episode_id))

    # ── Uploads ───────────────────────────────────────────────
    async def request_upload(self, episode_id: UUID, file_name: str, content_type: str) -> UploadHandle:
        """Presigned PUT for `episodes/<id>/<file_name>`; the episode itself is untouched."""
        await self._get_or_404(episode_id)
        return self.upload_handle(episode_video_key(episode_id, file_name), content_type)

    async def upload_thumbnail(
        self,
        episode_id: UUID,
        *,
        file_name: str,
        content_type: Optional[str],
        data: bytes,
    ) -> Episode:
        await self._get_or_404(episode_id)
        if content_type not in ALLOWED_THUMBNAIL_TYPES:
            raise InvalidOperationException(
                "Thumbnail must be a JPEG or PNG image",
                details={"content_type": content_type},
            )
        if not data:
            raise InvalidOperationException("Thumbnail file is empty")
        if len(data) > settings.THUMBNAIL_MAX_BYTES:
            raise InvalidOperationException(
                "Thumbnail exceeds the maximum allowed size",
                details={"max_bytes": settings.THUMBNAIL_MAX_BYTES, "size": len(data)},
            )

        key = thumbnail_key(file_name)
        await asyncio.to_thread(self.storage.put_bytes, key, data, content_type=content_type)

        updated = await self.episodes.update(
            episode_id,
            thumbnail_url=self.storage.public_url(key),
            updated_at=self._now(),
        )
        if updated is None:
            raise NotFoundException(resource="Episode", resource_id=episode_id)
        await self.episodes.commit()
        await self.bus.publish(EpisodeStatusChanged(updated))
        return updated


__all__ = ["EpisodeService", "ALLOWED_THUMBNAIL_TYPES"]
