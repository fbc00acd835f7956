# app/services/publication_service.py

from __future__ import annotations

"""
Media CMS — Publication Engine
==============================
Owns every decision about an episode's publication status.

- `determine_status` is the single pure status function used by *all*
  writers (episode service, upload listener, scheduler)
- Manual transitions: schedule, publish now, cancel schedule
- Reconciliation: `process_scheduled_publications(now)` promotes due
  scheduled episodes in one statement

Notes:
- Writes go through the episode store as one `UPDATE ... RETURNING`, are
  committed, and only then announced on the event bus
- `now` is injectable everywhere (tests pass a fixed clock)
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, List, Optional
from uuid import UUID

from app.core.events import EpisodeStatusChanged, EventBus, event_bus
from app.core.exceptions import InvalidOperationException, NotFoundException
from app.db.models.episode import Episode
from app.repositories.episodes import EpisodeRepository, EpisodeRepositoryProtocol
from app.schemas.enums import EpisodeStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


# ──────────────────────────────────────────────────────────────────────────────
# 🕒 Time helpers
# ──────────────────────────────────────────────────────────────────────────────
def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are UTC; aware ones are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ──────────────────────────────────────────────────────────────────────────────
# 🧮 Status function
# ──────────────────────────────────────────────────────────────────────────────
def determine_status(
    publication_date: Optional[datetime],
    has_video: bool,
    now: datetime,
) -> EpisodeStatus:
    """
    | video | publication_date | status    |
    |-------|------------------|-----------|
    | no    | any              | draft     |
    | yes   | none             | published |
    | yes   | > now            | scheduled |
    | yes   | <= now           | published |
    """
    if not has_video:
        return EpisodeStatus.DRAFT
    if publication_date is None:
        return EpisodeStatus.PUBLISHED
    if as_utc(publication_date) > as_utc(now):
        return EpisodeStatus.SCHEDULED
    return EpisodeStatus.PUBLISHED


# ──────────────────────────────────────────────────────────────────────────────
# 🚦 Engine
# ──────────────────────────────────────────────────────────────────────────────
class PublicationService:
    def __init__(
        self,
        episodes: EpisodeRepositoryProtocol,
        *,
        bus: EventBus = event_bus,
        clock: Clock = utcnow,
    ) -> None:
        self.episodes = episodes
        self.bus = bus
        self.clock = clock

    def determine_status(
        self,
        publication_date: Optional[datetime],
        has_video: bool,
        now: Optional[datetime] = None,
    ) -> EpisodeStatus:
        return determine_status(publication_date, has_video, now or self.clock())

    @staticmethod
    def can_publish(episode: Episode) -> bool:
        return bool(episode.video_url)

    async def _get_or_404(self, episode_id: UUID) -> Episode:
        episode = await self.episodes.find_by_id(episode_id)
        if episode is None:
            raise NotFoundException(resource="Episode", resource_id=episode_id)
        return episode

    async def _persist(self, episode_id: UUID, **fields) -> Episode:
        updated = await self.episodes.update(episode_id, **fields)
        if updated is None:
            # Deleted between the read and the write
            raise NotFoundException(resource="Episode", resource_id=episode_id)
        await self.episodes.commit()
        await self.bus.publish(EpisodeStatusChanged(updated))
        return updated

    # ── Manual transitions ────────────────────────────────────
    async def schedule_publication(self, episode_id: UUID, publication_date: datetime) -> Episode:
        """Set a publication date; status becomes scheduled or published."""
        episode = await self._get_or_404(episode_id)
        if not self.can_publish(episode):
            raise InvalidOperationException("Episode must have a video before it can be scheduled")

        now = self.clock()
        publication_date = as_utc(publication_date)
        status = self.determine_status(publication_date, True, now)
        return await self._persist(
            episode_id,
            status=status,
            publication_date=publication_date,
            updated_at=now,
        )

    async def publish_now(self, episode_id: UUID) -> Episode:
        episode = await self._get_or_404(episode_id)
        if not self.can_publish(episode):
            raise InvalidOperationException("Episode must have a video before it can be published")

        now = self.clock()
        return await self._persist(
            episode_id,
            status=EpisodeStatus.PUBLISHED,
            publication_date=now,
            updated_at=now,
        )

    async def cancel_schedule(self, episode_id: UUID) -> Episode:
        """Back to draft; the uploaded video (if any) is kept."""
        episode = await self._get_or_404(episode_id)
        if episode.status != EpisodeStatus.SCHEDULED:
            raise InvalidOperationException(
                "Episode is not scheduled for publication",
                details={"status": EpisodeStatus(episode.status).value},
            )

        return await self._persist(
            episode_id,
            status=EpisodeStatus.DRAFT,
            publication_date=None,
            updated_at=self.clock(),
        )

    # ── Reconciliation ────────────────────────────────────────
    async def process_scheduled_publications(self, now: Optional[datetime] = None) -> int:
        """
        Promote every scheduled episode whose date has passed.

        Episodes without a video are skipped with a warning and left untouched.
        Running twice with the same `now` promotes nothing the second time.
        """
        now = now or self.clock()
        due = await self.episodes.find_scheduled_ready_to_publish(now)
        if not due:
            return 0

        publishable: List[UUID] = []
        for episode in due:
            if self.can_publish(episode):
                publishable.append(episode.id)
            else:
                logger.warning("Episode %s is scheduled but has no video. Skipping.", episode.id)

        if not publishable:
            return 0

        promoted = await self.episodes.publish_many(publishable, now)
        await self.episodes.commit()

        for episode in promoted:
            await self.bus.publish(EpisodeStatusChanged(episode))
        return len(promoted)


@asynccontextmanager
async def publication_scope(*, bus: EventBus = event_bus) -> AsyncIterator[PublicationService]:
    """One engine bound to a fresh session (background workers)."""
    from app.db.session import async_session_maker

    async with async_session_maker() as session:
        yield PublicationService(EpisodeRepository(session), bus=bus)


__all__ = [
    "PublicationService",
    "publication_scope",
    "determine_status",
    "utcnow",
    "as_utc",
]
