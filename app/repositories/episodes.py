# app/repositories/episodes.py
from __future__ import annotations

"""Episode store.

SQLAlchemy-backed access to the `episodes` table. Every write that can touch
the publication lifecycle is a single statement (`UPDATE ... RETURNING`) so the
row a caller gets back is exactly what was persisted.
"""

from datetime import datetime
from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.episode import Episode
from app.schemas.enums import EpisodeStatus


class EpisodeRepositoryProtocol:
    """Interface the publication engine and services depend on."""

    async def find_by_id(self, episode_id: UUID) -> Optional[Episode]:
        raise NotImplementedError

    async def find_scheduled_ready_to_publish(self, now: datetime) -> List[Episode]:
        raise NotImplementedError

    async def update(self, episode_id: UUID, **fields: Any) -> Optional[Episode]:
        raise NotImplementedError

    async def publish_many(self, episode_ids: Sequence[UUID], timestamp: datetime) -> List[Episode]:
        raise NotImplementedError

    async def commit(self) -> None:
        raise NotImplementedError


class EpisodeRepository(EpisodeRepositoryProtocol):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Reads ─────────────────────────────────────────────────
    async def find_by_id(self, episode_id: UUID) -> Optional[Episode]:
        return (await self.db.execute(select(Episode).where(Episode.id == episode_id))).scalar_one_or_none()

    async def find_scheduled_ready_to_publish(self, now: datetime) -> List[Episode]:
        """Scheduled episodes whose publication date is at or before `now`."""
        stmt = (
            select(Episode)
            .where(
                Episode.status == EpisodeStatus.SCHEDULED,
                Episode.publication_date <= now,
            )
            .order_by(Episode.publication_date.asc())
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def find_by_program(self, program_id: UUID) -> List[Episode]:
        stmt = (
            select(Episode)
            .where(Episode.program_id == program_id)
            .order_by(Episode.season_number.asc().nulls_first(), Episode.episode_number.asc())
        )
        return list((await self.db.execute(stmt)).scalars().all())

    @staticmethod
    def _filters(
        program_id: UUID,
        status: Optional[EpisodeStatus],
        published_after: Optional[datetime],
        published_before: Optional[datetime],
    ):
        clauses = [Episode.program_id == program_id]
        if status is not None:
            clauses.append(Episode.status == status)
        if published_after is not None:
            clauses.append(Episode.publication_date >= published_after)
        if published_before is not None:
            clauses.append(Episode.publication_date <= published_before)
        return and_(*clauses)

    async def find_many(
        self,
        program_id: UUID,
        *,
        status: Optional[EpisodeStatus] = None,
        published_after: Optional[datetime] = None,
        published_before: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> List[Episode]:
        stmt = (
            select(Episode)
            .where(self._filters(program_id, status, published_after, published_before))
            .order_by(Episode.season_number.asc().nulls_first(), Episode.episode_number.asc())
            .offset(offset)
            .limit(limit)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def count(
        self,
        program_id: UUID,
        *,
        status: Optional[EpisodeStatus] = None,
        published_after: Optional[datetime] = None,
        published_before: Optional[datetime] = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Episode)
            .where(self._filters(program_id, status, published_after, published_before))
        )
        return int((await self.db.execute(stmt)).scalar_one())

    async def exists_number(
        self,
        program_id: UUID,
        season_number: Optional[int],
        episode_number: int,
        *,
        exclude_id: Optional[UUID] = None,
    ) -> bool:
        """True when `(program, season, number)` is taken; NULL season is its own group."""
        season_clause = (
            Episode.season_number.is_(None) if season_number is None else Episode.season_number == season_number
        )
        stmt = select(Episode.id).where(
            Episode.program_id == program_id,
            season_clause,
            Episode.episode_number == episode_number,
        )
        if exclude_id is not None:
            stmt = stmt.where(Episode.id != exclude_id)
        return (await self.db.execute(stmt.limit(1))).first() is not None

    # ── Writes ────────────────────────────────────────────────
    async def insert(self, **fields: Any) -> Episode:
        episode = Episode(**fields)
        self.db.add(episode)
        await self.db.flush()
        return episode

    async def update(self, episode_id: UUID, **fields: Any) -> Optional[Episode]:
        """Apply `fields` in one statement; returns the updated row or None."""
        if not fields:
            return await self.find_by_id(episode_id)
        stmt = (
            update(Episode)
            .where(Episode.id == episode_id)
            .values(**fields)
            .returning(Episode)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def publish_many(self, episode_ids: Sequence[UUID], timestamp: datetime) -> List[Episode]:
        """
        Promote the given episodes in one statement, stamping a single
        `updated_at`. The caller has already selected them as due.
        """
        ids = list(episode_ids)
        if not ids:
            return []
        stmt = (
            update(Episode)
            .where(Episode.id.in_(ids))
            .values(status=EpisodeStatus.PUBLISHED, updated_at=timestamp)
            .returning(Episode)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def delete(self, episode_id: UUID) -> bool:
        stmt = delete(Episode).where(Episode.id == episode_id).returning(Episode.id)
        return (await self.db.execute(stmt)).first() is not None

    # ── Unit of work ──────────────────────────────────────────
    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

