# tests/fixtures/fakes.py
"""
In-memory stand-ins for the persistence and storage seams.

The fakes hold real (transient) ORM instances so schemas validate them the
same way as rows loaded from Postgres.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from app.core.events import DomainEvent
from app.db.models.episode import Episode
from app.db.models.program import Program
from app.schemas.enums import EpisodeStatus, Language, ProgramType
from app.services.publication_service import as_utc

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────
# 🕒 Clock
# ─────────────────────────────────────────────────────────────
class FixedClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


# ─────────────────────────────────────────────────────────────
# 🏭 Row factories
# ─────────────────────────────────────────────────────────────
def make_program(**overrides: Any) -> Program:
    fields: Dict[str, Any] = dict(
        id=uuid4(),
        title="Tech Talks",
        description="Weekly conversations about technology",
        type=ProgramType.PODCAST,
        category="Technology",
        language=Language.ENGLISH,
        cover_image_url=None,
        extra_info=None,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )
    fields.update(overrides)
    return Program(**fields)


def make_episode(**overrides: Any) -> Episode:
    fields: Dict[str, Any] = dict(
        id=uuid4(),
        program_id=uuid4(),
        title="Episode 1",
        description=None,
        duration_in_seconds=1800,
        episode_number=1,
        season_number=None,
        extra_info=None,
        video_url=None,
        thumbnail_url=None,
        publication_date=None,
        status=EpisodeStatus.DRAFT,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )
    fields.update(overrides)
    return Episode(**fields)


# ─────────────────────────────────────────────────────────────
# 🗄️ Stores
# ─────────────────────────────────────────────────────────────
class FakeEpisodeRepository:
    def __init__(self) -> None:
        self.rows: Dict[UUID, Episode] = {}
        self.commits = 0
        self.rollbacks = 0
        self.updates: List[Tuple[UUID, Dict[str, Any]]] = []

    def add(self, episode: Episode) -> Episode:
        self.rows[episode.id] = episode
        return episode

    @staticmethod
    def _sort_key(e: Episode):
        return (e.season_number is not None, e.season_number or 0, e.episode_number)

    def _matching(self, program_id, status, published_after, published_before) -> List[Episode]:
        out = []
        for e in self.rows.values():
            if e.program_id != program_id:
                continue
            if status is not None and e.status != status:
                continue
            pd = as_utc(e.publication_date)
            if published_after is not None and (pd is None or pd < as_utc(published_after)):
                continue
            if published_before is not None and (pd is None or pd > as_utc(published_before)):
                continue
            out.append(e)
        return sorted(out, key=self._sort_key)

    async def find_by_id(self, episode_id: UUID) -> Optional[Episode]:
        return self.rows.get(episode_id)

    async def find_scheduled_ready_to_publish(self, now: datetime) -> List[Episode]:
        due = [
            e for e in self.rows.values()
            if e.status == EpisodeStatus.SCHEDULED
            and e.publication_date is not None
            and as_utc(e.publication_date) <= as_utc(now)
        ]
        return sorted(due, key=lambda e: as_utc(e.publication_date))

    async def find_by_program(self, program_id: UUID) -> List[Episode]:
        return self._matching(program_id, None, None, None)

    async def find_many(self, program_id, *, status=None, published_after=None, published_before=None, offset=0, limit=10):
        return self._matching(program_id, status, published_after, published_before)[offset:offset + limit]

    async def count(self, program_id, *, status=None, published_after=None, published_before=None) -> int:
        return len(self._matching(program_id, status, published_after, published_before))

    async def exists_number(self, program_id, season_number, episode_number, *, exclude_id=None) -> bool:
        return any(
            e.program_id == program_id
            and e.season_number == season_number
            and e.episode_number == episode_number
            and e.id != exclude_id
            for e in self.rows.values()
        )

    async def insert(self, **fields: Any) -> Episode:
        fields.setdefault("id", uuid4())
        fields.setdefault("created_at", FIXED_NOW)
        fields.setdefault("updated_at", FIXED_NOW)
        return self.add(Episode(**fields))

    async def update(self, episode_id: UUID, **fields: Any) -> Optional[Episode]:
        episode = self.rows.get(episode_id)
        if episode is None:
            return None
        for key, value in fields.items():
            setattr(episode, key, value)
        self.updates.append((episode_id, dict(fields)))
        return episode

    async def publish_many(self, episode_ids: Sequence[UUID], timestamp: datetime) -> List[Episode]:
        promoted = []
        for episode_id in episode_ids:
            episode = self.rows.get(episode_id)
            if episode is not None:
                episode.status = EpisodeStatus.PUBLISHED
                episode.updated_at = timestamp
                promoted.append(episode)
        return promoted

    async def delete(self, episode_id: UUID) -> bool:
        return self.rows.pop(episode_id, None) is not None

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeProgramRepository:
    def __init__(self, episodes: Optional[FakeEpisodeRepository] = None) -> None:
        self.rows: Dict[UUID, Program] = {}
        self.episodes = episodes
        self.commits = 0

    def add(self, program: Program) -> Program:
        self.rows[program.id] = program
        return program

    async def find_by_id(self, program_id: UUID) -> Optional[Program]:
        return self.rows.get(program_id)

    async def exists(self, program_id: UUID) -> bool:
        return program_id in self.rows

    async def find_many(self, *, offset: int = 0, limit: int = 10) -> List[Program]:
        ordered = sorted(self.rows.values(), key=lambda p: p.created_at, reverse=True)
        return ordered[offset:offset + limit]

    async def count(self) -> int:
        return len(self.rows)

    async def insert(self, **fields: Any) -> Program:
        fields.setdefault("id", uuid4())
        fields.setdefault("created_at", FIXED_NOW)
        fields.setdefault("updated_at", FIXED_NOW)
        return self.add(Program(**fields))

    async def update(self, program_id: UUID, **fields: Any) -> Optional[Program]:
        program = self.rows.get(program_id)
        if program is None:
            return None
        for key, value in fields.items():
            setattr(program, key, value)
        return program

    async def delete(self, program_id: UUID) -> bool:
        if self.rows.pop(program_id, None) is None:
            return False
        if self.episodes is not None:
            for episode_id in [e.id for e in self.episodes.rows.values() if e.program_id == program_id]:
                self.episodes.rows.pop(episode_id)
        return True

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass


# ─────────────────────────────────────────────────────────────
# ☁️ Object storage
# ─────────────────────────────────────────────────────────────
class FakeStorage:
    bucket = "test-bucket"

    def __init__(self) -> None:
        self.signed: List[Tuple[str, Optional[str], Optional[int]]] = []
        self.objects: Dict[str, Tuple[bytes, str]] = {}

    def presigned_put(self, key: str, *, content_type: Optional[str] = None, expires_in: Optional[int] = None) -> str:
        self.signed.append((key, content_type, expires_in))
        return f"https://uploads.test/{key}?X-Amz-Signature=fake"

    def put_bytes(self, key: str, data: bytes, *, content_type: str) -> None:
        self.objects[key] = (data, content_type)

    def public_url(self, key: str) -> str:
        return f"https://cdn.test/{key}"

    def exists(self, key: str) -> bool:
        return key in self.objects


# ─────────────────────────────────────────────────────────────
# 📨 Event recorder
# ─────────────────────────────────────────────────────────────
class RecordingSubscriber:
    def __init__(self) -> None:
        self.events: List[DomainEvent] = []

    async def handle(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> List[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


def scope_yielding(engine):
    """Engine scope factory that always yields `engine` (no real session)."""

    @asynccontextmanager
    async def _scope():
        yield engine

    return _scope
