from __future__ import annotations

"""
🎬 Media CMS — Episode
======================

A single **Episode** of a `Program`, carrying the publication lifecycle.

Lifecycle
---------
`status` is *derived*, never client-chosen:

    no video                        → draft
    video, no publication date      → published
    video, publication date > now   → scheduled
    video, publication date <= now  → published

Writers (episode service, upload listener, scheduler) recompute it on every
status-relevant write; see `PublicationService.determine_status`.

Uniqueness
----------
`(program_id, season_number, episode_number)` is unique, and an episode
without a season forms its own group. Postgres treats NULLs as distinct in a
plain unique index, so this is enforced by two *partial* unique indexes.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin
from app.schemas.enums import EpisodeStatus


# ─────────────────────────────────────────────────────────────
# 📦 Model
# ─────────────────────────────────────────────────────────────
class Episode(UUIDPKMixin, TimestampMixin, Base):
    __tablename__ = "episodes"

    program_id = Column(
        UUID(as_uuid=True),
        ForeignKey("programs.id", ondelete="CASCADE"),
        nullable=False,
    )

    # ── Descriptive ───────────────────────────────────────────
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    duration_in_seconds = Column(Integer, nullable=False)
    episode_number = Column(Integer, nullable=False)
    season_number = Column(Integer, nullable=True)
    extra_info = Column(JSONB, nullable=True)

    # ── Media pointers ────────────────────────────────────────
    video_url = Column(Text, nullable=True, doc="Public URL of the uploaded video; NULL until the upload completes.")
    thumbnail_url = Column(Text, nullable=True)

    # ── Publication ───────────────────────────────────────────
    publication_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(
        Enum(
            EpisodeStatus,
            name="episode_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=EpisodeStatus.DRAFT,
        server_default=text("'draft'"),
    )

    # ──────────────────────────────────────────────────────────
    # 🔒 Constraints & 📇 Indexes
    # ──────────────────────────────────────────────────────────
    __table_args__ = (
        CheckConstraint("length(btrim(title)) > 0", name="title_not_blank"),
        CheckConstraint("duration_in_seconds >= 0", name="duration_nonneg"),
        CheckConstraint("episode_number >= 1", name="episode_number_positive"),
        CheckConstraint("season_number IS NULL OR season_number >= 1", name="season_number_positive"),

        # One episode number per (program, season)
        Index(
            "uq_episodes_program_season_number",
            "program_id",
            "season_number",
            "episode_number",
            unique=True,
            postgresql_where=text("season_number IS NOT NULL"),
        ),
        # ...and per program for season-less episodes
        Index(
            "uq_episodes_program_number_no_season",
            "program_id",
            "episode_number",
            unique=True,
            postgresql_where=text("season_number IS NULL"),
        ),

        Index("ix_episodes_program_id", "program_id"),
        Index("ix_episodes_status", "status"),
        Index("ix_episodes_publication_date", "publication_date"),
        # Scheduler sweep: status = 'scheduled' AND publication_date <= now
        Index("ix_episodes_status_publication_date", "status", "publication_date"),
    )

    __mapper_args__ = {"eager_defaults": True}

    program = relationship(
        "Program",
        back_populates="episodes",
        passive_deletes=True,
        lazy="raise",
    )
