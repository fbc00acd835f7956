from __future__ import annotations

"""
🎙️ Media CMS — Program
======================

A **Program** is the catalog container for episodes: a podcast, a
documentary or a series.

Relationships
-------------
• `Program.episodes`  ↔  `Episode.program`  (cascade delete, DB-enforced)

Notes
-----
• `type` and `language` are Postgres enums (`program_type`, `language_code`)
  storing the lowercase enum *values*.
• `extra_info` is free-form JSONB metadata owned by editors.
"""

from sqlalchemy import CheckConstraint, Column, Enum, Index, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from app.db.base_class import Base, TimestampMixin, UUIDPKMixin
from app.schemas.enums import Language, ProgramType


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


# ─────────────────────────────────────────────────────────────
# 📦 Model
# ─────────────────────────────────────────────────────────────
class Program(UUIDPKMixin, TimestampMixin, Base):
    __tablename__ = "programs"

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(
        Enum(ProgramType, name="program_type", values_callable=_enum_values),
        nullable=False,
    )
    category = Column(Text, nullable=False)
    language = Column(
        Enum(Language, name="language_code", values_callable=_enum_values),
        nullable=False,
    )
    cover_image_url = Column(Text, nullable=True)
    extra_info = Column(JSONB, nullable=True)

    # ── Constraints & Indexes ─────────────────────────────────
    __table_args__ = (
        CheckConstraint("length(btrim(title)) > 0", name="title_not_blank"),
        Index("ix_programs_category", "category"),
        Index("ix_programs_type", "type"),
    )

    __mapper_args__ = {"eager_defaults": True}

    # Loaded explicitly by the repository (ordered); never lazily under asyncio
    episodes = relationship(
        "Episode",
        back_populates="program",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )
