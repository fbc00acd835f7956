from __future__ import annotations

"""
Central enum definitions used across the Media CMS.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (Postgres enums depend on them).
"""

from enum import Enum as PyEnum


# ──────────────────────────────────────────────────────────────
# Catalog
# ──────────────────────────────────────────────────────────────
class ProgramType(str, PyEnum):
    """Kind of program an episode belongs to."""
    PODCAST = "podcast"
    DOCUMENTARY = "documentary"
    SERIES = "series"


class Language(str, PyEnum):
    """Program language codes supported by the search analyzers."""
    ARABIC = "ar"
    ENGLISH = "en"


# ──────────────────────────────────────────────────────────────
# Publication lifecycle
# ──────────────────────────────────────────────────────────────
class EpisodeStatus(str, PyEnum):
    """
    Derived publication state of an episode.

    Never set directly by clients: always computed from video presence and
    publication date (see `PublicationService.determine_status`).
    """
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


__all__ = ["ProgramType", "Language", "EpisodeStatus"]
