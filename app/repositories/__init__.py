"""
Repository package for data access layers.

Repositories wrap one `AsyncSession` and never commit on their own: the
service that owns the unit of work calls `commit()` once its writes are done.
"""

from app.repositories.episodes import EpisodeRepository
from app.repositories.programs import ProgramRepository

__all__ = ["EpisodeRepository", "ProgramRepository"]
