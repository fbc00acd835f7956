from __future__ import annotations

"""
Service providers (FastAPI dependencies)
----------------------------------------
Builds the per-request service graph on top of one `AsyncSession`, so every
repository a request touches shares the same transaction.

Exports
- get_storage: process-wide S3 gateway (503 when storage is not configured)
- get_publication_service / get_episode_service / get_program_service
- get_discovery_service: public read side over the search projection (503
  when search is disabled or not started)

Tests override these with `app.dependency_overrides[...]`.
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.events import event_bus
from app.core.redis_client import redis_wrapper
from app.db.session import get_async_db
from app.repositories import EpisodeRepository, ProgramRepository
from app.services.discovery_service import DiscoveryService
from app.services.episode_service import EpisodeService
from app.services.program_service import ProgramService
from app.services.publication_service import PublicationService
from app.utils.aws import S3Client, S3StorageError, get_s3_client


def get_storage() -> S3Client:
    try:
        return get_s3_client()
    except S3StorageError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


def get_publication_service(db: AsyncSession = Depends(get_async_db)) -> PublicationService:
    return PublicationService(EpisodeRepository(db), bus=event_bus)


def get_episode_service(
    db: AsyncSession = Depends(get_async_db),
    storage: S3Client = Depends(get_storage),
) -> EpisodeService:
    episodes = EpisodeRepository(db)
    return EpisodeService(
        episodes,
        ProgramRepository(db),
        storage,
        publication=PublicationService(episodes, bus=event_bus),
        bus=event_bus,
    )


def get_program_service(db: AsyncSession = Depends(get_async_db)) -> ProgramService:
    return ProgramService(ProgramRepository(db), EpisodeRepository(db), bus=event_bus)


def get_discovery_service(request: Request) -> DiscoveryService:
    runtime = getattr(request.app.state, "runtime", None)
    search = getattr(runtime, "search", None)
    if search is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Search is not available")
    return DiscoveryService(search, cache=redis_wrapper if runtime.redis_connected else None)


__all__ = [
    "get_storage",
    "get_publication_service",
    "get_episode_service",
    "get_program_service",
    "get_discovery_service",
]
