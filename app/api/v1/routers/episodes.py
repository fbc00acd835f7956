"""
🎧 Media CMS · Episodes API
===========================

Episode CRUD plus the manual publication transitions.

Routes (9)
----------
- POST   /api/v1/programs/{program_id}/episodes   → Create (draft) + presigned video upload
- GET    /api/v1/programs/{program_id}/episodes   → List (status / date filters, paginated)
- GET    /api/v1/episodes/{id}                    → Get episode
- PATCH  /api/v1/episodes/{id}                    → Sparse update (status recomputed)
- DELETE /api/v1/episodes/{id}                    → Delete
- POST   /api/v1/episodes/{id}/publish            → Publish now (requires video)
- POST   /api/v1/episodes/{id}/schedule           → Schedule for a date (requires video)
- PATCH  /api/v1/episodes/{id}/cancel-schedule    → Back to draft (scheduled only)
- POST   /api/v1/episodes/{id}/thumbnail          → Upload JPEG/PNG thumbnail

Notes
-----
- Video bytes never pass through this API: clients PUT to the presigned URL
  and the upload listener flips the status once S3 reports the object.
- Responses carrying presigned URLs are marked `Cache-Control: no-store`.
"""

# ── [Imports] ───────────────────────────────────────────────────────────────
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile, status

from app.core.config import settings
from app.core.exceptions import InvalidOperationException
from app.core.limiter import rate_limit
from app.core.security import CurrentUser, get_current_user
from app.dependencies.services import get_episode_service, get_publication_service
from app.schemas.enums import EpisodeStatus
from app.schemas.episodes import (
    EpisodeCreate,
    EpisodeCreated,
    EpisodeRead,
    EpisodeUpdate,
    PaginatedEpisodes,
    ScheduleRequest,
)
from app.security_headers import set_sensitive_cache
from app.services.episode_service import EpisodeService
from app.services.publication_service import PublicationService

# ── [Router] ────────────────────────────────────────────────────────────────
router = APIRouter(tags=["Episodes"])


# ╔═══════════════════════════════ Program-scoped ════════════════════════════╗

@router.post(
    "/programs/{program_id}/episodes",
    summary="Create episode (returns a presigned video upload)",
    response_model=EpisodeCreated,
    status_code=status.HTTP_201_CREATED,
)
@rate_limit("30/minute")
async def create_episode(
    program_id: UUID,
    payload: EpisodeCreate,
    request: Request,
    response: Response,
    service: EpisodeService = Depends(get_episode_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> EpisodeCreated:
    """
    Create an episode under a program.

    The episode always starts as `draft` (no video yet). The returned
    `upload.upload_url` accepts a single PUT of the video for one hour.
    """
    set_sensitive_cache(response)
    episode, handle = await service.create(program_id, payload)
    return EpisodeCreated(**EpisodeRead.model_validate(episode).model_dump(), upload=handle)


@router.get(
    "/programs/{program_id}/episodes",
    summary="List episodes of a program",
    response_model=PaginatedEpisodes,
)
@rate_limit("120/minute")
async def list_episodes(
    program_id: UUID,
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[EpisodeStatus] = Query(None, alias="status"),
    published_after: Optional[datetime] = Query(None),
    published_before: Optional[datetime] = Query(None),
    service: EpisodeService = Depends(get_episode_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    result = await service.list_for_program(
        program_id,
        page=page,
        limit=limit,
        status=status_filter,
        published_after=published_after,
        published_before=published_before,
    )
    result["items"] = [EpisodeRead.model_validate(e) for e in result["items"]]
    return result


# ╔═══════════════════════════════ Episode CRUD ══════════════════════════════╗

@router.get("/episodes/{episode_id}", summary="Get episode", response_model=EpisodeRead)
@rate_limit("120/minute")
async def get_episode(
    episode_id: UUID,
    request: Request,
    service: EpisodeService = Depends(get_episode_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> EpisodeRead:
    return EpisodeRead.model_validate(await service.get(episode_id))


@router.patch("/episodes/{episode_id}", summary="Update episode", response_model=EpisodeRead)
@rate_limit("30/minute")
async def update_episode(
    episode_id: UUID,
    payload: EpisodeUpdate,
    request: Request,
    service: EpisodeService = Depends(get_episode_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> EpisodeRead:
    return EpisodeRead.model_validate(await service.update(episode_id, payload))


@router.delete(
    "/episodes/{episode_id}",
    summary="Delete episode",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
@rate_limit("10/minute")
async def delete_episode(
    episode_id: UUID,
    request: Request,
    service: EpisodeService = Depends(get_episode_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    await service.remove(episode_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ╔═══════════════════════════════ Publication ═══════════════════════════════╗

@router.post("/episodes/{episode_id}/publish", summary="Publish now", response_model=EpisodeRead)
@rate_limit("30/minute")
async def publish_episode(
    episode_id: UUID,
    request: Request,
    publication: PublicationService = Depends(get_publication_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> EpisodeRead:
    return EpisodeRead.model_validate(await publication.publish_now(episode_id))


@router.post("/episodes/{episode_id}/schedule", summary="Schedule publication", response_model=EpisodeRead)
@rate_limit("30/minute")
async def schedule_episode(
    episode_id: UUID,
    payload: ScheduleRequest,
    request: Request,
    publication: PublicationService = Depends(get_publication_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> EpisodeRead:
    """A date in the past publishes immediately."""
    episode = await publication.schedule_publication(episode_id, payload.publication_date)
    return EpisodeRead.model_validate(episode)


@router.patch(
    "/episodes/{episode_id}/cancel-schedule",
    summary="Cancel scheduled publication",
    response_model=EpisodeRead,
)
@rate_limit("30/minute")
async def cancel_episode_schedule(
    episode_id: UUID,
    request: Request,
    publication: PublicationService = Depends(get_publication_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> EpisodeRead:
    return EpisodeRead.model_validate(await publication.cancel_schedule(episode_id))


# ╔═══════════════════════════════ Thumbnail ═════════════════════════════════╗

@router.post("/episodes/{episode_id}/thumbnail", summary="Upload thumbnail", response_model=EpisodeRead)
@rate_limit("10/minute")
async def upload_episode_thumbnail(
    episode_id: UUID,
    request: Request,
    file: UploadFile = File(..., description="JPEG or PNG image"),
    service: EpisodeService = Depends(get_episode_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> EpisodeRead:
    # One byte past the cap marks an oversize file
    data = await file.read(settings.THUMBNAIL_MAX_BYTES + 1)
    await file.close()
    if len(data) > settings.THUMBNAIL_MAX_BYTES:
        raise InvalidOperationException(
            "Thumbnail exceeds the maximum allowed size",
            details={"max_bytes": settings.THUMBNAIL_MAX_BYTES},
        )
    episode = await service.upload_thumbnail(
        episode_id,
        file_name=file.filename or "thumbnail",
        content_type=file.content_type,
        data=data,
    )
    return EpisodeRead.model_validate(episode)
