"""
📦 Media CMS · Upload signing
=============================

- POST /api/v1/upload/sign-video → Presigned PUT for `episodes/<id>/<file_name>`

Re-issues an upload handle for an existing episode (e.g. the one returned at
creation expired). The episode row is not touched; its status changes only
when the object-created notification arrives.
"""

from fastapi import APIRouter, Depends, Request, Response

from app.core.limiter import rate_limit
from app.core.security import CurrentUser, get_current_user
from app.dependencies.services import get_episode_service
from app.schemas.uploads import SignUploadRequest, UploadHandle
from app.security_headers import set_sensitive_cache
from app.services.episode_service import EpisodeService

router = APIRouter(prefix="/upload", tags=["Uploads"])


@router.post("/sign-video", summary="Presigned video upload URL", response_model=UploadHandle)
@rate_limit("30/minute")
async def sign_video_upload(
    payload: SignUploadRequest,
    request: Request,
    response: Response,
    service: EpisodeService = Depends(get_episode_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> UploadHandle:
    set_sensitive_cache(response)
    return await service.request_upload(payload.episode_id, payload.file_name, payload.content_type)
