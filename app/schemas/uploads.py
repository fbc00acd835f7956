from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SignUploadRequest(BaseModel):
    episode_id: UUID
    file_name: str = Field(..., min_length=1, max_length=255, examples=["episode-1.mp4"])
    content_type: str = Field(..., min_length=1, max_length=100, examples=["video/mp4", "video/webm", "video/quicktime"])


class UploadHandle(BaseModel):
    """Presigned PUT the client uploads the video to, out of band."""
    upload_url: str
    key: str
    expires_in: int
    expires_at: datetime
