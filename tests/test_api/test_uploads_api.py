# tests/test_api/test_uploads_api.py
from __future__ import annotations

from uuid import uuid4

import pytest

from app.core.config import settings
from tests.fixtures.fakes import make_episode

URL = f"{settings.API_V1_STR}/upload/sign-video"


@pytest.mark.anyio
async def test_sign_video_returns_presigned_put(client, auth_headers, episodes_repo, storage):
    ep = episodes_repo.add(make_episode())
    body = {"episode_id": str(ep.id), "file_name": "episode-1.mp4", "content_type": "video/mp4"}

    resp = await client.post(URL, json=body, headers=auth_headers)

    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["key"] == f"episodes/{ep.id}/episode-1.mp4"
    assert data["upload_url"].startswith("https://uploads.test/")
    assert storage.signed == [(data["key"], "video/mp4", 3600)]
    assert resp.headers["cache-control"].startswith("no-store")
    assert ep.status == "draft"


@pytest.mark.anyio
async def test_sign_video_unknown_episode_is_404(client, auth_headers):
    body = {"episode_id": str(uuid4()), "file_name": "a.mp4", "content_type": "video/mp4"}
    resp = await client.post(URL, json=body, headers=auth_headers)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_sign_video_requires_file_name(client, auth_headers):
    body = {"episode_id": str(uuid4()), "file_name": "", "content_type": "video/mp4"}
    resp = await client.post(URL, json=body, headers=auth_headers)
    assert resp.status_code == 422
