from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.core.events import EpisodeDeleted, EpisodeStatusChanged
from app.core.exceptions import ConflictException, InvalidOperationException, NotFoundException
from app.schemas.enums import EpisodeStatus
from app.schemas.episodes import EpisodeCreate, EpisodeUpdate
from tests.fixtures.fakes import make_episode, make_program


def _future(days: int = 30) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


@pytest.fixture()
def program(programs_repo):
    return programs_repo.add(make_program())


# ─────────────────────────────────────────────────────────────
# create
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_create_is_draft_with_upload_handle(episode_service, program, storage, recorder, clock):
    data = EpisodeCreate(title="Pilot", duration_in_seconds=1200, episode_number=1, publication_date=_future())

    episode, handle = await episode_service.create(program.id, data)

    assert episode.status == EpisodeStatus.DRAFT
    assert episode.program_id == program.id
    assert handle.key == f"episodes/{episode.id}/original"
    assert handle.upload_url.startswith("https://uploads.test/")
    assert handle.expires_in == 3600
    assert handle.expires_at == clock() + timedelta(seconds=3600)
    assert storage.signed[0][0] == handle.key
    assert len(recorder.of_type(EpisodeStatusChanged)) == 1


@pytest.mark.anyio
async def test_create_for_missing_program_is_404(episode_service):
    data = EpisodeCreate(title="Pilot", duration_in_seconds=1, episode_number=1)
    with pytest.raises(NotFoundException):
        await episode_service.create(uuid4(), data)


@pytest.mark.anyio
async def test_create_duplicate_number_conflicts(episode_service, program, episodes_repo):
    episodes_repo.add(make_episode(program_id=program.id, season_number=1, episode_number=3))
    data = EpisodeCreate(title="Again", duration_in_seconds=1, episode_number=3, season_number=1)

    with pytest.raises(ConflictException):
        await episode_service.create(program.id, data)


@pytest.mark.anyio
async def test_same_number_in_other_season_is_allowed(episode_service, program, episodes_repo):
    episodes_repo.add(make_episode(program_id=program.id, season_number=1, episode_number=3))
    data = EpisodeCreate(title="S2E3", duration_in_seconds=1, episode_number=3, season_number=2)
    episode, _ = await episode_service.create(program.id, data)
    assert episode.season_number == 2


def test_create_rejects_past_publication_date():
    with pytest.raises(ValueError):
        EpisodeCreate(
            title="Late",
            duration_in_seconds=1,
            episode_number=1,
            publication_date=datetime.now(timezone.utc) - timedelta(minutes=1),
        )


# ─────────────────────────────────────────────────────────────
# list / get
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_list_filters_by_status_and_paginates(episode_service, program, episodes_repo):
    for n in range(1, 4):
        episodes_repo.add(make_episode(program_id=program.id, episode_number=n, status=EpisodeStatus.PUBLISHED))
    episodes_repo.add(make_episode(program_id=program.id, episode_number=9))

    page = await episode_service.list_for_program(program.id, page=2, limit=2, status=EpisodeStatus.PUBLISHED)

    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert [e.episode_number for e in page["items"]] == [3]


@pytest.mark.anyio
async def test_list_unknown_program_is_404(episode_service):
    with pytest.raises(NotFoundException):
        await episode_service.list_for_program(uuid4())


# ─────────────────────────────────────────────────────────────
# update
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_update_future_date_on_uploaded_episode_schedules(episode_service, episodes_repo, clock):
    ep = episodes_repo.add(make_episode(video_url="v", status=EpisodeStatus.PUBLISHED))

    updated = await episode_service.update(ep.id, EpisodeUpdate(publication_date=clock() + timedelta(days=1)))

    assert updated.status == EpisodeStatus.SCHEDULED
    assert updated.updated_at == clock()


@pytest.mark.anyio
async def test_update_clearing_date_publishes_uploaded_episode(episode_service, episodes_repo, clock):
    ep = episodes_repo.add(
        make_episode(video_url="v", status=EpisodeStatus.SCHEDULED, publication_date=clock() + timedelta(days=1))
    )
    updated = await episode_service.update(ep.id, EpisodeUpdate(publication_date=None))
    assert updated.publication_date is None
    assert updated.status == EpisodeStatus.PUBLISHED


@pytest.mark.anyio
async def test_update_without_video_stays_draft(episode_service, episodes_repo, clock):
    ep = episodes_repo.add(make_episode())
    updated = await episode_service.update(ep.id, EpisodeUpdate(publication_date=clock() - timedelta(days=1)))
    assert updated.status == EpisodeStatus.DRAFT


@pytest.mark.anyio
async def test_title_edit_after_cancel_keeps_draft(episode_service, publication, episodes_repo, clock):
    ep = episodes_repo.add(
        make_episode(video_url="v", status=EpisodeStatus.SCHEDULED, publication_date=clock() + timedelta(days=1))
    )
    await publication.cancel_schedule(ep.id)

    updated = await episode_service.update(ep.id, EpisodeUpdate(title="Typo fix"))

    assert updated.title == "Typo fix"
    assert updated.status == EpisodeStatus.DRAFT
    assert updated.publication_date is None


@pytest.mark.anyio
async def test_non_date_edit_leaves_published_status(episode_service, episodes_repo):
    ep = episodes_repo.add(make_episode(video_url="v", status=EpisodeStatus.PUBLISHED))
    await episode_service.update(ep.id, EpisodeUpdate(description="Show notes"))
    assert "status" not in episodes_repo.updates[-1][1]
    assert ep.status == EpisodeStatus.PUBLISHED


@pytest.mark.anyio
async def test_update_ignores_null_on_required_fields(episode_service, episodes_repo):
    ep = episodes_repo.add(make_episode(title="Keep me"))
    await episode_service.update(ep.id, EpisodeUpdate(title=None, description="new"))
    assert ep.title == "Keep me"
    assert ep.description == "new"


@pytest.mark.anyio
async def test_update_renumber_into_taken_slot_conflicts(episode_service, episodes_repo):
    program_id = uuid4()
    episodes_repo.add(make_episode(program_id=program_id, episode_number=1))
    second = episodes_repo.add(make_episode(program_id=program_id, episode_number=2))

    with pytest.raises(ConflictException):
        await episode_service.update(second.id, EpisodeUpdate(episode_number=1))


# ─────────────────────────────────────────────────────────────
# remove / uploads
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_remove_announces_deletion(episode_service, episodes_repo, recorder):
    ep = episodes_repo.add(make_episode())
    await episode_service.remove(ep.id)
    assert ep.id not in episodes_repo.rows
    assert recorder.of_type(EpisodeDeleted)[0].episode_id == ep.id


@pytest.mark.anyio
async def test_remove_missing_is_404(episode_service):
    with pytest.raises(NotFoundException):
        await episode_service.remove(uuid4())


@pytest.mark.anyio
async def test_request_upload_does_not_touch_episode(episode_service, episodes_repo, storage):
    ep = episodes_repo.add(make_episode())

    handle = await episode_service.request_upload(ep.id, "cut-2.mp4", "video/mp4")

    assert handle.key == f"episodes/{ep.id}/cut-2.mp4"
    assert storage.signed[-1][1] == "video/mp4"
    assert episodes_repo.updates == []


@pytest.mark.anyio
async def test_thumbnail_upload_stores_and_links(episode_service, episodes_repo, storage):
    ep = episodes_repo.add(make_episode())

    updated = await episode_service.upload_thumbnail(
        ep.id, file_name="cover.png", content_type="image/png", data=b"\x89PNG...."
    )

    (key,) = storage.objects
    assert key.startswith("thumbnails/") and key.endswith("-cover.png")
    assert updated.thumbnail_url == f"https://cdn.test/{key}"


@pytest.mark.anyio
@pytest.mark.parametrize("content_type, data", [("image/gif", b"GIF89a"), ("image/png", b"")])
async def test_thumbnail_rejects_bad_input(episode_service, episodes_repo, storage, content_type, data):
    ep = episodes_repo.add(make_episode())
    with pytest.raises(InvalidOperationException):
        await episode_service.upload_thumbnail(ep.id, file_name="x", content_type=content_type, data=data)
    assert storage.objects == {}
