from datetime import timedelta
from uuid import uuid4

import pytest

from app.core.events import EpisodeStatusChanged
from app.core.exceptions import InvalidOperationException, NotFoundException
from app.schemas.enums import EpisodeStatus
from tests.fixtures.fakes import make_episode

VIDEO = "https://cdn.test/episodes/x/original"


# ─────────────────────────────────────────────────────────────
# schedule_publication
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_schedule_future_date_sets_scheduled(publication, episodes_repo, recorder, clock):
    ep = episodes_repo.add(make_episode(video_url=VIDEO, status=EpisodeStatus.PUBLISHED))
    when = clock() + timedelta(days=2)

    updated = await publication.schedule_publication(ep.id, when)

    assert updated.status == EpisodeStatus.SCHEDULED
    assert updated.publication_date == when
    assert updated.updated_at == clock()
    assert episodes_repo.commits == 1
    assert [type(e) for e in recorder.events] == [EpisodeStatusChanged]


@pytest.mark.anyio
async def test_schedule_past_date_publishes_immediately(publication, episodes_repo, clock):
    ep = episodes_repo.add(make_episode(video_url=VIDEO))
    updated = await publication.schedule_publication(ep.id, clock() - timedelta(hours=1))
    assert updated.status == EpisodeStatus.PUBLISHED


@pytest.mark.anyio
async def test_schedule_without_video_is_rejected_and_untouched(publication, episodes_repo, recorder, clock):
    ep = episodes_repo.add(make_episode(status=EpisodeStatus.DRAFT))

    with pytest.raises(InvalidOperationException) as exc:
        await publication.schedule_publication(ep.id, clock() + timedelta(days=1))

    assert "video" in exc.value.message
    assert ep.status == EpisodeStatus.DRAFT
    assert ep.publication_date is None
    assert episodes_repo.updates == []
    assert recorder.events == []


@pytest.mark.anyio
async def test_schedule_unknown_episode_is_404(publication, clock):
    with pytest.raises(NotFoundException):
        await publication.schedule_publication(uuid4(), clock() + timedelta(days=1))


# ─────────────────────────────────────────────────────────────
# publish_now
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_publish_now_stamps_date_and_status(publication, episodes_repo, recorder, clock):
    ep = episodes_repo.add(
        make_episode(video_url=VIDEO, status=EpisodeStatus.SCHEDULED, publication_date=clock() + timedelta(days=3))
    )

    updated = await publication.publish_now(ep.id)

    assert updated.status == EpisodeStatus.PUBLISHED
    assert updated.publication_date == clock()
    assert len(recorder.of_type(EpisodeStatusChanged)) == 1


@pytest.mark.anyio
async def test_publish_now_requires_video(publication, episodes_repo):
    ep = episodes_repo.add(make_episode())
    with pytest.raises(InvalidOperationException):
        await publication.publish_now(ep.id)
    assert ep.status == EpisodeStatus.DRAFT


# ─────────────────────────────────────────────────────────────
# cancel_schedule
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_cancel_scheduled_goes_back_to_draft(publication, episodes_repo, clock):
    ep = episodes_repo.add(
        make_episode(video_url=VIDEO, status=EpisodeStatus.SCHEDULED, publication_date=clock() + timedelta(days=1))
    )

    updated = await publication.cancel_schedule(ep.id)

    assert updated.status == EpisodeStatus.DRAFT
    assert updated.publication_date is None
    assert updated.video_url == VIDEO


@pytest.mark.anyio
@pytest.mark.parametrize("status", [EpisodeStatus.DRAFT, EpisodeStatus.PUBLISHED])
async def test_cancel_requires_scheduled(publication, episodes_repo, status):
    ep = episodes_repo.add(make_episode(video_url=VIDEO, status=status))

    with pytest.raises(InvalidOperationException) as exc:
        await publication.cancel_schedule(ep.id)

    assert exc.value.details == {"status": status.value}
    assert ep.status == status


# ─────────────────────────────────────────────────────────────
# process_scheduled_publications
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_process_promotes_only_due_episodes(publication, episodes_repo, recorder, clock):
    now = clock()
    due = episodes_repo.add(
        make_episode(video_url=VIDEO, status=EpisodeStatus.SCHEDULED, publication_date=now - timedelta(minutes=5))
    )
    future = episodes_repo.add(
        make_episode(video_url=VIDEO, status=EpisodeStatus.SCHEDULED, publication_date=now + timedelta(minutes=5))
    )

    assert await publication.process_scheduled_publications(now) == 1

    assert due.status == EpisodeStatus.PUBLISHED
    assert due.updated_at == now
    assert future.status == EpisodeStatus.SCHEDULED
    assert [e.episode.id for e in recorder.of_type(EpisodeStatusChanged)] == [due.id]


@pytest.mark.anyio
async def test_process_is_idempotent_for_the_same_now(publication, episodes_repo, clock):
    now = clock()
    episodes_repo.add(
        make_episode(video_url=VIDEO, status=EpisodeStatus.SCHEDULED, publication_date=now - timedelta(seconds=1))
    )

    assert await publication.process_scheduled_publications(now) == 1
    assert await publication.process_scheduled_publications(now) == 0


@pytest.mark.anyio
async def test_process_skips_scheduled_episode_without_video(publication, episodes_repo, recorder, clock):
    now = clock()
    orphan = episodes_repo.add(
        make_episode(status=EpisodeStatus.SCHEDULED, publication_date=now - timedelta(minutes=1))
    )

    assert await publication.process_scheduled_publications(now) == 0
    assert orphan.status == EpisodeStatus.SCHEDULED
    assert episodes_repo.commits == 0
    assert recorder.events == []


@pytest.mark.anyio
async def test_process_with_nothing_due_does_not_commit(publication, episodes_repo):
    assert await publication.process_scheduled_publications() == 0
    assert episodes_repo.commits == 0
