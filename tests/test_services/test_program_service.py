from datetime import timedelta
from uuid import uuid4

import pytest

from app.core.events import ProgramCreated, ProgramDeleted, ProgramUpdated
from app.core.exceptions import NotFoundException
from app.schemas.enums import Language, ProgramType
from app.schemas.programs import ProgramCreate, ProgramUpdate
from tests.fixtures.fakes import FIXED_NOW, make_episode, make_program


@pytest.mark.anyio
async def test_create_commits_then_announces(program_service, programs_repo, recorder):
    data = ProgramCreate(
        title="Desert Stories",
        type=ProgramType.DOCUMENTARY,
        category="Culture",
        language=Language.ARABIC,
    )

    program = await program_service.create(data)

    assert programs_repo.rows[program.id] is program
    assert programs_repo.commits == 1
    assert recorder.of_type(ProgramCreated)[0].program is program


@pytest.mark.anyio
async def test_list_is_newest_first_with_page_math(program_service, programs_repo):
    for days in range(5):
        programs_repo.add(make_program(title=f"P{days}", created_at=FIXED_NOW + timedelta(days=days)))

    page = await program_service.list(page=1, limit=2)

    assert [p.title for p in page["items"]] == ["P4", "P3"]
    assert page["total"] == 5
    assert page["total_pages"] == 3


@pytest.mark.anyio
async def test_get_returns_ordered_episodes(program_service, programs_repo, episodes_repo):
    program = programs_repo.add(make_program(type=ProgramType.SERIES))
    episodes_repo.add(make_episode(program_id=program.id, season_number=2, episode_number=1))
    episodes_repo.add(make_episode(program_id=program.id, season_number=1, episode_number=2))
    episodes_repo.add(make_episode(program_id=program.id, season_number=1, episode_number=1))
    episodes_repo.add(make_episode())

    found, episodes = await program_service.get(program.id)

    assert found is program
    assert [(e.season_number, e.episode_number) for e in episodes] == [(1, 1), (1, 2), (2, 1)]


@pytest.mark.anyio
async def test_get_missing_is_404(program_service):
    with pytest.raises(NotFoundException):
        await program_service.get(uuid4())


@pytest.mark.anyio
async def test_update_is_sparse_and_announced(program_service, programs_repo, recorder):
    program = programs_repo.add(make_program(description="old", cover_image_url="https://img.test/a.png"))

    await program_service.update(program.id, ProgramUpdate(category="Science", title=None, cover_image_url=None))

    assert program.category == "Science"
    assert program.title == "Tech Talks"
    assert program.cover_image_url is None
    assert program.description == "old"
    assert program.updated_at > FIXED_NOW
    assert recorder.of_type(ProgramUpdated)[0].program is program


@pytest.mark.anyio
async def test_update_missing_is_404(program_service):
    with pytest.raises(NotFoundException):
        await program_service.update(uuid4(), ProgramUpdate(title="x"))


@pytest.mark.anyio
async def test_remove_cascades_to_episodes(program_service, programs_repo, episodes_repo, recorder):
    program = programs_repo.add(make_program())
    ep = episodes_repo.add(make_episode(program_id=program.id))
    other = episodes_repo.add(make_episode())

    await program_service.remove(program.id)

    assert program.id not in programs_repo.rows
    assert ep.id not in episodes_repo.rows
    assert other.id in episodes_repo.rows
    assert recorder.of_type(ProgramDeleted)[0].program_id == program.id


@pytest.mark.anyio
async def test_remove_missing_is_404_and_silent(program_service, recorder):
    with pytest.raises(NotFoundException):
        await program_service.remove(uuid4())
    assert recorder.events == []
