from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.exceptions import NotFoundException
from app.schemas.discovery import SearchResult
from app.services.discovery_service import DiscoveryService
from app.services.search_service import SearchService


def _hit(index, source):
    return {"_index": index, "_id": source["id"], "_source": source}


PROGRAM_ID = str(uuid4())
EPISODE_ID = str(uuid4())

PROGRAM_DOC = {
    "id": PROGRAM_ID,
    "title": "Tech Talks",
    "description": "Weekly tech",
    "type": "podcast",
    "category": "Technology",
    "language": "en",
    "coverImageUrl": "https://cdn.test/cover.png",
    "extraInfo": {"host": "Sara"},
    "createdAt": "2025-01-01T00:00:00+00:00",
}

EPISODE_DOC = {
    "id": EPISODE_ID,
    "programId": PROGRAM_ID,
    "title": "Pilot",
    "durationInSeconds": 1800,
    "publicationDate": "2025-01-10T08:00:00+00:00",
    "videoUrl": "https://cdn.test/v.mp4",
    "thumbnailUrl": "https://cdn.test/t.png",
    "status": "published",
    "episodeNumber": 1,
    "seasonNumber": None,
}


class _FakeES:
    """Answers `search` with canned hits and `get` from a dict of documents."""

    def __init__(self, hits=(), docs=None, missing_index=False):
        self.hits = list(hits)
        self.docs = docs or {}
        self.missing_index = missing_index
        self.searches = []
        self.gets = []
        self.options_kw = []

    def options(self, **kw):
        self.options_kw.append(kw)
        return self

    async def search(self, **kw):
        self.searches.append(kw)
        if self.missing_index:
            return {"error": {"type": "index_not_found_exception"}, "status": 404}
        return {"hits": {"total": {"value": len(self.hits)}, "hits": self.hits}}

    async def get(self, index, id):
        self.gets.append((index, id))
        doc = self.docs.get((index, id))
        if doc is None:
            return {"_index": index, "_id": id, "found": False}
        return {"_index": index, "_id": id, "found": True, "_source": doc}


class _DictCache:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def json_get(self, key, default=None):
        return self.data.get(key, default)

    async def json_set(self, key, value, *, ttl_seconds=None):
        self.data[key] = value
        self.ttls[key] = ttl_seconds


class _DownCache:
    async def json_get(self, key, default=None):
        raise RedisConnectionError("redis down")

    async def json_set(self, key, value, *, ttl_seconds=None):
        raise RedisConnectionError("redis down")


def _service(es, cache=None):
    return DiscoveryService(SearchService(client=es), cache=cache)


# ─────────────────────────────────────────────────────────────
# search
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_search_builds_weighted_query_with_filters():
    es = _FakeES()
    await _service(es).search("tech", category="Technology", language="en", page=3, size=5)

    (call,) = es.searches
    assert call["index"] == "programs,episodes"
    assert call["from_"] == 10
    assert call["size"] == 5
    bool_q = call["query"]["bool"]
    assert bool_q["must"][0]["multi_match"]["fields"] == ["title^2", "description"]
    assert {"term": {"category": "Technology"}} in bool_q["filter"]
    assert {"term": {"language": "en"}} in bool_q["filter"]
    assert es.options_kw[-1] == {"ignore_status": 404}


@pytest.mark.anyio
async def test_empty_query_matches_everything():
    es = _FakeES()
    await _service(es).search(None)
    assert es.searches[0]["query"]["bool"]["must"] == [{"match_all": {}}]
    assert es.searches[0]["query"]["bool"]["filter"] == []


@pytest.mark.anyio
async def test_search_maps_program_and_episode_hits():
    es = _FakeES(hits=[_hit("programs", PROGRAM_DOC), _hit("episodes", EPISODE_DOC)])

    result = await _service(es).search("tech")

    assert result.total == 2
    assert (result.page, result.limit) == (1, 10)
    program, episode = result.items
    assert program.type == "program"
    assert program.program_type == "podcast"
    assert program.cover_image_url == "https://cdn.test/cover.png"
    assert episode.type == "episode"
    assert episode.program_id == PROGRAM_ID
    assert episode.duration_in_seconds == 1800
    assert episode.publication_date.year == 2025


@pytest.mark.anyio
async def test_missing_index_yields_empty_result():
    result = await _service(_FakeES(missing_index=True)).search("anything")
    assert result.items == []
    assert result.total == 0


# ─────────────────────────────────────────────────────────────
# cache
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_search_result_is_cached_with_ttl():
    es = _FakeES(hits=[_hit("programs", PROGRAM_DOC)])
    cache = _DictCache()
    service = _service(es, cache)

    first = await service.search("tech", page=1, size=10)
    second = await service.search("tech", page=1, size=10)

    assert len(es.searches) == 1
    assert second == first
    (key,) = cache.data
    assert key == "discovery:search|tech|||1|10"
    assert cache.ttls[key] == 120
    assert cache.data[key]["items"][0]["coverImageUrl"] == "https://cdn.test/cover.png"


@pytest.mark.anyio
async def test_cached_entry_is_served_without_search():
    es = _FakeES()
    cache = _DictCache()
    cache.data["discovery:search|||en|1|10"] = SearchResult(page=1, limit=10, total=7).model_dump(
        mode="json", by_alias=True
    )

    result = await _service(es, cache).search(None, language="en")

    assert result.total == 7
    assert es.searches == []


@pytest.mark.anyio
async def test_unreadable_cache_entry_falls_through_to_search():
    es = _FakeES()
    cache = _DictCache()
    cache.data["discovery:search||||1|10"] = {"unexpected": True}

    await _service(es, cache).search(None)

    assert len(es.searches) == 1


@pytest.mark.anyio
async def test_cache_outage_does_not_break_reads():
    es = _FakeES(hits=[_hit("episodes", EPISODE_DOC)])
    result = await _service(es, _DownCache()).search("pilot")
    assert result.total == 1


# ─────────────────────────────────────────────────────────────
# details
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_program_detail_with_ordered_episode_page():
    es = _FakeES(hits=[_hit("episodes", EPISODE_DOC)], docs={("programs", PROGRAM_ID): PROGRAM_DOC})
    cache = _DictCache()

    detail = await _service(es, cache).get_program(PROGRAM_ID, episode_page=2, episode_size=5)

    assert detail.title == "Tech Talks"
    assert detail.extra_info == {"host": "Sara"}
    assert [e.id for e in detail.episodes] == [EPISODE_ID]
    (call,) = es.searches
    assert call["index"] == "episodes"
    assert call["query"] == {"term": {"programId": PROGRAM_ID}}
    assert call["from_"] == 5
    assert [next(iter(s)) for s in call["sort"]] == ["seasonNumber", "episodeNumber"]
    assert cache.ttls[f"discovery:program|{PROGRAM_ID}|2|5"] == 180


@pytest.mark.anyio
async def test_unknown_program_is_404():
    with pytest.raises(NotFoundException):
        await _service(_FakeES()).get_program(uuid4())


@pytest.mark.anyio
async def test_episode_detail_includes_program_summary():
    es = _FakeES(
        docs={
            ("episodes", EPISODE_ID): EPISODE_DOC,
            ("programs", PROGRAM_ID): PROGRAM_DOC,
        }
    )

    detail = await _service(es).get_episode(EPISODE_ID)

    assert detail.video_url == "https://cdn.test/v.mp4"
    assert detail.program.id == PROGRAM_ID
    assert detail.program.cover_image_url == "https://cdn.test/cover.png"


@pytest.mark.anyio
async def test_episode_detail_without_program_document():
    es = _FakeES(docs={("episodes", EPISODE_ID): EPISODE_DOC})
    detail = await _service(es).get_episode(EPISODE_ID)
    assert detail.program is None


@pytest.mark.anyio
async def test_unindexed_episode_is_404():
    with pytest.raises(NotFoundException):
        await _service(_FakeES()).get_episode(uuid4())
