"""
🔭 Media CMS · Discovery API (public)
=====================================

Read-only browse and search for listeners and viewers. Answers come from the
search projection (published episodes only), cached briefly in Redis.

Routes (3)
----------
- GET /api/v1/discovery/search                 → Full-text search over programs + episodes
- GET /api/v1/discovery/programs/{id}          → Program with a page of its episodes
- GET /api/v1/discovery/episodes/{id}          → Published episode with its program

No authentication. Responses carry `Cache-Control: public` with the cache TTL.
"""

# ── [Imports] ───────────────────────────────────────────────────────────────
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response

from app.core.config import settings
from app.core.limiter import rate_limit
from app.dependencies.services import get_discovery_service
from app.schemas.discovery import PublicEpisodeDetail, PublicProgramDetail, SearchResult
from app.schemas.enums import Language
from app.services.discovery_service import DiscoveryService

# ── [Router] ────────────────────────────────────────────────────────────────
router = APIRouter(prefix="/discovery", tags=["Discovery"])


def _cache_headers(response: Response, ttl: int) -> None:
    response.headers["Cache-Control"] = f"public, max-age={ttl}"


# ─────────────────────────────────────────────────────────────────────────────
# 🔎 Search
# ─────────────────────────────────────────────────────────────────────────────
@router.get(
    "/search",
    summary="Search programs and episodes",
    response_model=SearchResult,
    response_model_exclude_none=True,
)
@rate_limit("120/minute")
async def search(
    request: Request,
    response: Response,
    q: Optional[str] = Query(None, max_length=200, description="Matches title (boosted) and description"),
    category: Optional[str] = Query(None, max_length=100),
    language: Optional[Language] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    service: DiscoveryService = Depends(get_discovery_service),
) -> SearchResult:
    result = await service.search(
        (q or "").strip() or None,
        category=category,
        language=language.value if language else None,
        page=page,
        size=size,
    )
    _cache_headers(response, settings.DISCOVERY_SEARCH_CACHE_TTL_SECONDS)
    return result


# ─────────────────────────────────────────────────────────────────────────────
# 📺 Details
# ─────────────────────────────────────────────────────────────────────────────
@router.get(
    "/programs/{program_id}",
    summary="Public program detail",
    response_model=PublicProgramDetail,
    response_model_exclude_none=True,
)
@rate_limit("120/minute")
async def get_program(
    program_id: UUID,
    request: Request,
    response: Response,
    episode_page: int = Query(1, ge=1, alias="episodePage"),
    episode_size: int = Query(20, ge=1, le=100, alias="episodeSize"),
    service: DiscoveryService = Depends(get_discovery_service),
) -> PublicProgramDetail:
    """Episodes are ordered by season, then episode number."""
    detail = await service.get_program(program_id, episode_page=episode_page, episode_size=episode_size)
    _cache_headers(response, settings.DISCOVERY_DETAIL_CACHE_TTL_SECONDS)
    return detail


@router.get(
    "/episodes/{episode_id}",
    summary="Public episode detail",
    response_model=PublicEpisodeDetail,
    response_model_exclude_none=True,
)
@rate_limit("120/minute")
async def get_episode(
    episode_id: UUID,
    request: Request,
    response: Response,
    service: DiscoveryService = Depends(get_discovery_service),
) -> PublicEpisodeDetail:
    detail = await service.get_episode(episode_id)
    _cache_headers(response, settings.DISCOVERY_DETAIL_CACHE_TTL_SECONDS)
    return detail
