"""
🎙️ Media CMS · Programs API
===========================

CRUD for programs (podcasts and documentary series). Deleting a program
removes its episodes in the same statement (FK cascade) and drops both from
the search projection.

Routes (5)
----------
- POST   /api/v1/programs         → Create program
- GET    /api/v1/programs         → List programs (newest first, paginated)
- GET    /api/v1/programs/{id}    → Program with its episodes
- PATCH  /api/v1/programs/{id}    → Sparse update
- DELETE /api/v1/programs/{id}    → Delete program and its episodes

All routes require a bearer access token and are rate limited per user.
"""

# ── [Imports] ───────────────────────────────────────────────────────────────
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.core.limiter import rate_limit
from app.core.security import CurrentUser, get_current_user
from app.dependencies.services import get_program_service
from app.schemas.episodes import EpisodeRead
from app.schemas.programs import (
    PaginatedPrograms,
    ProgramCreate,
    ProgramDetail,
    ProgramRead,
    ProgramUpdate,
)
from app.services.program_service import ProgramService

# ── [Router] ────────────────────────────────────────────────────────────────
router = APIRouter(prefix="/programs", tags=["Programs"])


# ─────────────────────────────────────────────────────────────────────────────
# ➕ Create
# ─────────────────────────────────────────────────────────────────────────────
@router.post(
    "",
    summary="Create program",
    response_model=ProgramRead,
    status_code=status.HTTP_201_CREATED,
)
@rate_limit("30/minute")
async def create_program(
    payload: ProgramCreate,
    request: Request,
    service: ProgramService = Depends(get_program_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgramRead:
    program = await service.create(payload)
    return ProgramRead.model_validate(program)


# ─────────────────────────────────────────────────────────────────────────────
# 📃 List
# ─────────────────────────────────────────────────────────────────────────────
@router.get("", summary="List programs", response_model=PaginatedPrograms)
@rate_limit("120/minute")
async def list_programs(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: ProgramService = Depends(get_program_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> Dict[str, Any]:
    result = await service.list(page=page, limit=limit)
    result["items"] = [ProgramRead.model_validate(p) for p in result["items"]]
    return result


# ─────────────────────────────────────────────────────────────────────────────
# 🔎 Detail
# ─────────────────────────────────────────────────────────────────────────────
@router.get("/{program_id}", summary="Get program with episodes", response_model=ProgramDetail)
@rate_limit("120/minute")
async def get_program(
    program_id: UUID,
    request: Request,
    service: ProgramService = Depends(get_program_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgramDetail:
    """Episodes are ordered by season, then episode number."""
    program, episodes = await service.get(program_id)
    return ProgramDetail(
        **ProgramRead.model_validate(program).model_dump(),
        episodes=[EpisodeRead.model_validate(e) for e in episodes],
    )


# ─────────────────────────────────────────────────────────────────────────────
# ✏️ Update / 🗑️ Delete
# ─────────────────────────────────────────────────────────────────────────────
@router.patch("/{program_id}", summary="Update program", response_model=ProgramRead)
@rate_limit("30/minute")
async def update_program(
    program_id: UUID,
    payload: ProgramUpdate,
    request: Request,
    service: ProgramService = Depends(get_program_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgramRead:
    program = await service.update(program_id, payload)
    return ProgramRead.model_validate(program)


@router.delete(
    "/{program_id}",
    summary="Delete program (and its episodes)",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
@rate_limit("10/minute")
async def delete_program(
    program_id: UUID,
    request: Request,
    service: ProgramService = Depends(get_program_service),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    await service.remove(program_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
