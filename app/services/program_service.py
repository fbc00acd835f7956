# app/services/program_service.py

from __future__ import annotations

"""
Media CMS — Program Service
===========================
CRUD for programs. Deleting a program cascades to its episodes in the
database; the search projection drops them on `ProgramDeleted`.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple
from uuid import UUID

from app.core.events import EventBus, ProgramCreated, ProgramDeleted, ProgramUpdated, event_bus
from app.core.exceptions import NotFoundException
from app.db.models.episode import Episode
from app.db.models.program import Program
from app.repositories.episodes import EpisodeRepository
from app.repositories.programs import ProgramRepository
from app.schemas.programs import ProgramCreate, ProgramUpdate

logger = logging.getLogger(__name__)

CLEARABLE_FIELDS = {"description", "cover_image_url", "extra_info"}


class ProgramService:
    def __init__(
        self,
        programs: ProgramRepository,
        episodes: EpisodeRepository,
        *,
        bus: EventBus = event_bus,
    ) -> None:
        self.programs = programs
        self.episodes = episodes
        self.bus = bus

    async def create(self, data: ProgramCreate) -> Program:
        program = await self.programs.insert(**data.model_dump())
        await self.programs.commit()
        logger.info("Program %s created", program.id)
        await self.bus.publish(ProgramCreated(program))
        return program

    async def list(self, *, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        items = await self.programs.find_many(offset=(page - 1) * limit, limit=limit)
        total = await self.programs.count()
        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

    async def get(self, program_id: UUID) -> Tuple[Program, List[Episode]]:
        """The program and its episodes, ordered by season then number."""
        program = await self.programs.find_by_id(program_id)
        if program is None:
            raise NotFoundException(resource="Program", resource_id=program_id)
        return program, await self.episodes.find_by_program(program_id)

    async def update(self, program_id: UUID, data: ProgramUpdate) -> Program:
        fields = {
            k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k in CLEARABLE_FIELDS
        }
        fields["updated_at"] = datetime.now(timezone.utc)
        program = await self.programs.update(program_id, **fields)
        if program is None:
            raise NotFoundException(resource="Program", resource_id=program_id)
        await self.programs.commit()
        await self.bus.publish(ProgramUpdated(program))
        return program

    async def remove(self, program_id: UUID) -> None:
        if not await self.programs.delete(program_id):
            raise NotFoundException(resource="Program", resource_id=program_id)
        await self.programs.commit()
        logger.info("Program %s deleted (episodes cascaded)", program_id)
        await self.bus.publish(ProgramDeleted(program_id))


__all__ = ["ProgramService"]
