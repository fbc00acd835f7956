# app/repositories/programs.py
from __future__ import annotations

"""Program store (SQLAlchemy)."""

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.program import Program


class ProgramRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_id(self, program_id: UUID) -> Optional[Program]:
        return (await self.db.execute(select(Program).where(Program.id == program_id))).scalar_one_or_none()

    async def exists(self, program_id: UUID) -> bool:
        stmt = select(Program.id).where(Program.id == program_id).limit(1)
        return (await self.db.execute(stmt)).first() is not None

    async def find_many(self, *, offset: int = 0, limit: int = 10) -> List[Program]:
        """Newest first."""
        stmt = select(Program).order_by(Program.created_at.desc(), Program.id).offset(offset).limit(limit)
        return list((await self.db.execute(stmt)).scalars().all())

    async def count(self) -> int:
        return int((await self.db.execute(select(func.count()).select_from(Program))).scalar_one())

    async def insert(self, **fields: Any) -> Program:
        program = Program(**fields)
        self.db.add(program)
        await self.db.flush()
        return program

    async def update(self, program_id: UUID, **fields: Any) -> Optional[Program]:
        if not fields:
            return await self.find_by_id(program_id)
        stmt = (
            update(Program)
            .where(Program.id == program_id)
            .values(**fields)
            .returning(Program)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def delete(self, program_id: UUID) -> bool:
        stmt = delete(Program).where(Program.id == program_id).returning(Program.id)
        return (await self.db.execute(stmt)).first() is not None

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
