"""
Program repository for data access.

Programs are versioned elsewhere; each row here is one published version.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from intake.core.interfaces import IProgramRepository
from intake.db.models import ProgramModel
from intake.domain.entities import Program

logger = logging.getLogger(__name__)


class ProgramRepository(IProgramRepository):
    """Repository for Program entity"""

    def __init__(self, session: AsyncSession):
        self._db = session

    async def get_by_id(self, program_id: int) -> Optional[Program]:
        """Get program version by database ID"""
        result = await self._db.execute(
            select(ProgramModel).where(ProgramModel.id == program_id)
        )
        db_program = result.scalar_one_or_none()
        return program_from_orm(db_program) if db_program else None


def program_from_orm(db_program: ProgramModel) -> Program:
    """Convert ORM ProgramModel → domain Program"""
    return Program(
        id=db_program.id,
        admin_name=db_program.name,
        display_name=db_program.display_name,
        version=db_program.version,
    )
