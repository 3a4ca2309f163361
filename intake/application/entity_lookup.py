"""
Entity lookups for the submission engine.

Each lookup opens its own session, so the applicant and program lookups of
one submission can run at the same time.
"""

from typing import Callable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from intake.core.interfaces import IEntityLookup
from intake.db.execution_context import DatabaseExecutionContext
from intake.domain.entities import Applicant, Program
from intake.repositories.applicant_repository import ApplicantRepository
from intake.repositories.program_repository import ProgramRepository

logger = logging.getLogger(__name__)


class EntityLookupService(IEntityLookup):
    """Read-only applicant and program resolution"""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        execution_context: DatabaseExecutionContext
    ):
        self._session_factory = session_factory
        self._execution_context = execution_context

    async def lookup_applicant(self, applicant_id: int) -> Optional[Applicant]:
        """Get applicant with current answers, or None"""
        async with self._execution_context.slot():
            async with self._session_factory() as session:
                applicant = await ApplicantRepository(session).get_by_id(applicant_id)

        if applicant is None:
            logger.debug(f"Applicant {applicant_id} not found")
        return applicant

    async def lookup_program(self, program_id: int) -> Optional[Program]:
        """Get program version, or None"""
        async with self._execution_context.slot():
            async with self._session_factory() as session:
                program = await ProgramRepository(session).get_by_id(program_id)

        if program is None:
            logger.debug(f"Program {program_id} not found")
        return program
