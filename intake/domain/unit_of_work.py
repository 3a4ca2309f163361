"""
Unit of Work pattern for transaction management.

The Unit of Work pattern ensures:
1. All lifecycle mutations of one call happen in a single transaction
2. Atomic commit (all or nothing)
3. Rollback on every exit path that didn't explicitly commit - exceptions,
   early returns and cancellation alike
4. Proper resource cleanup
"""

from abc import ABC, abstractmethod
from typing import Callable, TYPE_CHECKING
from sqlalchemy.ext.asyncio import AsyncSession
import logging

if TYPE_CHECKING:
    from intake.core.interfaces import IApplicantRepository, IApplicationRepository, IProgramRepository

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """
    Abstract Unit of Work for transaction management.

    Provides:
    - Transaction boundaries (commit/rollback)
    - Repository access (applications, applicants, programs)

    Work is only kept if commit() is called inside the block:

        async with uow:
            await uow.applications.save(application)
            await uow.commit()
    """

    applications: 'IApplicationRepository'
    applicants: 'IApplicantRepository'
    programs: 'IProgramRepository'

    def __init__(self):
        self._committed = False

    async def __aenter__(self):
        """Enter async context"""
        self._committed = False
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """
        Exit async context.

        Anything not committed is rolled back. Exceptions propagate.
        """
        try:
            if not self._committed:
                if exc_type is not None:
                    logger.debug(f"↩️  Rolling back after {exc_type.__name__}")
                await self.rollback()
        finally:
            await self.close()

    async def commit(self):
        """Commit transaction"""
        await self._commit()
        self._committed = True

    @abstractmethod
    async def _commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        """Rollback transaction"""
        pass

    @abstractmethod
    async def close(self):
        """Close resources"""
        pass


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    SQLAlchemy implementation of Unit of Work.

    Features:
    - Transaction management via SQLAlchemy session
    - Repository initialization
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize Unit of Work.

        Args:
            session: SQLAlchemy async session (closed when the block exits)
        """
        super().__init__()
        self._session = session

        # Import here to avoid circular dependencies
        from intake.repositories.application_repository import ApplicationRepository
        from intake.repositories.applicant_repository import ApplicantRepository
        from intake.repositories.program_repository import ProgramRepository

        # Initialize repositories
        self.applications = ApplicationRepository(session)
        self.applicants = ApplicantRepository(session)
        self.programs = ProgramRepository(session)

    async def _commit(self):
        await self._session.commit()
        logger.debug("✅ Transaction committed")

    async def rollback(self):
        """
        Rollback transaction.

        Discards all pending changes.
        """
        await self._session.rollback()
        logger.debug("↩️  Transaction rolled back")

    async def close(self):
        """Close session and release resources"""
        await self._session.close()


def unit_of_work_factory(session_factory: Callable[[], AsyncSession]) -> Callable[[], AbstractUnitOfWork]:
    """
    Build a factory that opens a fresh session per Unit of Work.

    Args:
        session_factory: SQLAlchemy async_sessionmaker (or any zero-arg session callable)

    Usage:
        new_uow = unit_of_work_factory(get_session_factory())
        async with new_uow() as uow:
            application = await uow.applications.get_by_id(42)
            ...
            await uow.commit()
    """
    def new_unit_of_work() -> AbstractUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory())

    return new_unit_of_work
