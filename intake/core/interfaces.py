"""
Core interfaces for the benefits intake engine.

Repositories work in terms of domain entities (intake/domain/entities.py);
ORM models never leave the repository layer.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from intake.domain.entities import Applicant, Application, ApplicationEvent, Program
    from intake.domain.value_objects import LifecycleStage, LineageKey, TimeFilter


class IApplicantRepository(ABC):
    """Interface for applicant lookups"""

    @abstractmethod
    async def get_by_id(self, applicant_id: int) -> Optional['Applicant']:
        """Get applicant (with current answers) by ID"""
        pass


class IProgramRepository(ABC):
    """Interface for program lookups"""

    @abstractmethod
    async def get_by_id(self, program_id: int) -> Optional['Program']:
        """Get a program version by ID"""
        pass


class IApplicationRepository(ABC):
    """
    Interface for application storage and retrieval.

    Implementations must handle:
    - Lineage queries across every version of a program
    - Row locking for lineage transitions where the backend supports it
    - Eager loading of associations for read queries
    """

    @abstractmethod
    async def get_by_id(self, application_id: int) -> Optional['Application']:
        """
        Get application by ID.

        Args:
            application_id: Application identifier

        Returns:
            Application if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_lineage(
        self,
        lineage: 'LineageKey',
        stage: Optional['LifecycleStage'] = None,
        lock: bool = False
    ) -> List['Application']:
        """
        Get every application in a lineage, ordered by ID.

        Args:
            lineage: (applicant, program admin name) key
            stage: Only return applications in this stage
            lock: Lock the returned rows until the transaction ends

        Returns:
            Applications across all versions of the program
        """
        pass

    @abstractmethod
    async def save(self, application: 'Application') -> 'Application':
        """
        Insert or update an application.

        Args:
            application: Domain Application (id None inserts)

        Returns:
            Saved application with its ID assigned
        """
        pass

    @abstractmethod
    async def list_submitted(self, time_filter: 'TimeFilter') -> List['Application']:
        """
        Get applications whose submit time is inside the window, ordered by ID,
        with program and applicant account attached.
        """
        pass

    @abstractmethod
    async def list_for_applicant(
        self,
        applicant_id: int,
        stages: Iterable['LifecycleStage']
    ) -> FrozenSet['Application']:
        """
        Get an applicant's applications in the given stages, with program and
        event history attached.
        """
        pass

    @abstractmethod
    async def record_event(
        self,
        application_id: int,
        event_type: str,
        details: Optional[Dict[str, Any]] = None,
        creator_email: Optional[str] = None
    ) -> 'ApplicationEvent':
        """Append an entry to an application's history"""
        pass


class IEntityLookup(ABC):
    """
    Interface for resolving the entities a lifecycle transition needs.

    Both lookups are pure reads and must be safe to run concurrently.
    """

    @abstractmethod
    async def lookup_applicant(self, applicant_id: int) -> Optional['Applicant']:
        """Get applicant with current answers, or None if unknown"""
        pass

    @abstractmethod
    async def lookup_program(self, program_id: int) -> Optional['Program']:
        """Get program version, or None if unknown"""
        pass
