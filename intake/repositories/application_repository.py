"""
Application repository implementation using SQLAlchemy.

Handles conversion between:
- Domain entities (Application, ApplicationEvent) → ORM models
- ORM models → Domain entities

Lineage queries join on the program admin name, so every version of a
program is covered. save() re-checks the lifecycle rules against the stored
row, so a stale entity can't resurrect an OBSOLETE record or move a
submit time.
"""

from typing import Any, Dict, FrozenSet, Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, joinedload, selectinload
import logging

from intake.core.interfaces import IApplicationRepository
from intake.db.models import ApplicantModel, ApplicationEventModel, ApplicationModel, ProgramModel
from intake.domain.entities import (
    Application,
    ApplicationEvent,
    InvalidApplicationError,
    InvalidLifecycleTransitionError,
    utc_now,
)
from intake.domain.value_objects import (
    AnswerData,
    LifecycleStage,
    LineageKey,
    TimeFilter,
    as_naive_utc,
    as_utc,
    optional_submitter_email,
)
from intake.repositories.applicant_repository import applicant_from_orm
from intake.repositories.program_repository import program_from_orm

logger = logging.getLogger(__name__)


class ApplicationRepository(IApplicationRepository):
    """
    SQLAlchemy implementation of IApplicationRepository.

    Every query loads the owning program, since the program admin name is
    part of an application's identity in the lifecycle rules.
    """

    def __init__(self, db_session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            db_session: SQLAlchemy async session
        """
        self._db = db_session

    async def get_by_id(self, application_id: int) -> Optional[Application]:
        """
        Retrieve application by ID.

        Args:
            application_id: Application identifier

        Returns:
            Application with program attached if found, None otherwise
        """
        stmt = (
            select(ApplicationModel)
            .where(ApplicationModel.id == application_id)
            .options(joinedload(ApplicationModel.program))
        )
        result = await self._db.execute(stmt)
        db_application = result.scalar_one_or_none()

        if db_application is None:
            return None

        return self._from_orm(db_application)

    async def find_lineage(
        self,
        lineage: LineageKey,
        stage: Optional[LifecycleStage] = None,
        lock: bool = False
    ) -> List[Application]:
        """
        Get every application in a lineage, across program versions.

        Args:
            lineage: (applicant, program admin name) key
            stage: Only return applications in this stage
            lock: SELECT ... FOR UPDATE on the application rows (no-op on SQLite)

        Returns:
            Applications ordered by ID
        """
        stmt = (
            select(ApplicationModel)
            .join(ProgramModel, ApplicationModel.program_id == ProgramModel.id)
            .where(ApplicationModel.applicant_id == lineage.applicant_id)
            .where(ProgramModel.name == lineage.program_admin_name)
            .options(contains_eager(ApplicationModel.program))
            .order_by(ApplicationModel.id)
        )
        if stage is not None:
            stmt = stmt.where(ApplicationModel.lifecycle_stage == stage)
        if lock:
            stmt = stmt.with_for_update(of=ApplicationModel)

        result = await self._db.execute(stmt)
        applications = [self._from_orm(row) for row in result.scalars().all()]

        logger.debug(
            f"🔎 Loaded {len(applications)} application(s) for lineage {lineage}"
            + (f" in stage {stage.value}" if stage else "")
        )
        return applications

    async def save(self, application: Application) -> Application:
        """
        Insert a new application or write back a loaded one.

        Args:
            application: Domain Application

        Returns:
            The same application, with id assigned on insert

        Raises:
            InvalidApplicationError: If the application to update doesn't exist
            InvalidLifecycleTransitionError: If the write would change an
                OBSOLETE record or overwrite a submit time
        """
        if application.id is None:
            db_application = self._to_orm(application)
            self._db.add(db_application)
            await self._db.flush()
            application.id = db_application.id
            logger.info(
                f"💾 Created application {application.id} "
                f"({application.lifecycle_stage.value}, lineage {application.lineage})"
            )
            return application

        db_application = await self._db.get(ApplicationModel, application.id)
        if db_application is None:
            raise InvalidApplicationError(f"Application {application.id} does not exist")

        self._check_transition(db_application, application)

        db_application.lifecycle_stage = application.lifecycle_stage
        db_application.answer_data = application.answer_data.to_dict()
        db_application.submit_time = as_naive_utc(application.submit_time)
        db_application.submitter_email = (
            application.submitter_email.value if application.submitter_email else None
        )
        await self._db.flush()

        logger.info(
            f"💾 Saved application {application.id} ({application.lifecycle_stage.value})"
        )
        return application

    async def list_submitted(self, time_filter: TimeFilter) -> List[Application]:
        """
        Get applications submitted inside a time window.

        Args:
            time_filter: from_time inclusive, until_time exclusive; with no
                bounds every application is returned, drafts included

        Returns:
            Applications ordered by ID (creation order), with program and
            applicant account attached
        """
        stmt = (
            select(ApplicationModel)
            .options(
                joinedload(ApplicationModel.program),
                joinedload(ApplicationModel.applicant).joinedload(ApplicantModel.account),
            )
            .order_by(ApplicationModel.id)
        )
        if time_filter.from_time is not None:
            stmt = stmt.where(ApplicationModel.submit_time >= as_naive_utc(time_filter.from_time))
        if time_filter.until_time is not None:
            stmt = stmt.where(ApplicationModel.submit_time < as_naive_utc(time_filter.until_time))

        result = await self._db.execute(stmt)
        applications = [
            self._from_orm(row, include_applicant=True)
            for row in result.unique().scalars().all()
        ]

        logger.debug(f"📚 Retrieved {len(applications)} application(s) for {time_filter}")
        return applications

    async def list_for_applicant(
        self,
        applicant_id: int,
        stages: Iterable[LifecycleStage]
    ) -> FrozenSet[Application]:
        """
        Get an applicant's applications in any of the given stages.

        Args:
            applicant_id: Applicant identifier
            stages: Stages to include (empty means nothing matches)

        Returns:
            Set of applications with program and event history attached
        """
        stages = frozenset(LifecycleStage(stage) for stage in stages)
        if not stages:
            return frozenset()

        stmt = (
            select(ApplicationModel)
            .where(ApplicationModel.applicant_id == applicant_id)
            .where(ApplicationModel.lifecycle_stage.in_(stages))
            .options(
                joinedload(ApplicationModel.program),
                selectinload(ApplicationModel.events),
            )
        )
        result = await self._db.execute(stmt)
        applications = frozenset(
            self._from_orm(row, include_events=True)
            for row in result.unique().scalars().all()
        )

        logger.debug(
            f"📚 Retrieved {len(applications)} application(s) for applicant {applicant_id}"
        )
        return applications

    async def record_event(
        self,
        application_id: int,
        event_type: str,
        details: Optional[Dict[str, Any]] = None,
        creator_email: Optional[str] = None
    ) -> ApplicationEvent:
        """
        Append an entry to an application's history.

        Raises:
            InvalidApplicationError: If the application doesn't exist
        """
        if await self._db.get(ApplicationModel, application_id) is None:
            raise InvalidApplicationError(f"Application {application_id} does not exist")

        now = utc_now()
        db_event = ApplicationEventModel(
            application_id=application_id,
            event_type=event_type,
            details=dict(details or {}),
            creator_email=creator_email,
            create_time=as_naive_utc(now),
        )
        self._db.add(db_event)
        await self._db.flush()

        logger.debug(f"📝 Recorded {event_type} event on application {application_id}")
        return ApplicationEvent(
            id=db_event.id,
            application_id=application_id,
            event_type=event_type,
            details=dict(details or {}),
            creator_email=creator_email,
            created_at=now,
        )

    # Lifecycle guard

    @staticmethod
    def _check_transition(db_application: ApplicationModel, application: Application) -> None:
        """Reject writes that break the stored record's lifecycle"""
        stored_stage = db_application.lifecycle_stage
        if stored_stage is LifecycleStage.OBSOLETE and application.lifecycle_stage is not LifecycleStage.OBSOLETE:
            raise InvalidLifecycleTransitionError(
                application.id,
                stored_stage,
                f"obsolete application cannot become {application.lifecycle_stage.value}"
            )

        stored_submit_time = db_application.submit_time
        if stored_submit_time is not None and stored_submit_time != as_naive_utc(application.submit_time):
            raise InvalidLifecycleTransitionError(
                application.id,
                stored_stage,
                "submit_time is already set and cannot be changed"
            )

    # Domain ↔ ORM conversion methods

    def _to_orm(self, application: Application) -> ApplicationModel:
        """Convert domain Application → ORM ApplicationModel"""
        return ApplicationModel(
            applicant_id=application.applicant_id,
            program_id=application.program_id,
            lifecycle_stage=application.lifecycle_stage,
            answer_data=application.answer_data.to_dict(),
            submit_time=as_naive_utc(application.submit_time),
            submitter_email=application.submitter_email.value if application.submitter_email else None,
            create_time=as_naive_utc(application.created_at),
        )

    def _from_orm(
        self,
        db_application: ApplicationModel,
        include_applicant: bool = False,
        include_events: bool = False
    ) -> Application:
        """
        Convert ORM ApplicationModel → domain Application.

        The program must already be loaded. include_* flags must only be set
        when the query eagerly loaded that association.
        """
        program = program_from_orm(db_application.program)
        return Application(
            id=db_application.id,
            applicant_id=db_application.applicant_id,
            program_id=db_application.program_id,
            program_admin_name=program.admin_name,
            lifecycle_stage=db_application.lifecycle_stage,
            answer_data=AnswerData(db_application.answer_data or {}),
            submit_time=as_utc(db_application.submit_time),
            submitter_email=optional_submitter_email(db_application.submitter_email),
            created_at=as_utc(db_application.create_time),
            program=program,
            applicant=(
                applicant_from_orm(db_application.applicant, include_account=True)
                if include_applicant else None
            ),
            events=[self._event_from_orm(e) for e in db_application.events] if include_events else [],
        )

    def _event_from_orm(self, db_event: ApplicationEventModel) -> ApplicationEvent:
        """Convert ORM ApplicationEventModel → domain ApplicationEvent"""
        return ApplicationEvent(
            id=db_event.id,
            application_id=db_event.application_id,
            event_type=db_event.event_type,
            details=dict(db_event.details or {}),
            creator_email=db_event.creator_email,
            created_at=as_utc(db_event.create_time),
        )
