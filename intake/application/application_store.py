"""
Application Store - lifecycle transitions and reads for applications.

This service owns the submission state machine:
- Draft upsert (at most one DRAFT per lineage)
- Submission (DRAFT → ACTIVE, previous ACTIVE → OBSOLETE, duplicates rejected)
- Read queries for admin exports and applicant dashboards

A lineage is every application for one (applicant, program admin name) pair,
across all versions of the program.

All mutations of one call happen inside one Unit of Work, under the lineage
lock, so a rejected duplicate or a failure half-way leaves nothing behind.
"""

from datetime import datetime
from typing import Callable, FrozenSet, Iterable, List, Optional, Union
import logging

from intake.application.lineage_locks import LineageLocks
from intake.application.lookup_join import ApplicationArguments, LookupJoin
from intake.db.execution_context import DatabaseExecutionContext
from intake.domain.entities import (
    Applicant,
    Application,
    DuplicateApplicationError,
    InternalInconsistencyError,
    Program,
    utc_now,
)
from intake.domain.results import ApplicationResult
from intake.domain.unit_of_work import AbstractUnitOfWork
from intake.domain.value_objects import (
    LifecycleStage,
    LineageKey,
    SubmitterEmail,
    TimeFilter,
)

logger = logging.getLogger(__name__)


class ApplicationStore:
    """
    Application service for the submission lifecycle.

    Orchestrates:
    - Concurrent entity lookups (LookupJoin)
    - Lineage serialization (LineageLocks)
    - Domain lifecycle rules (Application entity)
    - Persistence (Unit of Work)

    Mutating operations return an ApplicationResult; reads return entities
    and let data-layer errors propagate.
    """

    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        lookup_join: LookupJoin,
        execution_context: DatabaseExecutionContext,
        lineage_locks: Optional[LineageLocks] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize application store.

        Args:
            uow_factory: Opens a fresh Unit of Work per call
            lookup_join: Concurrent applicant/program resolution
            execution_context: Bounds concurrent data-layer work
            lineage_locks: Per-lineage serialization (shared between stores
                that write the same database from one process)
            clock: Source of "now" (aware UTC)
        """
        self._new_uow = uow_factory
        self._lookup_join = lookup_join
        self._execution_context = execution_context
        self._lineage_locks = lineage_locks or LineageLocks()
        self._clock = clock

    # Lifecycle transitions

    async def submit(
        self,
        applicant_id: int,
        program_id: int,
        submitter_email: Optional[Union[str, SubmitterEmail]] = None
    ) -> ApplicationResult:
        """
        Submit an applicant's current answers to a program.

        Activates the lineage's draft (creating one if it is missing),
        obsoletes every previously active application in the lineage, and
        rejects the submission if its answers duplicate an active one.

        Args:
            applicant_id: Applicant submitting
            program_id: Program version submitted to
            submitter_email: Intermediary submitting on the applicant's behalf

        Returns:
            SUCCESS with the ACTIVE application, or the failure kind
            (UNEXPECTED_FAILURE if submitter_email is not a valid email)
        """
        async def transition(arguments: ApplicationArguments) -> Application:
            submitter = (
                SubmitterEmail(submitter_email)
                if isinstance(submitter_email, str) else submitter_email
            )
            return await self._submit_in_transaction(
                arguments.applicant, arguments.program, submitter
            )

        return await self._lookup_join.perform(
            applicant_id, program_id, transition, operation="submit"
        )

    async def create_or_update_draft(self, applicant_id: int, program_id: int) -> ApplicationResult:
        """
        Get the lineage's draft, creating it if needed.

        The draft's answers are refreshed from the applicant's current answers.

        Returns:
            SUCCESS with the DRAFT application, or the failure kind
        """
        async def transition(arguments: ApplicationArguments) -> Application:
            return await self._upsert_draft_in_transaction(arguments.applicant, arguments.program)

        return await self._lookup_join.perform(
            applicant_id, program_id, transition, operation="create_or_update_draft"
        )

    async def _submit_in_transaction(
        self,
        applicant: Applicant,
        program: Program,
        submitter_email: Optional[SubmitterEmail]
    ) -> Application:
        lineage = LineageKey(applicant.id, program.admin_name)

        async with self._lineage_locks.hold(lineage):
            async with self._execution_context.slot():
                async with self._new_uow() as uow:
                    lineage_applications = await uow.applications.find_lineage(lineage, lock=True)
                    drafts = [app for app in lineage_applications if app.is_draft]
                    previous_active = [app for app in lineage_applications if app.is_active]
                    now = self._clock()

                    application = self._resolve_draft(drafts, applicant, program, lineage, now)

                    # Nothing is written until every active application has been checked
                    self._reject_duplicate(applicant, previous_active, lineage)

                    if len(previous_active) > 1:
                        logger.warning(
                            f"⚠️  Multiple previous active applications found for lineage {lineage}. "
                            f"All will be set to OBSOLETE. Application IDs: "
                            f"{','.join(str(app.id) for app in previous_active)}"
                        )

                    for previous in previous_active:
                        previous.mark_obsolete(now)
                        await uow.applications.save(previous)

                    application.activate(applicant.answer_data, now, submitter_email)
                    await uow.applications.save(application)

                    await uow.commit()

        logger.info(
            f"✅ Submitted application {application.id} for lineage {lineage} "
            f"(program {program.id} v{program.version}, obsoleted {len(previous_active)}"
            f"{', intermediary submission' if submitter_email else ''})"
        )
        return application

    async def _upsert_draft_in_transaction(self, applicant: Applicant, program: Program) -> Application:
        lineage = LineageKey(applicant.id, program.admin_name)

        async with self._lineage_locks.hold(lineage):
            async with self._execution_context.slot():
                async with self._new_uow() as uow:
                    drafts = await uow.applications.find_lineage(
                        lineage, stage=LifecycleStage.DRAFT, lock=True
                    )
                    if len(drafts) > 1:
                        raise InternalInconsistencyError(
                            lineage,
                            f"found {len(drafts)} DRAFT applications "
                            f"({','.join(str(app.id) for app in drafts)})"
                        )

                    if drafts:
                        draft = drafts[0]
                        draft.refresh_answers(applicant.answer_data)
                    else:
                        draft = Application.new_draft(applicant, program, now=self._clock())

                    await uow.applications.save(draft)
                    await uow.commit()

        logger.debug(f"📝 Draft {draft.id} ready for lineage {lineage}")
        return draft

    def _resolve_draft(
        self,
        drafts: List[Application],
        applicant: Applicant,
        program: Program,
        lineage: LineageKey,
        now: datetime
    ) -> Application:
        """
        Pick the application to activate.

        One draft → reuse it. No draft → start one (tolerated, logged).
        Several drafts → the lineage is corrupt.
        """
        if len(drafts) == 1:
            return drafts[0]
        if not drafts:
            logger.warning(
                f"⚠️  No DRAFT application found when submitting for lineage {lineage} "
                f"(program {program.id}) - creating one"
            )
            return Application.new_draft(applicant, program, now=now)
        raise InternalInconsistencyError(
            lineage,
            f"found {len(drafts)} DRAFT applications ({','.join(str(app.id) for app in drafts)})"
        )

    def _reject_duplicate(
        self,
        applicant: Applicant,
        previous_active: List[Application],
        lineage: LineageKey
    ) -> None:
        for previous in previous_active:
            if applicant.answer_data.is_duplicate_of(previous.answer_data):
                logger.info(
                    f"Application for lineage {lineage} duplicates active application "
                    f"{previous.id} and was not saved"
                )
                raise DuplicateApplicationError(applicant.id, lineage.program_admin_name)

    # Reads

    async def get_application(self, application_id: int) -> Optional[Application]:
        """Get a single application by ID"""
        async with self._execution_context.slot():
            async with self._new_uow() as uow:
                return await uow.applications.get_by_id(application_id)

    async def get_applications(self, time_filter: Optional[TimeFilter] = None) -> List[Application]:
        """
        Get applications submitted inside a time window, in creation order.

        Program and applicant account are attached to each application.
        With no bounds, every application is returned (drafts included).
        """
        time_filter = time_filter or TimeFilter()
        async with self._execution_context.slot():
            async with self._new_uow() as uow:
                return await uow.applications.list_submitted(time_filter)

    async def get_applications_for_applicant(
        self,
        applicant_id: int,
        stages: Iterable[LifecycleStage]
    ) -> FrozenSet[Application]:
        """
        Get an applicant's applications in the given stages.

        Program and event history are attached. No ordering.
        """
        async with self._execution_context.slot():
            async with self._new_uow() as uow:
                return await uow.applications.list_for_applicant(applicant_id, stages)
