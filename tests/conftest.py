"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio

from intake.application.application_store import ApplicationStore
from intake.application.entity_lookup import EntityLookupService
from intake.application.lineage_locks import LineageLocks
from intake.application.lookup_join import LookupJoin
from intake.db.connection import close_db, get_db_session, get_session_factory, init_db
from intake.db.execution_context import DatabaseExecutionContext
from intake.db.models import AccountModel, ApplicantModel, ApplicationModel, ProgramModel
from intake.domain.entities import Account, Applicant, ApplicationEvent, Program
from intake.domain.unit_of_work import unit_of_work_factory
from intake.domain.value_objects import AnswerData, LifecycleStage, as_naive_utc
from intake.repositories.program_repository import program_from_orm


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path):
    """
    Fresh SQLite database file for each test.

    A file (not :memory:) so concurrent lookups get separate connections,
    as they would in production.
    """
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'intake_test.db'}")

    yield get_session_factory()

    await close_db()


@pytest.fixture
def execution_context():
    return DatabaseExecutionContext(max_concurrency=4)


def build_store(session_factory, execution_context, clock=None, uow_factory=None) -> ApplicationStore:
    """Wire a store the same way intake.main does, with optional test seams"""
    kwargs = {}
    if clock is not None:
        kwargs["clock"] = clock
    return ApplicationStore(
        uow_factory=uow_factory or unit_of_work_factory(session_factory),
        lookup_join=LookupJoin(EntityLookupService(session_factory, execution_context)),
        execution_context=execution_context,
        lineage_locks=LineageLocks(),
        **kwargs
    )


@pytest.fixture
def store(session_factory, execution_context):
    return build_store(session_factory, execution_context)


@pytest.fixture
def make_store(session_factory, execution_context):
    """Factory for stores with a custom clock or unit of work"""
    def _make(clock=None, uow_factory=None) -> ApplicationStore:
        return build_store(session_factory, execution_context, clock=clock, uow_factory=uow_factory)
    return _make


class FixedClock:
    """Clock returning a settable instant"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))


class Seeder:
    """
    Writes accounts, applicants, programs and raw application rows.

    Applicants and programs belong to other parts of the system, so they are
    inserted as ORM rows here. Raw application rows bypass the store so tests
    can set up the anomalous data that older code paths left behind (two
    drafts, two actives, missing submit times, unvalidated submitter ids).
    """

    def __init__(self, session_factory):
        self._new_uow = unit_of_work_factory(session_factory)

    async def applicant(self, answers: Optional[Dict[str, Any]] = None, email: Optional[str] = None) -> Applicant:
        now = datetime.now(timezone.utc)
        async for db_session in get_db_session():
            db_account = AccountModel(email_address=email, created_at=as_naive_utc(now))
            db_session.add(db_account)
            await db_session.flush()
            db_applicant = ApplicantModel(
                account_id=db_account.id,
                answer_data=dict(answers or {}),
                created_at=as_naive_utc(now),
            )
            db_session.add(db_applicant)
            await db_session.flush()
            applicant = Applicant(
                id=db_applicant.id,
                account_id=db_account.id,
                answer_data=AnswerData(answers or {}),
                created_at=now,
                account=Account(id=db_account.id, email_address=email),
            )
        return applicant

    async def set_answers(self, applicant_id: int, answers: Dict[str, Any]) -> None:
        async for db_session in get_db_session():
            db_applicant = await db_session.get(ApplicantModel, applicant_id)
            db_applicant.answer_data = dict(answers)

    async def program(self, admin_name: str = "housing", version: int = 1) -> Program:
        async for db_session in get_db_session():
            db_program = ProgramModel(
                name=admin_name,
                display_name=f"{admin_name.title()} Assistance",
                version=version,
                created_at=as_naive_utc(datetime.now(timezone.utc)),
            )
            db_session.add(db_program)
            await db_session.flush()
            program = program_from_orm(db_program)
        return program

    async def raw_application(
        self,
        applicant: Applicant,
        program: Program,
        stage: LifecycleStage,
        answers: Optional[Dict[str, Any]] = None,
        submit_time: Optional[datetime] = None,
        submitter_email: Optional[str] = None
    ) -> int:
        async for db_session in get_db_session():
            row = ApplicationModel(
                applicant_id=applicant.id,
                program_id=program.id,
                lifecycle_stage=stage,
                answer_data=answers if answers is not None else {},
                submit_time=as_naive_utc(submit_time),
                submitter_email=submitter_email,
                create_time=as_naive_utc(datetime.now(timezone.utc)),
            )
            db_session.add(row)
            await db_session.flush()
            application_id = row.id
        return application_id

    async def event(self, application_id: int, event_type: str = "status_change", **details) -> ApplicationEvent:
        async with self._new_uow() as uow:
            event = await uow.applications.record_event(
                application_id, event_type, details=details, creator_email="admin@example.gov"
            )
            await uow.commit()
        return event


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)
