"""
Tests for LookupJoin - concurrent lookups and outcome mapping.

Lookups are faked with AsyncMock; no database involved.
"""
import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from intake.application.lookup_join import ApplicationArguments, LookupJoin
from intake.core.interfaces import IEntityLookup
from intake.domain.entities import (
    Applicant,
    Application,
    DuplicateApplicationError,
    InternalInconsistencyError,
    Program,
)
from intake.domain.results import OutcomeKind
from intake.domain.value_objects import AnswerData, LifecycleStage, LineageKey

APPLICANT = Applicant(id=1, account_id=1, answer_data=AnswerData({"size": 2}))
PROGRAM = Program(id=7, admin_name="housing", display_name="Housing Help")


def make_lookup(applicant=APPLICANT, program=PROGRAM):
    lookup = AsyncMock(spec=IEntityLookup)
    lookup.lookup_applicant.return_value = applicant
    lookup.lookup_program.return_value = program
    return lookup


def make_application():
    return Application(
        id=3,
        applicant_id=APPLICANT.id,
        program_id=PROGRAM.id,
        program_admin_name=PROGRAM.admin_name,
        lifecycle_stage=LifecycleStage.DRAFT,
    )


@pytest.mark.asyncio
async def test_transition_receives_joined_entities():
    application = make_application()
    transition = AsyncMock(return_value=application)
    lookup = make_lookup()

    result = await LookupJoin(lookup).perform(1, 7, transition)

    assert result.kind is OutcomeKind.SUCCESS
    assert result.application is application
    transition.assert_awaited_once_with(ApplicationArguments(applicant=APPLICANT, program=PROGRAM))
    lookup.lookup_applicant.assert_awaited_once_with(1)
    lookup.lookup_program.assert_awaited_once_with(7)


@pytest.mark.asyncio
async def test_lookups_run_concurrently():
    program_lookup_started = asyncio.Event()

    class SlowLookup(IEntityLookup):
        async def lookup_applicant(self, applicant_id):
            # Only completes if the program lookup is already in flight
            await asyncio.wait_for(program_lookup_started.wait(), timeout=1)
            return APPLICANT

        async def lookup_program(self, program_id):
            program_lookup_started.set()
            return PROGRAM

    result = await LookupJoin(SlowLookup()).perform(1, 7, AsyncMock(return_value=make_application()))

    assert result.is_success


@pytest.mark.asyncio
async def test_missing_applicant_skips_transition():
    transition = AsyncMock()

    result = await LookupJoin(make_lookup(applicant=None)).perform(1, 7, transition)

    assert result.kind is OutcomeKind.APPLICANT_NOT_FOUND
    assert result.error.applicant_id == 1
    transition.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_program_skips_transition():
    transition = AsyncMock()

    result = await LookupJoin(make_lookup(program=None)).perform(1, 404, transition)

    assert result.kind is OutcomeKind.PROGRAM_NOT_FOUND
    assert result.error.program_id == 404
    transition.assert_not_awaited()


@pytest.mark.asyncio
async def test_duplicate_is_reported_distinctly():
    transition = AsyncMock(side_effect=DuplicateApplicationError(1, "housing"))

    result = await LookupJoin(make_lookup()).perform(1, 7, transition)

    assert result.kind is OutcomeKind.DUPLICATE_APPLICATION
    with pytest.raises(DuplicateApplicationError):
        result.unwrap()


@pytest.mark.asyncio
async def test_internal_inconsistency_is_a_hard_failure(caplog):
    transition = AsyncMock(
        side_effect=InternalInconsistencyError(LineageKey(1, "housing"), "found 2 DRAFT applications")
    )

    with caplog.at_level(logging.ERROR, logger="intake.application.lookup_join"):
        result = await LookupJoin(make_lookup()).perform(1, 7, transition, operation="submit")

    assert result.kind is OutcomeKind.INTERNAL_INCONSISTENCY
    assert result.application is None
    assert any(record.exc_info for record in caplog.records)


@pytest.mark.asyncio
async def test_unexpected_transition_error_becomes_absent_result(caplog):
    transition = AsyncMock(side_effect=RuntimeError("connection reset"))

    with caplog.at_level(logging.ERROR, logger="intake.application.lookup_join"):
        result = await LookupJoin(make_lookup()).perform(1, 7, transition, operation="submit")

    assert result.kind is OutcomeKind.UNEXPECTED_FAILURE
    assert result.application is None
    assert "connection reset" in caplog.text
    assert any(record.exc_info for record in caplog.records)


@pytest.mark.asyncio
async def test_lookup_error_becomes_absent_result():
    lookup = make_lookup()
    lookup.lookup_program.side_effect = OSError("database unavailable")
    transition = AsyncMock()

    result = await LookupJoin(lookup).perform(1, 7, transition)

    assert result.kind is OutcomeKind.UNEXPECTED_FAILURE
    transition.assert_not_awaited()


@pytest.mark.asyncio
async def test_started_transition_survives_caller_cancellation():
    finished = asyncio.Event()
    release = asyncio.Event()

    async def transition(arguments):
        await release.wait()
        finished.set()
        return make_application()

    caller = asyncio.create_task(LookupJoin(make_lookup()).perform(1, 7, transition))
    await asyncio.sleep(0.01)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    release.set()
    await asyncio.wait_for(finished.wait(), timeout=1)
    assert finished.is_set()


@pytest.mark.asyncio
async def test_failure_after_caller_cancellation_is_logged(caplog):
    release = asyncio.Event()
    failed = asyncio.Event()

    async def transition(arguments):
        await release.wait()
        failed.set()
        raise RuntimeError("commit lost")

    caller = asyncio.create_task(LookupJoin(make_lookup()).perform(1, 7, transition, operation="submit"))
    await asyncio.sleep(0.01)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    with caplog.at_level(logging.ERROR, logger="intake.application.lookup_join"):
        release.set()
        await asyncio.wait_for(failed.wait(), timeout=1)
        # Let the done-callback run
        await asyncio.sleep(0.01)

    assert "submit failed after its caller left: commit lost" in caplog.text
    assert any(record.exc_info for record in caplog.records)
