"""
Lookup join - resolve an applicant and a program concurrently, then run a
lifecycle transition with both.

Outcome mapping:
- applicant or program missing → *_NOT_FOUND, transition never runs
- DuplicateApplicationError → DUPLICATE_APPLICATION (expected, logged at info)
- InternalInconsistencyError → INTERNAL_INCONSISTENCY (logged with stack)
- anything else → UNEXPECTED_FAILURE with no application (logged with stack)
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable

from intake.core.interfaces import IEntityLookup
from intake.domain.entities import (
    Applicant,
    ApplicantNotFoundError,
    Application,
    DuplicateApplicationError,
    InternalInconsistencyError,
    Program,
    ProgramNotFoundError,
)
from intake.domain.results import ApplicationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplicationArguments:
    """Joined lookup results handed to a transition"""
    applicant: Applicant
    program: Program


Transition = Callable[[ApplicationArguments], Awaitable[Application]]


class LookupJoin:
    """
    Runs transitions behind a concurrent applicant + program lookup.

    Once a transition has started it runs to completion even if the caller
    stops waiting - the database work is shielded from cancellation.
    """

    def __init__(self, lookup: IEntityLookup):
        self._lookup = lookup

    async def perform(
        self,
        applicant_id: int,
        program_id: int,
        transition: Transition,
        operation: str = "transition"
    ) -> ApplicationResult:
        """
        Resolve both entities, then run the transition.

        Args:
            applicant_id: Applicant to resolve
            program_id: Program version to resolve
            transition: Async callable receiving the joined arguments
            operation: Name used in log messages

        Returns:
            Tagged result; never raises for domain or data-layer failures
        """
        try:
            applicant, program = await asyncio.gather(
                self._lookup.lookup_applicant(applicant_id),
                self._lookup.lookup_program(program_id),
            )
        except Exception as e:
            logger.error(
                f"❌ {operation}: lookup failed for applicant {applicant_id}, "
                f"program {program_id}: {e}",
                exc_info=True
            )
            return ApplicationResult.from_error(e)

        if applicant is None:
            logger.warning(f"{operation}: applicant {applicant_id} not found")
            return ApplicationResult.from_error(ApplicantNotFoundError(applicant_id))
        if program is None:
            logger.warning(f"{operation}: program {program_id} not found")
            return ApplicationResult.from_error(ProgramNotFoundError(program_id))

        arguments = ApplicationArguments(applicant=applicant, program=program)
        task = asyncio.ensure_future(transition(arguments))
        try:
            application = await asyncio.shield(task)
        except asyncio.CancelledError:
            # Nobody awaits the task any more; report its outcome when it lands
            task.add_done_callback(partial(_log_detached_outcome, operation))
            raise
        except DuplicateApplicationError as e:
            logger.info(f"🔁 {operation}: {e}")
            return ApplicationResult.from_error(e)
        except InternalInconsistencyError as e:
            logger.error(f"🚨 {operation}: data inconsistency - {e}", exc_info=True)
            return ApplicationResult.from_error(e)
        except Exception as e:
            logger.error(
                f"❌ {operation} failed for applicant {applicant_id}, "
                f"program {program_id}: {e}",
                exc_info=True
            )
            return ApplicationResult.from_error(e)

        return ApplicationResult.success(application)


def _log_detached_outcome(operation: str, task: asyncio.Future) -> None:
    """Done-callback for a transition whose caller was cancelled"""
    if task.cancelled():
        logger.warning(f"⚠️  {operation}: transition was cancelled after its caller left")
        return

    error = task.exception()
    if error is None:
        logger.info(f"{operation}: transition finished after its caller left")
    elif isinstance(error, DuplicateApplicationError):
        logger.info(f"🔁 {operation} (caller left): {error}")
    else:
        logger.error(
            f"❌ {operation} failed after its caller left: {error}",
            exc_info=error
        )
