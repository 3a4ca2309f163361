"""
Tagged result for store operations.

Callers branch on ApplicationResult.kind instead of catching exception types,
so a duplicate submission can't be mistaken for an unexpected failure.

Example:
    result = await store.submit(applicant_id, program_id)
    if result.kind is OutcomeKind.SUCCESS:
        ...
    elif result.kind is OutcomeKind.DUPLICATE_APPLICATION:
        ...
"""

import enum
from dataclasses import dataclass, field
from typing import Optional

from .entities import (
    Application,
    ApplicantNotFoundError,
    DomainError,
    DuplicateApplicationError,
    InternalInconsistencyError,
    ProgramNotFoundError,
)


class OutcomeKind(str, enum.Enum):
    """Every way a submission or draft upsert can end"""
    SUCCESS = "success"
    APPLICANT_NOT_FOUND = "applicant_not_found"
    PROGRAM_NOT_FOUND = "program_not_found"
    DUPLICATE_APPLICATION = "duplicate_application"
    INTERNAL_INCONSISTENCY = "internal_inconsistency"
    UNEXPECTED_FAILURE = "unexpected_failure"


class UnexpectedFailureError(DomainError):
    """Raised by unwrap() for failures with no more specific kind"""
    pass


@dataclass(frozen=True)
class ApplicationResult:
    """
    Outcome of a store operation.

    application is set only for SUCCESS. detail is a human-readable reason
    for every other kind; error keeps the originating exception when there
    was one.
    """

    kind: OutcomeKind
    application: Optional[Application] = None
    detail: Optional[str] = None
    error: Optional[Exception] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.kind is OutcomeKind.SUCCESS and self.application is None:
            raise ValueError("Successful result must carry an application")
        if self.kind is not OutcomeKind.SUCCESS and self.application is not None:
            raise ValueError(f"{self.kind.value} result cannot carry an application")

    @classmethod
    def success(cls, application: Application) -> "ApplicationResult":
        return cls(kind=OutcomeKind.SUCCESS, application=application)

    @classmethod
    def failure(
        cls,
        kind: OutcomeKind,
        detail: Optional[str] = None,
        error: Optional[Exception] = None
    ) -> "ApplicationResult":
        return cls(kind=kind, detail=detail, error=error)

    @classmethod
    def from_error(cls, error: Exception) -> "ApplicationResult":
        """Map an exception to its outcome kind"""
        if isinstance(error, ApplicantNotFoundError):
            kind = OutcomeKind.APPLICANT_NOT_FOUND
        elif isinstance(error, ProgramNotFoundError):
            kind = OutcomeKind.PROGRAM_NOT_FOUND
        elif isinstance(error, DuplicateApplicationError):
            kind = OutcomeKind.DUPLICATE_APPLICATION
        elif isinstance(error, InternalInconsistencyError):
            kind = OutcomeKind.INTERNAL_INCONSISTENCY
        else:
            return cls.failure(
                OutcomeKind.UNEXPECTED_FAILURE,
                f"{type(error).__name__}: {error}",
                error
            )
        return cls.failure(kind, str(error), error)

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def unwrap(self) -> Application:
        """
        Get the application or raise the exception matching the kind.

        Raises:
            ApplicantNotFoundError, ProgramNotFoundError,
            DuplicateApplicationError, InternalInconsistencyError: for those kinds
            UnexpectedFailureError: for UNEXPECTED_FAILURE
        """
        if self.kind is OutcomeKind.SUCCESS:
            return self.application
        if self.kind is not OutcomeKind.UNEXPECTED_FAILURE and isinstance(self.error, DomainError):
            raise self.error
        if self.kind is OutcomeKind.DUPLICATE_APPLICATION:
            raise DuplicateApplicationError()
        raise UnexpectedFailureError(f"{self.kind.value}: {self.detail or 'no detail'}")
