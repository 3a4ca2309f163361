"""
Domain Entities - business objects with identity and lifecycle.

Entities differ from value objects in that they have:
- Identity (tracked by ID, not by value)
- Mutable state (can change over time)
- Business logic (methods that enforce invariants)

Application is the aggregate root of the submission lifecycle. Account,
Applicant and Program are owned by other parts of the system and are
read-only here.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .value_objects import AnswerData, LifecycleStage, LineageKey, SubmitterEmail


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class Account:
    """Login identity that owns an applicant"""

    id: int
    email_address: Optional[str] = None

    def __eq__(self, other) -> bool:
        return isinstance(other, Account) and other.id == self.id

    def __hash__(self) -> int:
        return hash(("account", self.id))


@dataclass(eq=False)
class Applicant:
    """Applicant with their current (in-progress) answers"""

    id: int
    account_id: Optional[int]
    answer_data: AnswerData = field(default_factory=AnswerData)
    created_at: Optional[datetime] = None
    account: Optional[Account] = None

    def __eq__(self, other) -> bool:
        return isinstance(other, Applicant) and other.id == self.id

    def __hash__(self) -> int:
        return hash(("applicant", self.id))

    def __repr__(self) -> str:
        return f"Applicant(id={self.id}, account={self.account_id})"


@dataclass(eq=False)
class Program:
    """
    One version of a program.

    admin_name is stable across versions; display_name is what applicants see.
    """

    id: int
    admin_name: str
    display_name: str
    version: int = 1

    def __eq__(self, other) -> bool:
        return isinstance(other, Program) and other.id == self.id

    def __hash__(self) -> int:
        return hash(("program", self.id))

    def __repr__(self) -> str:
        return f"Program(id={self.id}, name={self.admin_name}, v{self.version})"


@dataclass(eq=False)
class ApplicationEvent:
    """Entry in an application's history (status changes, notes)"""

    id: int
    application_id: int
    event_type: str
    details: Dict[str, Any] = field(default_factory=dict)
    creator_email: Optional[str] = None
    created_at: Optional[datetime] = None

    def __eq__(self, other) -> bool:
        return isinstance(other, ApplicationEvent) and other.id == self.id

    def __hash__(self) -> int:
        return hash(("application_event", self.id))


@dataclass(eq=False)
class Application:
    """
    Application aggregate root.

    Invariants (enforced by the methods below):
    1. OBSOLETE is terminal - the stage never changes once set
    2. submit_time is set exactly once, when the application becomes ACTIVE
    3. An obsoleted application only gets a submit_time if it never had one
    4. Only a DRAFT can be activated or have its answers refreshed

    Lineage-wide invariants (one DRAFT, one ACTIVE per lineage) span several
    aggregates and are enforced by ApplicationStore.

    Identity: two Application objects are equal iff they have the same id.
    Unsaved applications (id None) are only equal to themselves.
    """

    id: Optional[int]
    applicant_id: int
    program_id: int
    program_admin_name: str
    lifecycle_stage: LifecycleStage
    answer_data: AnswerData = field(default_factory=AnswerData)
    submit_time: Optional[datetime] = None
    submitter_email: Optional[SubmitterEmail] = None
    created_at: datetime = field(default_factory=utc_now)

    # Associations, populated only when a query eagerly loads them
    program: Optional[Program] = None
    applicant: Optional[Applicant] = None
    events: List[ApplicationEvent] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.lifecycle_stage, LifecycleStage):
            self.lifecycle_stage = LifecycleStage(self.lifecycle_stage)
        if not self.program_admin_name:
            raise InvalidApplicationError(
                f"Application {self.id} must belong to a named program lineage"
            )

    @classmethod
    def new_draft(
        cls,
        applicant: Applicant,
        program: Program,
        now: Optional[datetime] = None
    ) -> "Application":
        """Create an unsaved DRAFT seeded with the applicant's current answers"""
        return cls(
            id=None,
            applicant_id=applicant.id,
            program_id=program.id,
            program_admin_name=program.admin_name,
            lifecycle_stage=LifecycleStage.DRAFT,
            answer_data=applicant.answer_data,
            created_at=now or utc_now(),
        )

    # Business logic methods

    def refresh_answers(self, answer_data: AnswerData) -> None:
        """Replace a draft's answers with the applicant's latest snapshot"""
        self._require_stage(LifecycleStage.DRAFT, "refresh answers on")
        self.answer_data = answer_data

    def activate(
        self,
        answer_data: AnswerData,
        now: datetime,
        submitter_email: Optional[SubmitterEmail] = None
    ) -> None:
        """
        Promote a DRAFT to ACTIVE.

        Args:
            answer_data: Applicant's answers at submit time (copied onto the record)
            now: Submit time
            submitter_email: Intermediary submitting on the applicant's behalf
        """
        self._require_stage(LifecycleStage.DRAFT, "activate")
        self.answer_data = answer_data
        self.lifecycle_stage = LifecycleStage.ACTIVE
        self.submit_time = now
        if submitter_email is not None:
            self.submitter_email = submitter_email

    def mark_obsolete(self, now: datetime) -> None:
        """
        Retire a superseded ACTIVE application.

        A missing submit_time (left by older code paths) is backfilled;
        an existing one is kept.
        """
        self._require_stage(LifecycleStage.ACTIVE, "obsolete")
        if self.submit_time is None:
            self.submit_time = now
        self.lifecycle_stage = LifecycleStage.OBSOLETE

    def _require_stage(self, expected: LifecycleStage, action: str) -> None:
        if self.lifecycle_stage is not expected:
            raise InvalidLifecycleTransitionError(
                self.id, self.lifecycle_stage, f"cannot {action} a {self.lifecycle_stage.value} application"
            )

    @property
    def is_draft(self) -> bool:
        return self.lifecycle_stage is LifecycleStage.DRAFT

    @property
    def is_active(self) -> bool:
        return self.lifecycle_stage is LifecycleStage.ACTIVE

    @property
    def is_obsolete(self) -> bool:
        return self.lifecycle_stage is LifecycleStage.OBSOLETE

    @property
    def submitted_by_intermediary(self) -> bool:
        return self.submitter_email is not None

    @property
    def lineage(self) -> LineageKey:
        return LineageKey(self.applicant_id, self.program_admin_name)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Application):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        if self.id is None:
            return id(self)
        return hash(("application", self.id))

    def __repr__(self) -> str:
        submitted = f", submitted={self.submit_time.isoformat()}" if self.submit_time else ""
        return (
            f"Application(id={self.id}, stage={self.lifecycle_stage.value}, "
            f"lineage={self.applicant_id}/{self.program_admin_name}{submitted})"
        )


# Domain exceptions

class DomainError(Exception):
    """Base exception for domain layer errors"""
    pass


class InvalidApplicationError(DomainError):
    """Raised when an application violates business rules"""
    pass


class InvalidLifecycleTransitionError(DomainError):
    """Raised when a stage change breaks the lifecycle state machine"""

    def __init__(self, application_id: Optional[int], stage: LifecycleStage, reason: str):
        self.application_id = application_id
        self.stage = stage
        super().__init__(f"Application {application_id}: {reason}")


class ApplicantNotFoundError(DomainError):
    """Raised when applicant doesn't exist"""

    def __init__(self, applicant_id: int):
        self.applicant_id = applicant_id
        super().__init__(f"Applicant {applicant_id} not found")


class ProgramNotFoundError(DomainError):
    """Raised when program doesn't exist"""

    def __init__(self, program_id: int):
        self.program_id = program_id
        super().__init__(f"Program {program_id} not found")


class DuplicateApplicationError(DomainError):
    """Raised when a submission repeats the answers of the active application"""

    def __init__(self, applicant_id: Optional[int] = None, program_admin_name: Optional[str] = None):
        self.applicant_id = applicant_id
        self.program_admin_name = program_admin_name
        super().__init__(
            f"Application for applicant {applicant_id} to program {program_admin_name} "
            f"duplicates the active application"
        )


class InternalInconsistencyError(DomainError):
    """
    Raised when stored data breaks a lineage invariant that the store itself
    never produces (e.g. two drafts in one lineage). Signals a bug or
    corruption, not a user-facing condition.
    """

    def __init__(self, lineage: LineageKey, reason: str):
        self.lineage = lineage
        super().__init__(f"Lineage {lineage}: {reason}")
