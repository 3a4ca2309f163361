"""
Value Objects for the submission lifecycle.

Value objects are immutable, self-validating, and compared by value:
- LifecycleStage: where an application sits in its lineage
- AnswerData: snapshot of an applicant's answers
- TimeFilter: submit-time window for read queries
- SubmitterEmail: identity of an intermediary submitting for an applicant
- LineageKey: (applicant, program admin name) grouping for lifecycle rules
"""

import copy
import enum
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


class LifecycleStage(str, enum.Enum):
    """
    Application lifecycle stage.

    DRAFT -> ACTIVE -> OBSOLETE. OBSOLETE is terminal.
    """
    DRAFT = "draft"
    ACTIVE = "active"
    OBSOLETE = "obsolete"

    @property
    def is_terminal(self) -> bool:
        return self is LifecycleStage.OBSOLETE


# Keys written by the form engine on every save; they never make two answer
# sets different.
ANSWER_METADATA_KEYS = frozenset({"updated_at", "program_updated_in"})


def _strip_metadata(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            k: _strip_metadata(v)
            for k, v in value.items()
            if k not in ANSWER_METADATA_KEYS
        }
    if isinstance(value, (list, tuple)):
        return [_strip_metadata(v) for v in value]
    return value


@dataclass(frozen=True, eq=False)
class AnswerData:
    """
    Snapshot of an applicant's answers.

    The payload is deep-copied on the way in and on the way out, so a snapshot
    copied onto an application can't change when the applicant keeps editing.
    """

    payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.payload, Mapping):
            raise ValueError(
                f"AnswerData payload must be a mapping, got {type(self.payload).__name__}"
            )
        object.__setattr__(self, "payload", copy.deepcopy(dict(self.payload)))

    def to_dict(self) -> Dict[str, Any]:
        """Get a mutable copy of the answers (for persistence)"""
        return copy.deepcopy(self.payload)

    def is_duplicate_of(self, other: "AnswerData") -> bool:
        """
        Check if two snapshots hold the same answers.

        Metadata keys (update timestamps, program version markers) are ignored
        at every nesting level.
        """
        if other is None:
            return False
        return self._canonical() == other._canonical()

    def _canonical(self) -> str:
        return json.dumps(_strip_metadata(self.payload), sort_keys=True, default=str)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AnswerData):
            return NotImplemented
        return json.dumps(self.payload, sort_keys=True, default=str) == \
            json.dumps(other.payload, sort_keys=True, default=str)

    def __hash__(self) -> int:
        return hash(json.dumps(self.payload, sort_keys=True, default=str))

    def __repr__(self) -> str:
        return f"AnswerData(keys={sorted(self.payload.keys())})"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp to aware UTC (naive values are taken as UTC)"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert a timestamp to naive UTC for storage in DateTime columns"""
    value = as_utc(value)
    return value.replace(tzinfo=None) if value is not None else None


@dataclass(frozen=True)
class TimeFilter:
    """
    Submit-time window for read queries.

    from_time is inclusive, until_time is exclusive. A missing bound means
    unbounded on that side.
    """

    from_time: Optional[datetime] = None
    until_time: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "from_time", as_utc(self.from_time))
        object.__setattr__(self, "until_time", as_utc(self.until_time))
        if self.from_time and self.until_time and self.from_time > self.until_time:
            raise ValueError(
                f"TimeFilter from_time ({self.from_time.isoformat()}) is after "
                f"until_time ({self.until_time.isoformat()})"
            )

    @property
    def is_unbounded(self) -> bool:
        return self.from_time is None and self.until_time is None

    def contains(self, moment: Optional[datetime]) -> bool:
        """Check if a submit time falls inside the window"""
        if self.is_unbounded:
            return True
        if moment is None:
            return False
        moment = as_utc(moment)
        if self.from_time is not None and moment < self.from_time:
            return False
        if self.until_time is not None and moment >= self.until_time:
            return False
        return True


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class SubmitterEmail:
    """
    Email of a trusted intermediary submitting on an applicant's behalf.

    Stored lower-cased so the same intermediary always compares equal.
    """

    value: str

    def __post_init__(self):
        if not self.value or not self.value.strip():
            raise ValueError("SubmitterEmail cannot be empty")
        normalized = self.value.strip().lower()
        if not _EMAIL_RE.match(normalized):
            raise ValueError(f"Invalid SubmitterEmail format: {self.value}")
        if len(normalized) > 255:
            raise ValueError(f"SubmitterEmail too long: {len(normalized)} chars. Max 255.")
        object.__setattr__(self, "value", normalized)

    @classmethod
    def from_stored(cls, value: str) -> "SubmitterEmail":
        """
        Wrap a value read back from storage.

        Older rows can hold identities that predate the format check
        (e.g. "ti@localhost"); they are kept exactly as stored.
        """
        stored = object.__new__(cls)
        object.__setattr__(stored, "value", value)
        return stored

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return "SubmitterEmail(<redacted>)"


@dataclass(frozen=True)
class LineageKey:
    """
    Grouping key for lifecycle rules.

    Keyed by program admin name rather than program ID, so every version of a
    program shares one lineage.
    """

    applicant_id: int
    program_admin_name: str

    def __post_init__(self):
        if self.applicant_id is None or self.applicant_id < 1:
            raise ValueError(f"Invalid applicant_id for lineage: {self.applicant_id}")
        if not self.program_admin_name:
            raise ValueError("LineageKey program_admin_name cannot be empty")

    def __str__(self) -> str:
        return f"{self.applicant_id}/{self.program_admin_name}"


def optional_submitter_email(value: Optional[str]) -> Optional[SubmitterEmail]:
    """Convert an optional stored column value to SubmitterEmail, unvalidated"""
    return SubmitterEmail.from_stored(value) if value else None
