"""Shared pipeline types: enums and immutable candidate snapshots.

Snapshots are plain frozen dataclasses built from ORM rows in one read.
The stage derivation, dispatcher and scoring code only ever see snapshots,
never live ORM objects, so they stay pure and cannot mutate records.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum


class _LookupEnum(Enum):
    """Enum with case-insensitive lookup by value."""

    @classmethod
    def from_string(cls, value: str) -> "_LookupEnum":
        """Convert a user/database string to enum.

        Raises:
            ValueError: If the string doesn't match any member.
        """
        needle = value.strip().lower()
        for member in cls:
            if member.value.lower() == needle:
                return member
        valid = [m.value for m in cls]
        raise ValueError(f"Invalid {cls.__name__}: '{value}'. Valid: {valid}")


class Technology(_LookupEnum):
    """Technology track of a candidate."""

    JAVA = "Java"
    PYTHON = "Python"
    DOTNET = ".NET"
    DEVOPS = "DevOps"
    SALESFORCE = "SalesForce"
    UI = "UI"
    TESTING = "Testing"


class ResourceType(_LookupEnum):
    """Staffing category, orthogonal to technology."""

    OM = "OM"
    TCT1 = "TCT1"
    TCT2 = "TCT2"


class InterviewStatus(_LookupEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class ClientResult(_LookupEnum):
    SELECTED = "selected"
    REJECTED = "rejected"


class ClosedOutcome(_LookupEnum):
    """Explicit terminal outcomes set by close_candidate."""

    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class CandidateStage(Enum):
    """Derived pipeline stage of a candidate.

    The integer rank gives the pipeline order. Terminal stages share the
    highest rank.
    """

    REGISTERED = "registered"
    RESUME_SUBMITTED = "resume_submitted"
    MOCK_SCHEDULED = "mock_scheduled"
    MOCK_COMPLETED = "mock_completed"
    SALES_QUEUE = "sales_queue"
    CLIENT_SCHEDULED = "client_scheduled"
    CLIENT_COMPLETED = "client_completed"
    DEPLOYED = "deployed"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"

    @property
    def rank(self) -> int:
        return _STAGE_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STAGES


_STAGE_RANK: dict[CandidateStage, int] = {
    CandidateStage.REGISTERED: 0,
    CandidateStage.RESUME_SUBMITTED: 1,
    CandidateStage.MOCK_SCHEDULED: 2,
    CandidateStage.MOCK_COMPLETED: 3,
    CandidateStage.SALES_QUEUE: 4,
    CandidateStage.CLIENT_SCHEDULED: 5,
    CandidateStage.CLIENT_COMPLETED: 6,
    CandidateStage.DEPLOYED: 7,
    CandidateStage.REJECTED: 7,
    CandidateStage.WITHDRAWN: 7,
}

_TERMINAL_STAGES = frozenset(
    {CandidateStage.DEPLOYED, CandidateStage.REJECTED, CandidateStage.WITHDRAWN}
)


# =============================================================================
# Snapshots
# =============================================================================


@dataclass(frozen=True)
class MockInterviewSnapshot:
    """Read-only copy of a MockInterview row."""

    id: uuid.UUID
    candidate_id: uuid.UUID
    date: date
    time: time
    interviewer_id: str
    status: str
    technical_score: int | None = None
    communication_score: int | None = None
    technical_feedback: str | None = None
    communication_feedback: str | None = None
    sent_to_sales: bool = False
    held_at: datetime | None = None
    attachment_refs: tuple[str, ...] = ()
    feedback_file_ref: str | None = None
    version: int = 1

    @property
    def is_completed(self) -> bool:
        return self.status == InterviewStatus.COMPLETED.value

    @property
    def is_scheduled(self) -> bool:
        return self.status == InterviewStatus.SCHEDULED.value

    @property
    def sort_key(self) -> tuple[date, time, str]:
        # id breaks exact date+time ties deterministically
        return (self.date, self.time, str(self.id))


@dataclass(frozen=True)
class ClientInterviewSnapshot:
    """Read-only copy of a ClientInterview row."""

    id: uuid.UUID
    candidate_id: uuid.UUID
    client: str
    level: int
    job_description_title: str
    date: date
    time: time
    status: str
    result: str | None = None
    technical_score: Decimal | None = None
    communication_score: Decimal | None = None
    feedback: str | None = None
    deployed_status: bool = False
    meeting_link: str = ""
    interviewer_email: str = ""
    attachment_ref: str = ""
    feedback_file_ref: str | None = None
    version: int = 1

    @property
    def is_completed(self) -> bool:
        return self.status == InterviewStatus.COMPLETED.value


@dataclass(frozen=True)
class CandidateSnapshot:
    """A candidate together with every record it owns, read at one instant."""

    id: uuid.UUID
    emp_id: str
    full_name: str
    technology: str
    resource_type: str
    email: str | None = None
    user_id: str | None = None
    closed_outcome: str | None = None
    resume_count: int = 0
    mock_interviews: tuple[MockInterviewSnapshot, ...] = field(default_factory=tuple)
    client_interviews: tuple[ClientInterviewSnapshot, ...] = field(
        default_factory=tuple
    )
    version: int = 1
