"""Pipeline request/response schemas.

Response models are built from immutable snapshots, never from ORM rows,
so a response always reflects the state one transition committed.
"""

import datetime as dt
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from talent_pipeline.services.handoff_dispatcher import DispatcherCounters, Handoff
from talent_pipeline.services.pipeline_queries import CandidateView, to_view
from talent_pipeline.services.pipeline_types import (
    ClientInterviewSnapshot,
    MockInterviewSnapshot,
)
from talent_pipeline.services.scoring import (
    GroupAverage,
    LeaderboardEntry,
    MockPerformance,
)
from talent_pipeline.services.transition_engine import TransitionResult

# =============================================================================
# Requests
# =============================================================================


class RegisterCandidateRequest(BaseModel):
    """Body for POST /candidates."""

    model_config = ConfigDict(extra="forbid")

    emp_id: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=255)
    technology: str
    resource_type: str
    email: str | None = Field(default=None, max_length=255)


class CloseCandidateRequest(BaseModel):
    """Body for POST /candidates/{id}/close."""

    model_config = ConfigDict(extra="forbid")

    outcome: str
    expected_version: int | None = None


class VersionedRequest(BaseModel):
    """Optional optimistic-concurrency token for body-less transitions."""

    model_config = ConfigDict(extra="forbid")

    expected_version: int | None = None


# =============================================================================
# Responses
# =============================================================================


class MockInterviewResponse(BaseModel):
    """Mock interview as seen by the delivery team."""

    id: uuid.UUID
    candidate_id: uuid.UUID
    date: dt.date
    time: dt.time
    interviewer_id: str
    status: str
    held_at: dt.datetime | None = None
    technical_score: int | None = None
    communication_score: int | None = None
    technical_feedback: str | None = None
    communication_feedback: str | None = None
    sent_to_sales: bool
    attachment_refs: list[str]
    feedback_file_ref: str | None = None
    version: int

    @classmethod
    def from_snapshot(cls, mock: MockInterviewSnapshot) -> "MockInterviewResponse":
        return cls(
            id=mock.id,
            candidate_id=mock.candidate_id,
            date=mock.date,
            time=mock.time,
            interviewer_id=mock.interviewer_id,
            status=mock.status,
            held_at=mock.held_at,
            technical_score=mock.technical_score,
            communication_score=mock.communication_score,
            technical_feedback=mock.technical_feedback,
            communication_feedback=mock.communication_feedback,
            sent_to_sales=mock.sent_to_sales,
            attachment_refs=list(mock.attachment_refs),
            feedback_file_ref=mock.feedback_file_ref,
            version=mock.version,
        )


class ClientInterviewResponse(BaseModel):
    """Client interview as seen by the sales team."""

    id: uuid.UUID
    candidate_id: uuid.UUID
    client: str
    level: int
    job_description_title: str
    date: dt.date
    time: dt.time
    meeting_link: str
    interviewer_email: str
    attachment_ref: str
    status: str
    result: str | None = None
    technical_score: Decimal | None = None
    communication_score: Decimal | None = None
    feedback: str | None = None
    feedback_file_ref: str | None = None
    deployed_status: bool
    version: int

    @classmethod
    def from_snapshot(
        cls, interview: ClientInterviewSnapshot
    ) -> "ClientInterviewResponse":
        return cls(
            id=interview.id,
            candidate_id=interview.candidate_id,
            client=interview.client,
            level=interview.level,
            job_description_title=interview.job_description_title,
            date=interview.date,
            time=interview.time,
            meeting_link=interview.meeting_link,
            interviewer_email=interview.interviewer_email,
            attachment_ref=interview.attachment_ref,
            status=interview.status,
            result=interview.result,
            technical_score=interview.technical_score,
            communication_score=interview.communication_score,
            feedback=interview.feedback,
            feedback_file_ref=interview.feedback_file_ref,
            deployed_status=interview.deployed_status,
            version=interview.version,
        )


class CandidateResponse(BaseModel):
    """Candidate with derived stage, level and rating.

    Attributes:
        stage: Derived pipeline stage (never stored).
        level: Highest client interview level, or None.
        sent_to_sales: True once any completed mock was forwarded to sales.
        total_rating: Latest completed mock total (0-20).
    """

    id: uuid.UUID
    emp_id: str
    full_name: str
    email: str | None = None
    technology: str
    resource_type: str
    stage: str
    level: int | None = None
    sent_to_sales: bool
    total_rating: int
    closed_outcome: str | None = None
    resume_count: int
    mock_interviews: list[MockInterviewResponse]
    client_interviews: list[ClientInterviewResponse]
    version: int

    @classmethod
    def from_view(cls, view: CandidateView) -> "CandidateResponse":
        snapshot = view.snapshot
        return cls(
            id=snapshot.id,
            emp_id=snapshot.emp_id,
            full_name=snapshot.full_name,
            email=snapshot.email,
            technology=snapshot.technology,
            resource_type=snapshot.resource_type,
            stage=view.stage.value,
            level=view.level,
            sent_to_sales=any(
                m.is_completed and m.sent_to_sales for m in snapshot.mock_interviews
            ),
            total_rating=view.total_rating,
            closed_outcome=snapshot.closed_outcome,
            resume_count=snapshot.resume_count,
            mock_interviews=[
                MockInterviewResponse.from_snapshot(m) for m in snapshot.mock_interviews
            ],
            client_interviews=[
                ClientInterviewResponse.from_snapshot(ci)
                for ci in snapshot.client_interviews
            ],
            version=snapshot.version,
        )


class HandoffResponse(BaseModel):
    view: str
    change: str
    candidate_id: uuid.UUID
    emp_id: str
    audience: str

    @classmethod
    def from_handoff(cls, handoff: Handoff) -> "HandoffResponse":
        return cls(
            view=handoff.view.value,
            change=handoff.change.value,
            candidate_id=handoff.candidate_id,
            emp_id=handoff.emp_id,
            audience=handoff.audience.value,
        )


class TransitionResponse(BaseModel):
    """Result of a pipeline transition.

    Attributes:
        record_id: Record written (or inspected, for a no-op).
        changed: False when the call was an idempotent no-op.
        candidate: Candidate after the transition.
        handoffs: Team views the candidate entered or left.
    """

    record_id: uuid.UUID
    changed: bool
    candidate: CandidateResponse
    handoffs: list[HandoffResponse]

    @classmethod
    def from_result(cls, result: TransitionResult) -> "TransitionResponse":
        return cls(
            record_id=result.record_id,
            changed=result.changed,
            candidate=CandidateResponse.from_view(to_view(result.candidate)),
            handoffs=[HandoffResponse.from_handoff(h) for h in result.handoffs],
        )


class LeaderboardEntryResponse(BaseModel):
    rank: int
    emp_id: str
    full_name: str
    technology: str
    resource_type: str
    technical_score: int
    communication_score: int
    total_rating: int
    score_percentage: float

    @classmethod
    def from_entry(cls, entry: LeaderboardEntry) -> "LeaderboardEntryResponse":
        performance = entry.performance
        return cls(
            rank=entry.rank,
            emp_id=performance.emp_id,
            full_name=performance.full_name,
            technology=performance.technology,
            resource_type=performance.resource_type,
            technical_score=performance.technical_score,
            communication_score=performance.communication_score,
            total_rating=performance.total_rating,
            score_percentage=performance.score_percentage,
        )


class GroupAverageResponse(BaseModel):
    group: str
    technical: float
    communication: float
    total: float
    count: int

    @classmethod
    def from_average(cls, average: GroupAverage) -> "GroupAverageResponse":
        return cls(
            group=average.group,
            technical=average.technical,
            communication=average.communication,
            total=average.total,
            count=average.count,
        )


class CountersResponse(BaseModel):
    sent_to_sales: int
    deployed: int

    @classmethod
    def from_counters(cls, counters: DispatcherCounters) -> "CountersResponse":
        return cls(sent_to_sales=counters.sent_to_sales, deployed=counters.deployed)


class MockPerformanceResponse(BaseModel):
    """Latest completed mock result for one candidate."""

    emp_id: str
    full_name: str
    technology: str
    resource_type: str
    technical_score: int
    communication_score: int
    total_rating: int
    score_percentage: float

    @classmethod
    def from_performance(
        cls, performance: MockPerformance
    ) -> "MockPerformanceResponse":
        return cls(
            emp_id=performance.emp_id,
            full_name=performance.full_name,
            technology=performance.technology,
            resource_type=performance.resource_type,
            technical_score=performance.technical_score,
            communication_score=performance.communication_score,
            total_rating=performance.total_rating,
            score_percentage=performance.score_percentage,
        )


class ResumeResponse(BaseModel):
    """Stored resume with the owning candidate's filter fields."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    candidate_id: uuid.UUID
    emp_id: str
    full_name: str
    technology: str
    resource_type: str
    file_name: str
    file_ref: str
    uploaded_at: dt.datetime


class InterviewCountResponse(BaseModel):
    count: int
