"""Read accessors over the candidate pipeline.

Every accessor loads candidates together with their interview records and
works on immutable snapshots, so a caller sees one consistent state.
Dispatcher-backed views (sales queue, deployed roster, ready list) read
from the dispatcher, which is warmed with ``warm_dispatcher`` at startup.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from talent_pipeline.core.errors import NotFoundError, ValidationError
from talent_pipeline.repositories.candidate_repository import (
    CandidateRepository,
    ResumeRepository,
    candidate_snapshot,
)
from talent_pipeline.repositories.interview_repository import (
    ClientInterviewRepository,
    MockInterviewRepository,
    client_interview_snapshot,
    mock_interview_snapshot,
)
from talent_pipeline.services import scoring
from talent_pipeline.services.candidate_stage import current_level, derive_stage
from talent_pipeline.services.handoff_dispatcher import (
    HandoffDispatcher,
    get_dispatcher,
)
from talent_pipeline.services.pipeline_types import (
    CandidateSnapshot,
    CandidateStage,
    ClientInterviewSnapshot,
    InterviewStatus,
    MockInterviewSnapshot,
    ResourceType,
    Technology,
)

FILTER_ALL = scoring.FILTER_ALL


@dataclass(frozen=True)
class CandidateView:
    """A candidate snapshot with its derived fields.

    Attributes:
        snapshot: Candidate and owned records.
        stage: Derived pipeline stage.
        level: Highest client interview level, or None.
        total_rating: Latest completed mock total (0-20).
    """

    snapshot: CandidateSnapshot
    stage: CandidateStage
    level: int | None
    total_rating: int


@dataclass(frozen=True)
class ResumeEntry:
    """A stored resume with the candidate fields sales filters on."""

    id: uuid.UUID
    candidate_id: uuid.UUID
    emp_id: str
    full_name: str
    technology: str
    resource_type: str
    file_name: str
    file_ref: str
    uploaded_at: datetime


def to_view(snapshot: CandidateSnapshot) -> CandidateView:
    return CandidateView(
        snapshot=snapshot,
        stage=derive_stage(snapshot),
        level=current_level(snapshot),
        total_rating=scoring.total_rating(snapshot),
    )


def _enum_filter(
    enum_cls: type[Technology] | type[ResourceType],
    value: str | None,
    field: str,
) -> str | None:
    """Normalize an optional filter; None / "" / "all" mean no filter."""
    if value is None or value.strip().lower() in ("", FILTER_ALL):
        return None
    try:
        return enum_cls.from_string(value).value
    except ValueError as exc:
        raise ValidationError(str(exc), field=field) from exc


async def _all_snapshots(
    db: AsyncSession,
    *,
    technology: str | None = None,
    resource_type: str | None = None,
) -> list[CandidateSnapshot]:
    candidates = await CandidateRepository.list_all(
        db, technology=technology, resource_type=resource_type
    )
    return [candidate_snapshot(c) for c in candidates]


# =============================================================================
# Candidates
# =============================================================================


async def get_candidate(db: AsyncSession, candidate_id: uuid.UUID) -> CandidateView:
    """Fetch one candidate with derived stage and level.

    Raises:
        NotFoundError: Candidate does not exist.
    """
    candidate = await CandidateRepository.get_by_id(db, candidate_id)
    if candidate is None:
        raise NotFoundError("Candidate", str(candidate_id))
    return to_view(candidate_snapshot(candidate))


async def get_candidate_by_emp_id(db: AsyncSession, emp_id: str) -> CandidateView:
    candidate = await CandidateRepository.get_by_emp_id(db, emp_id)
    if candidate is None:
        raise NotFoundError("Candidate", emp_id)
    return to_view(candidate_snapshot(candidate))


async def list_candidates(
    db: AsyncSession,
    *,
    technology: str | None = None,
    resource_type: str | None = None,
    stage: str | None = None,
) -> list[CandidateView]:
    """List candidates, optionally filtered.

    Args:
        db: Async database session.
        technology: Technology filter ("all" or None for every track).
        resource_type: Resource type filter ("all" or None for every type).
        stage: Derived stage filter.

    Returns:
        Candidate views ordered by emp_id.

    Raises:
        ValidationError: Unknown filter value.
    """
    tech = _enum_filter(Technology, technology, "technology")
    resource = _enum_filter(ResourceType, resource_type, "resource_type")
    wanted_stage = None
    if stage is not None and stage.strip().lower() not in ("", FILTER_ALL):
        try:
            wanted_stage = CandidateStage(stage.strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Invalid stage: '{stage}'", field="stage") from exc

    views = [
        to_view(s)
        for s in await _all_snapshots(db, technology=tech, resource_type=resource)
    ]
    if wanted_stage is not None:
        views = [v for v in views if v.stage is wanted_stage]
    return views


# =============================================================================
# Dispatcher views
# =============================================================================


async def warm_dispatcher(
    db: AsyncSession,
    dispatcher: HandoffDispatcher | None = None,
) -> None:
    """Rebuild the dispatcher views from the stored candidates."""
    dispatcher = dispatcher or get_dispatcher()
    dispatcher.rebuild(await _all_snapshots(db))


def get_sales_queue(dispatcher: HandoffDispatcher | None = None) -> list[CandidateView]:
    return [to_view(s) for s in (dispatcher or get_dispatcher()).sales_queue()]


def get_deployed_roster(
    dispatcher: HandoffDispatcher | None = None,
) -> list[CandidateView]:
    return [to_view(s) for s in (dispatcher or get_dispatcher()).deployed_roster()]


def get_ready_for_deployment(
    dispatcher: HandoffDispatcher | None = None,
) -> list[CandidateView]:
    return [
        to_view(s) for s in (dispatcher or get_dispatcher()).ready_for_deployment()
    ]


# =============================================================================
# Interviews
# =============================================================================


async def get_client_interviews_by_candidate(
    db: AsyncSession, candidate_id: uuid.UUID
) -> list[ClientInterviewSnapshot]:
    """Client interviews for a candidate, ordered by level.

    Raises:
        NotFoundError: Candidate does not exist.
    """
    if await CandidateRepository.get_by_id(db, candidate_id) is None:
        raise NotFoundError("Candidate", str(candidate_id))
    interviews = await ClientInterviewRepository.list_for_candidate(db, candidate_id)
    return [client_interview_snapshot(ci) for ci in interviews]


async def get_client_interview(
    db: AsyncSession, interview_id: uuid.UUID
) -> ClientInterviewSnapshot:
    """Fetch one client interview.

    Raises:
        NotFoundError: Interview does not exist.
    """
    interview = await ClientInterviewRepository.get_by_id(db, interview_id)
    if interview is None:
        raise NotFoundError("ClientInterview", str(interview_id))
    return client_interview_snapshot(interview)


async def search_client_interviews(
    db: AsyncSession,
    search: str | None = None,
) -> list[ClientInterviewSnapshot]:
    """Client interviews across all candidates, optionally narrowed by a term.

    The term matches client, job description title, interviewer email, and
    the candidate's emp_id or name, ignoring case. Results are ordered by
    date and time.
    """
    term = search.strip() if search else None
    interviews = await ClientInterviewRepository.search(db, term or None)
    return [client_interview_snapshot(ci) for ci in interviews]


async def count_client_interviews(
    db: AsyncSession,
    *,
    status: str | None = None,
) -> int:
    """Number of client interviews ever scheduled, or those in one status.

    Raises:
        ValidationError: Unknown status.
    """
    if status is None or status.strip().lower() in ("", FILTER_ALL):
        return await ClientInterviewRepository.count(db)
    try:
        wanted = InterviewStatus.from_string(status).value
    except ValueError as exc:
        raise ValidationError(str(exc), field="status") from exc
    return await ClientInterviewRepository.count(db, status=wanted)


async def list_mock_interviews(
    db: AsyncSession,
    *,
    upcoming: bool | None = None,
) -> list[MockInterviewSnapshot]:
    """Mock interviews ordered by date and time.

    Args:
        db: Async database session.
        upcoming: True for interviews still waiting for feedback, False
            for completed interviews, None for all.

    Returns:
        Matching mock interview snapshots.
    """
    status = None
    if upcoming is not None:
        status = (
            InterviewStatus.SCHEDULED.value
            if upcoming
            else InterviewStatus.COMPLETED.value
        )
    mocks = await MockInterviewRepository.list_all(db, status=status)
    return [mock_interview_snapshot(m) for m in mocks]


# =============================================================================
# Resumes
# =============================================================================


async def list_resumes(
    db: AsyncSession,
    *,
    technology: str | None = None,
    resource_type: str | None = None,
) -> list[ResumeEntry]:
    """Every stored resume, optionally for one technology or resource type.

    Args:
        db: Async database session.
        technology: Technology filter ("all" or None for every track).
        resource_type: Resource type filter ("all" or None for every type).

    Returns:
        Resume entries ordered by emp_id, then upload time.

    Raises:
        ValidationError: Unknown filter value.
    """
    tech = _enum_filter(Technology, technology, "technology")
    resource = _enum_filter(ResourceType, resource_type, "resource_type")
    resumes = await ResumeRepository.list_with_candidates(
        db, technology=tech, resource_type=resource
    )
    return [
        ResumeEntry(
            id=r.id,
            candidate_id=r.candidate_id,
            emp_id=r.candidate.emp_id,
            full_name=r.candidate.full_name,
            technology=r.candidate.technology,
            resource_type=r.candidate.resource_type,
            file_name=r.file_name,
            file_ref=r.file_ref,
            uploaded_at=r.uploaded_at,
        )
        for r in resumes
    ]


# =============================================================================
# Scoring
# =============================================================================


async def get_mock_performance(db: AsyncSession) -> list[scoring.MockPerformance]:
    """Latest completed mock result for every candidate that has one."""
    performances = [scoring.mock_performance(s) for s in await _all_snapshots(db)]
    return [p for p in performances if p is not None]


async def get_leaderboard(
    db: AsyncSession,
    *,
    technology: str | None = None,
    resource_type: str | None = None,
) -> list[scoring.LeaderboardEntry]:
    """Ranked leaderboard with optional case-insensitive filters."""
    return scoring.build_leaderboard(
        await _all_snapshots(db),
        technology=technology,
        resource_type=resource_type,
    )


async def get_technology_averages(
    db: AsyncSession,
) -> dict[str, scoring.GroupAverage]:
    return scoring.technology_averages(await _all_snapshots(db))


async def get_resource_type_averages(
    db: AsyncSession,
) -> dict[str, scoring.GroupAverage]:
    return scoring.resource_type_averages(await _all_snapshots(db))
