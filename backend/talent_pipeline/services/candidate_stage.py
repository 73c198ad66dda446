"""Candidate stage derivation.

A candidate's pipeline stage is a pure function of the records it owns.
Nothing stores it, so it can never drift out of sync with the interviews.

Pipeline order:
    registered -> resume_submitted -> mock_scheduled -> mock_completed
    -> sales_queue -> client_scheduled -> client_completed
    -> deployed | rejected | withdrawn   (terminal)

Two regressions are allowed because they are explicit re-runs:
- mock_completed -> mock_scheduled   (another mock is scheduled)
- client_completed -> client_scheduled   (next client level is scheduled)
"""

from talent_pipeline.services.pipeline_types import (
    CandidateSnapshot,
    CandidateStage,
    ClientInterviewSnapshot,
    ClosedOutcome,
    MockInterviewSnapshot,
)

# (from, to) pairs that may move backwards in pipeline order
_ALLOWED_REGRESSIONS: frozenset[tuple[CandidateStage, CandidateStage]] = frozenset(
    {
        (CandidateStage.MOCK_COMPLETED, CandidateStage.MOCK_SCHEDULED),
        (CandidateStage.CLIENT_COMPLETED, CandidateStage.CLIENT_SCHEDULED),
    }
)


# =============================================================================
# Record selection
# =============================================================================


def latest_mock(snapshot: CandidateSnapshot) -> MockInterviewSnapshot | None:
    """Most recently scheduled mock interview (by date, time)."""
    if not snapshot.mock_interviews:
        return None
    return max(snapshot.mock_interviews, key=lambda m: m.sort_key)


def latest_completed_mock(
    snapshot: CandidateSnapshot,
) -> MockInterviewSnapshot | None:
    """Most recently scheduled mock interview that has feedback."""
    completed = [m for m in snapshot.mock_interviews if m.is_completed]
    if not completed:
        return None
    return max(completed, key=lambda m: m.sort_key)


def current_client_interview(
    snapshot: CandidateSnapshot,
) -> ClientInterviewSnapshot | None:
    """The client interview that represents the candidate right now.

    Highest level wins; ties are broken by the most recent date, then time.
    """
    if not snapshot.client_interviews:
        return None
    return max(
        snapshot.client_interviews,
        key=lambda ci: (ci.level, ci.date, ci.time, str(ci.id)),
    )


def open_mock(snapshot: CandidateSnapshot) -> MockInterviewSnapshot | None:
    """Mock interview still waiting for feedback, if any."""
    for mock in snapshot.mock_interviews:
        if mock.is_scheduled:
            return mock
    return None


def open_client_interview(
    snapshot: CandidateSnapshot,
) -> ClientInterviewSnapshot | None:
    """Client interview still waiting for an outcome, if any."""
    for interview in snapshot.client_interviews:
        if not interview.is_completed:
            return interview
    return None


def is_sent_to_sales(snapshot: CandidateSnapshot) -> bool:
    """Candidate-level view of the per-mock sent_to_sales flag."""
    return any(m.is_completed and m.sent_to_sales for m in snapshot.mock_interviews)


def is_deployed(snapshot: CandidateSnapshot) -> bool:
    return any(ci.deployed_status for ci in snapshot.client_interviews)


def current_level(snapshot: CandidateSnapshot) -> int | None:
    """Highest client interview level reached, or None before sales."""
    if not snapshot.client_interviews:
        return None
    return max(ci.level for ci in snapshot.client_interviews)


# =============================================================================
# Derivation
# =============================================================================


def derive_stage(snapshot: CandidateSnapshot) -> CandidateStage:
    """Compute the pipeline stage from a candidate snapshot.

    Rules are evaluated top-down; the first match wins.

    Args:
        snapshot: Candidate with all owned records.

    Returns:
        The derived CandidateStage.
    """
    if is_deployed(snapshot):
        return CandidateStage.DEPLOYED

    if snapshot.closed_outcome == ClosedOutcome.REJECTED.value:
        return CandidateStage.REJECTED
    if snapshot.closed_outcome == ClosedOutcome.WITHDRAWN.value:
        return CandidateStage.WITHDRAWN

    current = current_client_interview(snapshot)
    if current is not None:
        if current.is_completed:
            return CandidateStage.CLIENT_COMPLETED
        return CandidateStage.CLIENT_SCHEDULED

    if is_sent_to_sales(snapshot):
        return CandidateStage.SALES_QUEUE

    if snapshot.mock_interviews:
        if open_mock(snapshot) is not None:
            return CandidateStage.MOCK_SCHEDULED
        return CandidateStage.MOCK_COMPLETED

    if snapshot.resume_count > 0:
        return CandidateStage.RESUME_SUBMITTED

    return CandidateStage.REGISTERED


def is_allowed_progression(previous: CandidateStage, new: CandidateStage) -> bool:
    """Check whether a stage change respects pipeline order.

    Forward moves and staying put are always allowed. Terminal stages never
    change. Backward moves are allowed only for reschedule / re-interview.

    Args:
        previous: Stage before the transition.
        new: Stage after the transition.

    Returns:
        True if the change is permitted.
    """
    if previous == new:
        return True
    if previous.is_terminal:
        return False
    if new.rank > previous.rank:
        return True
    return (previous, new) in _ALLOWED_REGRESSIONS
