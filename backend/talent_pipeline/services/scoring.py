"""Scoring and aggregation over candidate snapshots.

Pure functions: read-only, no I/O, no exceptions on partial data. A missing
or malformed score counts as 0 so one bad row never hides the leaderboard.

Scale:
    Each mock axis is 0-10, so a candidate's total rating is 0-20 and the
    percentage is total / 20 * 100, clamped to [0, 100].
"""

from dataclasses import dataclass

from talent_pipeline.services.candidate_stage import latest_completed_mock
from talent_pipeline.services.pipeline_types import (
    CandidateSnapshot,
    ResourceType,
    Technology,
)

MAX_AXIS_SCORE = 10
MAX_TOTAL_RATING = 2 * MAX_AXIS_SCORE

# Filter value meaning "no filter"
FILTER_ALL = "all"


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class MockPerformance:
    """Latest completed mock result for one candidate.

    Attributes:
        emp_id: Candidate business key.
        full_name: Candidate display name.
        technology: Technology track.
        resource_type: Staffing category.
        technical_score: Latest technical score (0 when missing).
        communication_score: Latest communication score (0 when missing).
        total_rating: technical + communication.
    """

    emp_id: str
    full_name: str
    technology: str
    resource_type: str
    technical_score: int
    communication_score: int
    total_rating: int

    @property
    def score_percentage(self) -> float:
        return score_percentage(self.total_rating)


@dataclass(frozen=True)
class LeaderboardEntry:
    """A ranked leaderboard row."""

    rank: int
    performance: MockPerformance


@dataclass(frozen=True)
class GroupAverage:
    """Average mock scores for one technology or resource type.

    Attributes:
        group: Technology or ResourceType value.
        technical: Mean technical score (0.0 when the group is empty).
        communication: Mean communication score.
        total: Mean total rating.
        count: Number of completed mocks averaged.
    """

    group: str
    technical: float
    communication: float
    total: float
    count: int


# =============================================================================
# Per-candidate scoring
# =============================================================================


def _safe_score(value: object) -> int:
    """Coerce a stored score to an int in range, treating junk as 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        score = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 0
    return min(max(score, 0), MAX_AXIS_SCORE)


def mock_performance(snapshot: CandidateSnapshot) -> MockPerformance | None:
    """Latest completed mock result, or None if no mock has feedback."""
    mock = latest_completed_mock(snapshot)
    if mock is None:
        return None
    technical = _safe_score(mock.technical_score)
    communication = _safe_score(mock.communication_score)
    return MockPerformance(
        emp_id=snapshot.emp_id,
        full_name=snapshot.full_name,
        technology=snapshot.technology,
        resource_type=snapshot.resource_type,
        technical_score=technical,
        communication_score=communication,
        total_rating=technical + communication,
    )


def total_rating(snapshot: CandidateSnapshot) -> int:
    """Latest completed mock's technical + communication score (0-20)."""
    performance = mock_performance(snapshot)
    return performance.total_rating if performance else 0


def score_percentage(rating: float) -> float:
    """Convert a total rating to a percentage clamped to [0, 100]."""
    percentage = (rating / MAX_TOTAL_RATING) * 100
    return min(max(percentage, 0.0), 100.0)


# =============================================================================
# Leaderboard
# =============================================================================


def _matches(value: str, wanted: str | None) -> bool:
    if wanted is None or wanted.strip().lower() in ("", FILTER_ALL):
        return True
    return value.lower() == wanted.strip().lower()


def build_leaderboard(
    snapshots: list[CandidateSnapshot],
    *,
    technology: str | None = None,
    resource_type: str | None = None,
) -> list[LeaderboardEntry]:
    """Rank candidates by their latest completed mock.

    Candidates without a completed mock are not ranked. Order is total
    rating descending, then emp_id ascending, so equal input always gives
    the same ranking.

    Args:
        snapshots: Candidates to rank.
        technology: Case-insensitive filter; None or "all" disables it.
        resource_type: Case-insensitive filter; None or "all" disables it.

    Returns:
        Entries with ranks 1..n.
    """
    performances = [
        p
        for p in (mock_performance(s) for s in snapshots)
        if p is not None
        and _matches(p.technology, technology)
        and _matches(p.resource_type, resource_type)
    ]
    performances.sort(key=lambda p: (-p.total_rating, p.emp_id))
    return [
        LeaderboardEntry(rank=index, performance=p)
        for index, p in enumerate(performances, start=1)
    ]


# =============================================================================
# Group averages
# =============================================================================


def _group_averages(
    snapshots: list[CandidateSnapshot],
    groups: list[str],
    key: str,
) -> dict[str, GroupAverage]:
    sums: dict[str, list[int]] = {group: [0, 0, 0] for group in groups}
    for snapshot in snapshots:
        group = getattr(snapshot, key)
        bucket = sums.setdefault(group, [0, 0, 0])
        for mock in snapshot.mock_interviews:
            if not mock.is_completed:
                continue
            bucket[0] += _safe_score(mock.technical_score)
            bucket[1] += _safe_score(mock.communication_score)
            bucket[2] += 1

    averages: dict[str, GroupAverage] = {}
    for group, (technical, communication, count) in sums.items():
        if count == 0:
            averages[group] = GroupAverage(group, 0.0, 0.0, 0.0, 0)
            continue
        averages[group] = GroupAverage(
            group=group,
            technical=round(technical / count, 2),
            communication=round(communication / count, 2),
            total=round((technical + communication) / count, 2),
            count=count,
        )
    return averages


def technology_averages(snapshots: list[CandidateSnapshot]) -> dict[str, GroupAverage]:
    """Average completed-mock scores for every technology."""
    return _group_averages(snapshots, [t.value for t in Technology], "technology")


def resource_type_averages(
    snapshots: list[CandidateSnapshot],
) -> dict[str, GroupAverage]:
    """Average completed-mock scores for every resource type."""
    return _group_averages(snapshots, [r.value for r in ResourceType], "resource_type")
