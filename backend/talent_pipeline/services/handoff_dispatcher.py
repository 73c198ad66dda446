"""Hand-off dispatcher: derived team views over candidate snapshots.

After every committed transition the engine passes the candidate's fresh
snapshot to ``apply``. The dispatcher recomputes that one candidate's
membership in three views and reports what changed as Handoff events:

- sales queue: sent to sales by delivery, not yet terminal
- deployed roster: a client interview marked deployed
- ready for deployment: latest mock scored at or above the threshold on
  both axes, candidate not terminal

The dispatcher never reads or writes records. Views are rebuilt from
scratch with ``rebuild`` after process start.

Note: Safe for async/await usage (single event loop); every method is
synchronous, so no await point can interleave with an update.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from talent_pipeline.core.auth import Role
from talent_pipeline.core.config import settings
from talent_pipeline.services.candidate_stage import (
    derive_stage,
    is_deployed,
    is_sent_to_sales,
    latest_mock,
)
from talent_pipeline.services.pipeline_types import CandidateSnapshot

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class PipelineView(str, Enum):
    """Derived views maintained by the dispatcher."""

    SALES_QUEUE = "sales_queue"
    DEPLOYED = "deployed"
    READY_FOR_DEPLOYMENT = "ready_for_deployment"


class HandoffChange(str, Enum):
    ENTERED = "entered"
    LEFT = "left"


# Team that acts on a candidate entering each view
_VIEW_AUDIENCE: dict[PipelineView, Role] = {
    PipelineView.SALES_QUEUE: Role.SALES,
    PipelineView.DEPLOYED: Role.DELIVERY,
    PipelineView.READY_FOR_DEPLOYMENT: Role.SALES,
}


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class Handoff:
    """One candidate entering or leaving one view.

    Attributes:
        view: The view whose membership changed.
        change: Entered or left.
        candidate_id: Candidate primary key.
        emp_id: Candidate business key, for display.
        audience: Team notified of the change.
    """

    view: PipelineView
    change: HandoffChange
    candidate_id: uuid.UUID
    emp_id: str
    audience: Role


@dataclass(frozen=True)
class DispatcherCounters:
    """Aggregate counters over all candidates seen.

    Attributes:
        sent_to_sales: Candidates ever forwarded to sales (still tracked).
        deployed: Candidates currently deployed.
    """

    sent_to_sales: int
    deployed: int


# =============================================================================
# Membership rules
# =============================================================================


def in_sales_queue(snapshot: CandidateSnapshot) -> bool:
    """Sent to sales by delivery and not yet deployed or closed."""
    return is_sent_to_sales(snapshot) and not derive_stage(snapshot).is_terminal


def in_deployed_roster(snapshot: CandidateSnapshot) -> bool:
    return is_deployed(snapshot)


def is_ready_for_deployment(
    snapshot: CandidateSnapshot,
    threshold: int | None = None,
) -> bool:
    """Latest mock is completed with both scores at or above the threshold.

    Args:
        snapshot: Candidate snapshot.
        threshold: Minimum score on each axis. Defaults to settings.

    Returns:
        True if the candidate qualifies and is not terminal.
    """
    limit = settings.ready_for_deployment_threshold if threshold is None else threshold
    mock = latest_mock(snapshot)
    if mock is None or not mock.is_completed:
        return False
    if mock.technical_score is None or mock.communication_score is None:
        return False
    if mock.technical_score < limit or mock.communication_score < limit:
        return False
    return not derive_stage(snapshot).is_terminal


# =============================================================================
# Dispatcher
# =============================================================================


class HandoffDispatcher:
    """Maintains the derived views incrementally, one snapshot at a time."""

    def __init__(self, threshold: int | None = None) -> None:
        """Initialize empty views.

        Args:
            threshold: Ready-for-deployment score threshold. Defaults to
                settings.ready_for_deployment_threshold.
        """
        self._threshold = threshold
        self._views: dict[PipelineView, dict[uuid.UUID, CandidateSnapshot]] = {
            view: {} for view in PipelineView
        }
        self._ever_sent: set[uuid.UUID] = set()

    def _memberships(self, snapshot: CandidateSnapshot) -> dict[PipelineView, bool]:
        return {
            PipelineView.SALES_QUEUE: in_sales_queue(snapshot),
            PipelineView.DEPLOYED: in_deployed_roster(snapshot),
            PipelineView.READY_FOR_DEPLOYMENT: is_ready_for_deployment(
                snapshot, self._threshold
            ),
        }

    def apply(self, snapshot: CandidateSnapshot) -> list[Handoff]:
        """Update all views for one candidate.

        Args:
            snapshot: The candidate as committed by the latest transition.

        Returns:
            Handoff events for every view the candidate entered or left.
        """
        handoffs: list[Handoff] = []
        if is_sent_to_sales(snapshot):
            self._ever_sent.add(snapshot.id)

        for view, member in self._memberships(snapshot).items():
            members = self._views[view]
            was_member = snapshot.id in members
            if member:
                members[snapshot.id] = snapshot
            else:
                members.pop(snapshot.id, None)

            if member != was_member:
                handoff = Handoff(
                    view=view,
                    change=HandoffChange.ENTERED if member else HandoffChange.LEFT,
                    candidate_id=snapshot.id,
                    emp_id=snapshot.emp_id,
                    audience=_VIEW_AUDIENCE[view],
                )
                handoffs.append(handoff)
                logger.info(
                    "Candidate %s %s %s (notify %s)",
                    snapshot.emp_id,
                    handoff.change.value,
                    view.value,
                    handoff.audience.value,
                )
        return handoffs

    def rebuild(self, snapshots: Iterable[CandidateSnapshot]) -> None:
        """Recompute every view from scratch.

        Args:
            snapshots: Every candidate in the store.
        """
        self.reset()
        count = 0
        for snapshot in snapshots:
            self.apply(snapshot)
            count += 1
        logger.info("Rebuilt pipeline views from %d candidates", count)

    def reset(self) -> None:
        for members in self._views.values():
            members.clear()
        self._ever_sent.clear()

    def view(self, view: PipelineView) -> tuple[CandidateSnapshot, ...]:
        """Members of one view, ordered by emp_id.

        Returns a tuple so callers hold a consistent copy that later
        updates cannot change.
        """
        members = self._views[view].values()
        return tuple(sorted(members, key=lambda s: s.emp_id))

    def sales_queue(self) -> tuple[CandidateSnapshot, ...]:
        return self.view(PipelineView.SALES_QUEUE)

    def deployed_roster(self) -> tuple[CandidateSnapshot, ...]:
        return self.view(PipelineView.DEPLOYED)

    def ready_for_deployment(self) -> tuple[CandidateSnapshot, ...]:
        return self.view(PipelineView.READY_FOR_DEPLOYMENT)

    def counters(self) -> DispatcherCounters:
        return DispatcherCounters(
            sent_to_sales=len(self._ever_sent),
            deployed=len(self._views[PipelineView.DEPLOYED]),
        )


# Global dispatcher instance
handoff_dispatcher = HandoffDispatcher()


def get_dispatcher() -> HandoffDispatcher:
    """Return the process-wide dispatcher (FastAPI dependency)."""
    return handoff_dispatcher
