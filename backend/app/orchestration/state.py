"""Per-trip planner state and its reducer.

All orchestration state for one trip lives in a PlannerState. Transitions are
expressed as events folded in by `reduce`, which never mutates its input.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Literal

from backend.app.models.change_plan import BlockerDeltaUI, ChangePlannerResponse, UndoContext
from backend.app.models.common import ChangeSource
from backend.app.models.trip import TripInput, TripState

PlannerStatus = Literal["idle", "planning", "applied"]


@dataclass(frozen=True)
class PendingPlan:
    """Inputs of an issued but not yet adopted plan request."""

    prev_input: TripInput
    next_input: TripInput
    source: ChangeSource


@dataclass
class PlannerState:
    """Orchestration state for a single trip.

    `generation` is the last issued request generation; `adopted_generation` the
    newest one whose plan was applied. A plan older than `adopted_generation` is stale.
    """

    trip_id: int
    status: PlannerStatus = "idle"
    generation: int = 0
    adopted_generation: int = 0
    adopted_change_id: str | None = None
    working_trip: TripState | None = None
    banner_plan: ChangePlannerResponse | None = None
    banner_source: ChangeSource | None = None
    banner_set_at: datetime | None = None
    undo: UndoContext | None = None
    pending: dict[int, PendingPlan] = field(default_factory=dict)
    blocker_delta: BlockerDeltaUI | None = None
    recently_changed_at: datetime | None = None
    last_error: str | None = None

    def is_stale(self, generation: int) -> bool:
        return generation < self.adopted_generation

    def is_adopted(self, change_id: str, generation: int) -> bool:
        """True when this plan is the one already in effect (generation 0 means unstamped)."""
        if self.adopted_change_id is None or change_id != self.adopted_change_id:
            return False
        return generation in (0, self.adopted_generation)


# Events


@dataclass(frozen=True)
class PlanRequested:
    generation: int
    pending: PendingPlan


@dataclass(frozen=True)
class PlanFailed:
    generation: int
    error: str


@dataclass(frozen=True)
class PlanApplied:
    generation: int
    change_id: str
    working_trip: TripState | None
    banner_plan: ChangePlannerResponse
    banner_source: ChangeSource
    undo: UndoContext | None
    blocker_delta: BlockerDeltaUI | None
    at: datetime


@dataclass(frozen=True)
class DuplicateConfirmed:
    at: datetime
    generation: int | None = None


@dataclass(frozen=True)
class UndoExpired:
    pass


@dataclass(frozen=True)
class BlockerDeltaExpired:
    pass


@dataclass(frozen=True)
class BannerDismissed:
    pass


PlannerEvent = (
    PlanRequested
    | PlanFailed
    | PlanApplied
    | DuplicateConfirmed
    | UndoExpired
    | BlockerDeltaExpired
    | BannerDismissed
)


def _settled_status(state: PlannerState, pending: dict[int, PendingPlan]) -> PlannerStatus:
    if pending:
        return "planning"
    return "applied" if state.undo is not None or state.banner_plan is not None else "idle"


def reduce(state: PlannerState, event: PlannerEvent) -> PlannerState:
    """Fold one event into the state, returning a new PlannerState."""
    if isinstance(event, PlanRequested):
        pending = {**state.pending, event.generation: event.pending}
        return replace(
            state,
            status="planning",
            generation=max(state.generation, event.generation),
            pending=pending,
            last_error=None,
        )

    if isinstance(event, PlanFailed):
        pending = {g: p for g, p in state.pending.items() if g != event.generation}
        return replace(
            state,
            status=_settled_status(state, pending),
            pending=pending,
            last_error=event.error,
        )

    if isinstance(event, PlanApplied):
        if state.is_stale(event.generation):
            return state
        # Older in-flight requests are superseded by this one.
        pending = {g: p for g, p in state.pending.items() if g > event.generation}
        applied = replace(
            state,
            generation=max(state.generation, event.generation),
            adopted_generation=event.generation,
            adopted_change_id=event.change_id,
            working_trip=event.working_trip if event.working_trip is not None else state.working_trip,
            banner_plan=event.banner_plan,
            banner_source=event.banner_source,
            banner_set_at=event.at,
            undo=event.undo,
            pending=pending,
            blocker_delta=event.blocker_delta,
            recently_changed_at=event.at,
            last_error=None,
        )
        return replace(applied, status="planning" if pending else "applied")

    if isinstance(event, DuplicateConfirmed):
        if event.generation not in state.pending:
            return replace(state, recently_changed_at=event.at)
        pending = {g: p for g, p in state.pending.items() if g != event.generation}
        return replace(
            state,
            status=_settled_status(state, pending),
            pending=pending,
            recently_changed_at=event.at,
        )

    if isinstance(event, UndoExpired):
        cleared = replace(state, undo=None)
        return replace(cleared, status="planning" if state.pending else "idle")

    if isinstance(event, BlockerDeltaExpired):
        return replace(state, blocker_delta=None)

    if isinstance(event, BannerDismissed):
        cleared = replace(state, banner_plan=None, banner_source=None, banner_set_at=None, undo=None)
        return replace(cleared, status="planning" if state.pending else "idle")

    raise TypeError(f"Unknown planner event: {type(event).__name__}")
