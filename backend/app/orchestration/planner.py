"""Change planner orchestrator: request, adopt and undo change plans per trip.

Every request is stamped with a monotonically increasing generation. A plan whose
generation is older than the adopted one is discarded, so late replies from
superseded requests can never overwrite newer state.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import Any

from backend.app.config import Settings, get_settings
from backend.app.diffing.baseline import BaselineRegistry
from backend.app.diffing.blockers import get_blocker_delta_ui, has_blocker_changes
from backend.app.models.change_plan import (
    ApplyChangesResult,
    BlockerDeltaUI,
    ChangePlannerResponse,
    ChangePlanRequest,
    UndoContext,
)
from backend.app.models.common import ChangeSource
from backend.app.models.suggestions import NextFixSuggestion
from backend.app.models.trip import TripInput, TripState
from backend.app.orchestration.history import CertaintyHistory
from backend.app.orchestration.replanner import Replanner, ReplanningError, get_replanner
from backend.app.orchestration.state import (
    BannerDismissed,
    BlockerDeltaExpired,
    DuplicateConfirmed,
    PendingPlan,
    PlanApplied,
    PlanFailed,
    PlannerEvent,
    PlannerState,
    PlanRequested,
    UndoExpired,
    reduce,
)
from backend.app.orchestration.trip_input import format_trip_dates
from backend.app.suggestions.lifecycle import SuggestionLifecycle
from backend.app.suggestions.next_fix import suggest_next_fix
from backend.app.utils.dedupe import DedupeGuard, window_elapsed
from backend.app.utils.logging import StructuredPlannerLogger
from backend.app.utils.metrics import PrometheusPlannerMetrics

logger = logging.getLogger(__name__)

TripUpdater = Callable[[TripState | None], TripState | None]
SetWorkingTrip = Callable[[TripUpdater], None]
SetBannerPlan = Callable[[ChangePlannerResponse, ChangeSource | None], None]
VersionCallback = Callable[[dict[str, Any]], Awaitable[Any] | Any]


def _place_label(city: str, country: str) -> str:
    if city and country and city != country:
        return f"{city}, {country}"
    return city or country


def patch_trip(trip: TripState | None, plan: ChangePlannerResponse, next_input: TripInput | None) -> TripState | None:
    """Apply the plan's recomputed data and the changed inputs to a trip state."""
    if trip is None:
        return None
    updates: dict[str, Any] = {}
    changed = {change.field for change in plan.detected_changes}

    if next_input is not None:
        if "dates" in changed and next_input.dates is not None:
            updates["dates"] = format_trip_dates(next_input.dates)
        if "budget" in changed:
            updates["budget"] = next_input.budget.total
            updates["currency"] = next_input.budget.currency
        if "destination" in changed:
            updates["destination"] = _place_label(next_input.destination.city, next_input.destination.country)
        if "origin" in changed:
            updates["origin"] = next_input.origin.city
        if "passport" in changed:
            updates["passport"] = next_input.passport
        if "travelers" in changed:
            updates["group_size"] = next_input.travelers.total
            updates["adults"] = next_input.travelers.adults
            updates["children"] = next_input.travelers.children
            updates["infants"] = next_input.travelers.infants

    report = dict(trip.feasibility_report or {})
    if plan.delta_summary is not None:
        report["score"] = plan.delta_summary.certainty.after
    if plan.updated_data.visa is not None:
        report["visaDetails"] = plan.updated_data.visa
    if report or trip.feasibility_report is not None:
        updates["feasibility_report"] = report

    itinerary = plan.updated_data.itinerary
    if itinerary is None and trip.itinerary is not None:
        itinerary = dict(trip.itinerary)
    if plan.updated_data.cost_breakdown is not None:
        itinerary = {**(itinerary or {}), "costBreakdown": plan.updated_data.cost_breakdown}
    if itinerary is not None:
        updates["itinerary"] = itinerary

    return trip.model_copy(update=updates)


class ChangePlannerOrchestrator:
    """Owns per-trip planner state, certainty history and suggestion lifecycle."""

    def __init__(
        self,
        replanner: Replanner | None = None,
        *,
        settings: Settings | None = None,
        baselines: BaselineRegistry | None = None,
        suggestions: SuggestionLifecycle | None = None,
        metrics: PrometheusPlannerMetrics | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings or get_settings()
        self.replanner = replanner or get_replanner(self.settings)
        self.baselines = baselines or BaselineRegistry(self.settings)
        self.suggestions = suggestions or SuggestionLifecycle()
        self.metrics = metrics or PrometheusPlannerMetrics()
        self.clock = clock or (lambda: datetime.now(UTC))
        self._log = StructuredPlannerLogger()
        self._states: dict[int, PlannerState] = {}
        self._histories: dict[int, CertaintyHistory] = {}
        self._confirm_guards: dict[int, DedupeGuard] = {}
        self._version_tasks: set[asyncio.Task[Any]] = set()

    # State access

    def state(self, trip_id: int) -> PlannerState:
        if trip_id not in self._states:
            self._states[trip_id] = PlannerState(trip_id=trip_id)
        return self._states[trip_id]

    def history(self, trip_id: int) -> CertaintyHistory:
        if trip_id not in self._histories:
            self._histories[trip_id] = CertaintyHistory(self.settings.certainty_history_max)
        return self._histories[trip_id]

    def _guard(self, trip_id: int) -> DedupeGuard:
        if trip_id not in self._confirm_guards:
            self._confirm_guards[trip_id] = DedupeGuard(self.settings.confirm_debounce_seconds)
        return self._confirm_guards[trip_id]

    def _dispatch(self, trip_id: int, event: PlannerEvent) -> PlannerState:
        self._states[trip_id] = reduce(self.state(trip_id), event)
        return self._states[trip_id]

    # Trip observation

    def observe_trip(self, trip: TripState, *, now: datetime | None = None, today: date | None = None) -> None:
        """Adopt an upstream trip state: working copy, baseline and initial history point."""
        now = now or self.clock()
        self._states[trip.id] = replace(self.state(trip.id), working_trip=trip)
        if trip.status == "generating":
            return
        self.baselines.capture(trip, today=today)
        score = (trip.feasibility_report or {}).get("score")
        if isinstance(score, int | float) and not isinstance(score, bool):
            self.history(trip.id).seed(round(score), now)

    # Planning

    async def plan_changes(
        self,
        trip_id: int,
        prev_input: TripInput,
        next_input: TripInput,
        current_results: TripState,
        source: ChangeSource,
    ) -> ChangePlannerResponse:
        """Request a plan from the replanner, stamped with a fresh generation.

        Raises:
            ReplanningError: When the replanner fails; planner state is rolled back first
        """
        generation = self.state(trip_id).generation + 1
        self._dispatch(
            trip_id,
            PlanRequested(generation=generation, pending=PendingPlan(prev_input, next_input, source)),
        )
        request = ChangePlanRequest(
            trip_id=trip_id,
            prev_input=prev_input,
            next_input=next_input,
            current_results=current_results,
            source=source,
        )

        start_time = time.monotonic()
        try:
            plan = await self.replanner.plan(request)
        except Exception as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            self._dispatch(trip_id, PlanFailed(generation=generation, error=str(e)))
            self.metrics.inc_plan(source, "failed")
            self.metrics.record_replan_latency("failed", elapsed_ms)
            self._log.log_event(
                trip_id,
                "plan",
                "failed",
                generation=generation,
                source=source,
                latency_ms=elapsed_ms,
                error_reason=type(e).__name__,
            )
            if isinstance(e, ReplanningError):
                raise
            raise ReplanningError(f"Replanning failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        self.metrics.record_replan_latency("planned", elapsed_ms)
        self._log.log_event(
            trip_id,
            "plan",
            "planned",
            change_id=plan.change_id,
            generation=generation,
            source=source,
            latency_ms=elapsed_ms,
        )
        return plan.model_copy(update={"generation": generation})

    def apply_changes(
        self,
        trip_id: int,
        plan: ChangePlannerResponse,
        set_working_trip: SetWorkingTrip | None = None,
        set_banner_plan: SetBannerPlan | None = None,
        source: ChangeSource | None = None,
        on_version_create: VersionCallback | None = None,
        *,
        now: datetime | None = None,
    ) -> ApplyChangesResult | None:
        """Adopt a plan. Returns None when the plan is stale and was discarded."""
        now = now or self.clock()
        state = self.state(trip_id)

        if state.is_adopted(plan.change_id, plan.generation):
            return self._confirm_duplicate(trip_id, plan, now)

        if plan.generation == 0:
            # Plans built outside plan_changes get the next generation on arrival.
            plan = plan.model_copy(update={"generation": state.generation + 1})
            self._states[trip_id] = state = replace(state, generation=plan.generation)

        if state.is_stale(plan.generation):
            self.metrics.inc_stale_discard()
            self._log.log_event(
                trip_id, "apply", "stale", change_id=plan.change_id, generation=plan.generation
            )
            return None

        if not self._guard(trip_id).accept(plan.change_id, now):
            return self._confirm_duplicate(trip_id, plan, now)

        pending = state.pending.get(plan.generation)
        source = source or (pending.source if pending else "edit_trip")
        next_input = pending.next_input if pending else None

        undo = None
        if pending is not None and source != "undo":
            undo = UndoContext(
                change_id=plan.change_id,
                prev_input=pending.prev_input,
                next_input=pending.next_input,
                applied_at=now,
                source=source,
            )

        working_trip = patch_trip(state.working_trip, plan, next_input)
        blocker_delta = get_blocker_delta_ui(plan, now=now)
        self._dispatch(
            trip_id,
            PlanApplied(
                generation=plan.generation,
                change_id=plan.change_id,
                working_trip=working_trip,
                banner_plan=plan,
                banner_source=source,
                undo=undo,
                blocker_delta=blocker_delta,
                at=now,
            ),
        )

        if set_working_trip is not None:
            set_working_trip(lambda prev: patch_trip(prev, plan, next_input))
        if set_banner_plan is not None:
            set_banner_plan(plan, source)

        if plan.delta_summary is not None:
            self.history(trip_id).add(
                source, plan.delta_summary.certainty.after, now, point_id=plan.change_id
            )
        self.suggestions.reset(trip_id, plan.change_id)

        if on_version_create is not None:
            self._fire_version(
                trip_id,
                on_version_create,
                {
                    "source": source,
                    "changeId": plan.change_id,
                    "snapshot": working_trip.model_dump(mode="json", by_alias=True) if working_trip else None,
                    "summary": plan.delta_summary.model_dump(mode="json", by_alias=True)
                    if plan.delta_summary
                    else None,
                },
            )

        self.metrics.inc_plan(source, "applied")
        self._log.log_event(
            trip_id, "apply", "applied", change_id=plan.change_id, generation=plan.generation, source=source
        )
        return ApplyChangesResult(
            change_id=plan.change_id,
            highlight_sections=list(plan.ui_instructions.highlight_sections),
            toasts=list(plan.ui_instructions.toasts),
            banner=plan.ui_instructions.banner,
            blocker_delta=blocker_delta if has_blocker_changes(blocker_delta) else None,
        )

    def _confirm_duplicate(self, trip_id: int, plan: ChangePlannerResponse, now: datetime) -> ApplyChangesResult:
        self._dispatch(trip_id, DuplicateConfirmed(at=now, generation=plan.generation))
        self._log.log_event(
            trip_id, "apply", "duplicate", change_id=plan.change_id, generation=plan.generation
        )
        return ApplyChangesResult(change_id=plan.change_id, duplicate=True)

    def _fire_version(self, trip_id: int, callback: VersionCallback, payload: dict[str, Any]) -> None:
        """Start version creation without waiting on it; failures are only logged."""
        try:
            result = callback(payload)
        except Exception:
            logger.exception("Version creation failed for trip %s", trip_id)
            return
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; skipping async version creation for trip %s", trip_id)
            if inspect.iscoroutine(result):
                result.close()
            return
        task = loop.create_task(_await(result))
        self._version_tasks.add(task)
        task.add_done_callback(self._version_done)

    def _version_done(self, task: "asyncio.Task[Any]") -> None:
        self._version_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Version creation failed: %s", error, exc_info=error)

    async def drain(self) -> None:
        """Wait for outstanding version-creation tasks."""
        if self._version_tasks:
            await asyncio.gather(*list(self._version_tasks), return_exceptions=True)

    # Undo

    async def undo(
        self,
        trip_id: int,
        *,
        now: datetime | None = None,
        set_working_trip: SetWorkingTrip | None = None,
        set_banner_plan: SetBannerPlan | None = None,
        on_version_create: VersionCallback | None = None,
    ) -> ApplyChangesResult | None:
        """Replan with the stored inputs swapped. None when there is nothing to undo."""
        now = now or self.clock()
        state = self.expire(trip_id, now)
        if state.undo is None:
            self._log.log_event(trip_id, "undo", "unavailable")
            return None

        context = state.undo
        plan = await self.plan_changes(
            trip_id,
            prev_input=context.next_input,
            next_input=context.prev_input,
            current_results=state.working_trip or TripState(id=trip_id),
            source="undo",
        )
        return self.apply_changes(
            trip_id,
            plan,
            set_working_trip,
            set_banner_plan,
            "undo",
            on_version_create,
            now=now,
        )

    def undo_available(self, trip_id: int, now: datetime | None = None) -> bool:
        return self.expire(trip_id, now or self.clock()).undo is not None

    # Time-bounded state

    def expire(self, trip_id: int, now: datetime) -> PlannerState:
        """Clear the undo context and blocker delta once their windows have passed."""
        state = self.state(trip_id)
        if state.undo is not None and state.undo.is_expired(now, self.settings.undo_window_seconds):
            state = self._dispatch(trip_id, UndoExpired())
            self._log.log_event(trip_id, "undo", "expired")
        if state.blocker_delta is not None and window_elapsed(
            state.blocker_delta.computed_at, now, self.settings.blocker_delta_display_seconds
        ):
            state = self._dispatch(trip_id, BlockerDeltaExpired())
        return state

    def visible_blocker_delta(self, trip_id: int, now: datetime | None = None) -> BlockerDeltaUI | None:
        return self.expire(trip_id, now or self.clock()).blocker_delta

    def dismiss_banner(self, trip_id: int) -> PlannerState:
        return self._dispatch(trip_id, BannerDismissed())

    # Suggestions

    def next_fix(
        self,
        trip_id: int,
        *,
        now: datetime | None = None,
        today: date | None = None,
    ) -> NextFixSuggestion | None:
        """The live suggestion for the trip's working state, after lifecycle filtering."""
        state = self.state(trip_id)
        if state.working_trip is None:
            return None
        comparison = self.baselines.compare(state.working_trip, today=today)
        suggestion = suggest_next_fix(comparison, state.working_trip, self.settings)
        return self.suggestions.visible(
            trip_id, state.adopted_change_id or "initial", suggestion, now or self.clock()
        )


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
