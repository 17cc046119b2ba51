"""Fix applier: carry out a suggestion and report a uniform outcome."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from backend.app.models.change_plan import Toast
from backend.app.models.suggestions import EditorTarget, FixApplyResult, NextFixSuggestion, SuggestionKey
from backend.app.orchestration.planner import ChangePlannerOrchestrator, VersionCallback
from backend.app.orchestration.replanner import ReplanningError
from backend.app.orchestration.trip_input import (
    extend_trip_dates,
    merge_trip_input,
    shift_trip_dates,
    trip_to_trip_input,
)
from backend.app.utils.metrics import PrometheusPlannerMetrics

logger = logging.getLogger(__name__)

Notify = Callable[[Toast], None]
OpenEditor = Callable[[EditorTarget], None]
RefreshPricing = Callable[[], Awaitable[None]]

EDITOR_HINTS: dict[EditorTarget, str] = {
    "dates": "Adjust your trip dates to add buffer time",
    "budget": "Review your budget settings to find savings",
    "hotels": "Try flexible dates or lower star ratings for cheaper stays",
    "flights": "Consider nearby airports or flexible dates for better prices",
    "itinerary": "Simplify your itinerary by removing packed activities",
    "visa_docs": "Review visa requirements and prepare documents early",
    "destination": "Check the travel advisory or pick an alternative destination",
}


class FixApplier:
    """Dispatches suggestions to the planner, an editor, or a flow.

    Only one application runs at a time; a call made while another is in flight
    returns None without doing anything.
    """

    def __init__(
        self,
        orchestrator: ChangePlannerOrchestrator,
        *,
        open_editor: OpenEditor | None = None,
        notify: Notify | None = None,
        refresh_pricing: RefreshPricing | None = None,
        metrics: PrometheusPlannerMetrics | None = None,
    ):
        self.orchestrator = orchestrator
        self._open_editor = open_editor
        self._notify = notify
        self._refresh_pricing = refresh_pricing
        self.metrics = metrics or orchestrator.metrics
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _toast(self, tone: str, message: str) -> None:
        if self._notify is not None:
            self._notify(Toast(tone=tone, message=message))

    async def apply(
        self,
        trip_id: int,
        suggestion: NextFixSuggestion,
        *,
        key: SuggestionKey | None = None,
        now: datetime | None = None,
        on_version_create: VersionCallback | None = None,
    ) -> FixApplyResult | None:
        """Carry out suggestion for trip_id. Returns None if another apply is in flight.

        key identifies the suggestion as it was shown; it defaults to the key for the
        trip's adopted change. An applied or navigated outcome marks it applied so it
        is not surfaced again for that change.
        """
        if self._in_flight:
            logger.info("Ignoring %s for trip %s: another fix is in flight", suggestion.id.value, trip_id)
            return None

        if key is None:
            change_id = self.orchestrator.state(trip_id).adopted_change_id or "initial"
            key = self.orchestrator.suggestions.key_for(trip_id, change_id, suggestion)

        self._in_flight = True
        try:
            if suggestion.action.type == "APPLY_PATCH":
                result = await self._apply_patch(trip_id, suggestion, now, on_version_create)
            elif suggestion.action.type == "OPEN_EDITOR":
                result = self._open(suggestion)
            else:
                result = await self._trigger_flow(trip_id, suggestion, now, on_version_create)
        except ReplanningError as e:
            logger.warning("Applying %s for trip %s failed: %s", suggestion.id.value, trip_id, e)
            self._toast("error", "Couldn't update your trip. Please try again.")
            result = FixApplyResult(outcome="no-op", message=str(e))
        except Exception as e:
            logger.exception("Unexpected error applying %s for trip %s", suggestion.id.value, trip_id)
            self._toast("error", "Something went wrong. Please try again.")
            result = FixApplyResult(outcome="no-op", message=str(e) or type(e).__name__)
        finally:
            self._in_flight = False

        if result.outcome != "no-op":
            self.orchestrator.suggestions.mark_applied(key)
        self.metrics.inc_fix_application(result.outcome)
        return result

    async def _apply_patch(
        self,
        trip_id: int,
        suggestion: NextFixSuggestion,
        now: datetime | None,
        on_version_create: VersionCallback | None,
    ) -> FixApplyResult:
        trip = self.orchestrator.state(trip_id).working_trip
        if trip is None:
            self._toast("warning", "Trip is still loading")
            return FixApplyResult(outcome="no-op", message="No working trip")

        prev_input = trip_to_trip_input(trip)
        patch = dict(suggestion.action.patch)
        shift = patch.pop("shiftDays", None)
        extend = patch.pop("extendDays", None)

        next_input = prev_input
        if shift:
            next_input = shift_trip_dates(next_input, int(shift))
        if extend and next_input is not None:
            next_input = extend_trip_dates(next_input, int(extend))
        if patch and next_input is not None:
            next_input = merge_trip_input(next_input, patch)
        if next_input is None:
            self._toast("warning", "Could not read your trip dates")
            return FixApplyResult(outcome="no-op", message="Could not parse trip dates")

        plan = await self.orchestrator.plan_changes(trip_id, prev_input, next_input, trip, "fix_blocker")
        applied = self.orchestrator.apply_changes(
            trip_id,
            plan,
            source="fix_blocker",
            on_version_create=on_version_create,
            now=now,
        )
        if applied is None:
            return FixApplyResult(outcome="no-op", message="A newer change was applied first")
        if applied.duplicate:
            return FixApplyResult(outcome="no-op", message="This change is already applied")

        return FixApplyResult(
            outcome="applied",
            message=suggestion.title,
            new_change_id=plan.change_id,
            new_certainty_score=plan.delta_summary.certainty.after if plan.delta_summary else None,
        )

    def _open(self, suggestion: NextFixSuggestion) -> FixApplyResult:
        editor = suggestion.action.editor
        if editor is None:
            return FixApplyResult(outcome="no-op", message="No editor target specified")
        if self._open_editor is not None:
            self._open_editor(editor)
            return FixApplyResult(outcome="navigated", message=f"Opened {editor} editor")
        message = EDITOR_HINTS.get(editor, f"Open {editor} to make changes")
        self._toast("info", message)
        return FixApplyResult(outcome="navigated", message=message)

    async def _trigger_flow(
        self,
        trip_id: int,
        suggestion: NextFixSuggestion,
        now: datetime | None,
        on_version_create: VersionCallback | None,
    ) -> FixApplyResult:
        flow = suggestion.action.flow
        if flow == "undo_change":
            undone = await self.orchestrator.undo(trip_id, now=now, on_version_create=on_version_create)
            if undone is None:
                self._toast("warning", "Nothing to undo")
                return FixApplyResult(outcome="no-op", message="Undo not available")
            banner_plan = self.orchestrator.state(trip_id).banner_plan
            score = (
                banner_plan.delta_summary.certainty.after
                if banner_plan is not None and banner_plan.delta_summary is not None
                else None
            )
            return FixApplyResult(
                outcome="applied",
                message="Change reverted",
                new_change_id=undone.change_id,
                new_certainty_score=score,
            )

        if flow == "refresh_pricing" and self._refresh_pricing is not None:
            await self._refresh_pricing()
            self._toast("success", "Pricing updated")
            return FixApplyResult(outcome="navigated", message="Pricing refreshed")

        self._toast("warning", "This action isn't available right now")
        return FixApplyResult(outcome="no-op", message=f"Flow not available: {flow}")
