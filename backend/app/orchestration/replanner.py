"""Replanning collaborators.

`HttpReplanner` posts the change request to the upstream change-plan service.
`DeterministicReplanner` computes a conservative plan locally with no network
access and is used when no service URL is configured.
"""

import hashlib
import json
import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from backend.app.config import Settings, get_settings
from backend.app.models.change_plan import (
    Banner,
    BlockerChange,
    CertaintyChange,
    ChangeableField,
    ChangePlannerResponse,
    ChangePlanRequest,
    ChangeSeverity,
    CostChange,
    DeltaSummary,
    DetectedChange,
    ItineraryChange,
    RecomputableModule,
    Toast,
    UIInstructions,
)
from backend.app.models.common import ChangeSource
from backend.app.models.trip import TripInput, TripState
from backend.app.utils.coerce import dig, first_present, safe_int, safe_list, safe_number

logger = logging.getLogger(__name__)


class ReplanningError(Exception):
    """Replanning request failed; the caller may retry."""

    def __init__(self, message: str, *, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class Replanner(Protocol):
    """Protocol for replanning collaborators."""

    async def plan(self, request: ChangePlanRequest) -> ChangePlannerResponse:
        """Compute a change plan for prev_input -> next_input.

        Raises:
            ReplanningError: On transport, HTTP or payload validation failures
        """
        ...


IMPACT: dict[ChangeableField, list[RecomputableModule]] = {
    "dates": ["flights", "hotels", "itinerary", "certainty", "action_items"],
    "budget": ["hotels", "itinerary", "certainty", "action_items"],
    "origin": ["flights", "action_items"],
    "destination": ["visa", "flights", "hotels", "itinerary", "certainty", "action_items"],
    "passport": ["visa", "certainty", "action_items"],
    "travelers": ["flights", "hotels", "certainty", "action_items"],
    "preferences": ["hotels", "itinerary", "action_items"],
    "constraints": ["flights", "hotels", "itinerary", "action_items"],
}

MODULE_PRIORITY: dict[RecomputableModule, int] = {
    "visa": 1,
    "certainty": 1,
    "action_items": 1,
    "flights": 2,
    "hotels": 2,
    "itinerary": 3,
}


def _severity(field: ChangeableField) -> ChangeSeverity:
    if field in ("destination", "passport"):
        return "high"
    if field == "dates":
        return "medium"
    return "low"


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def detect_changes(prev_input: TripInput, next_input: TripInput) -> list[DetectedChange]:
    """Field-level diff of two trip inputs in IMPACT order."""
    before = prev_input.model_dump(by_alias=True)
    after = next_input.model_dump(by_alias=True)
    changes = []
    for field, modules in IMPACT.items():
        if _canonical(before.get(field)) != _canonical(after.get(field)):
            changes.append(
                DetectedChange(
                    field=field,
                    before=before.get(field),
                    after=after.get(field),
                    impact=list(modules),
                    severity=_severity(field),
                )
            )
    return changes


def modules_to_recompute(changes: list[DetectedChange]) -> list[RecomputableModule]:
    """Union of impacted modules, most urgent first (stable within a priority)."""
    modules: list[RecomputableModule] = []
    for change in changes:
        for module in change.impact:
            if module not in modules:
                modules.append(module)
    return sorted(modules, key=lambda m: MODULE_PRIORITY[m])


def make_change_id(trip_id: int, prev_input: TripInput, next_input: TripInput) -> str:
    """Content-hashed change id: identical requests map to the same id."""
    digest = hashlib.sha1()
    digest.update(str(trip_id).encode())
    digest.update(_canonical(prev_input.model_dump(by_alias=True)).encode())
    digest.update(_canonical(next_input.model_dump(by_alias=True)).encode())
    return f"chg_{digest.hexdigest()[:10]}"


def _current_cost(trip: TripState) -> float:
    return safe_number(
        first_present(
            dig(trip.itinerary, "costBreakdown", "grandTotal"),
            dig(trip.itinerary, "costBreakdown", "total"),
        )
    )


class DeterministicReplanner:
    """Offline replanner: detects changes and estimates their impact heuristically."""

    async def plan(self, request: ChangePlanRequest) -> ChangePlannerResponse:
        """Build a deterministic plan; never raises."""
        return self.build(
            request.trip_id,
            request.prev_input,
            request.next_input,
            request.current_results,
            request.source,
        )

    def build(
        self,
        trip_id: int,
        prev_input: TripInput,
        next_input: TripInput,
        trip: TripState,
        source: ChangeSource,
    ) -> ChangePlannerResponse:
        changes = detect_changes(prev_input, next_input)
        report = trip.feasibility_report or {}
        certainty_before = min(100, max(0, safe_int(report.get("score"))))

        if any(c.severity == "high" for c in changes):
            certainty_delta, reason = -10, "Major change detected (destination or passport)"
        elif any(c.severity == "medium" for c in changes):
            certainty_delta, reason = -3, "Date change may affect availability"
        else:
            certainty_delta, reason = 0, "No significant impact"
        certainty_after = min(100, max(0, certainty_before + certainty_delta))

        required = dig(report, "visaDetails", "required")
        blockers = 1 if required and dig(report, "visaDetails", "type") != "visa_free" else 0
        cost = _current_cost(trip)
        day_count = len(safe_list(dig(trip.itinerary, "days")))

        if blockers and certainty_delta <= -10:
            tone, title = "red", "Updated. Blockers need attention."
        elif blockers:
            tone, title = "amber", "Updated. Some items need attention."
        else:
            tone, title = "green", "Updated. No blockers found."

        logger.info(
            "Deterministic plan for trip %s (%s): %d changes", trip_id, source, len(changes)
        )
        return ChangePlannerResponse(
            change_id=make_change_id(trip_id, prev_input, next_input),
            detected_changes=changes,
            modules_to_recompute=modules_to_recompute(changes),
            delta_summary=DeltaSummary(
                certainty=CertaintyChange(before=certainty_before, after=certainty_after, reason=reason),
                total_cost=CostChange(before=cost, after=cost, delta=0),
                blockers=BlockerChange(before=blockers, after=blockers),
                itinerary=ItineraryChange(day_count_before=day_count, day_count_after=day_count),
            ),
            ui_instructions=UIInstructions(
                banner=Banner(tone=tone, title=title, subtitle="Refresh to see updated estimates."),
                toasts=[Toast(tone="success", message="Trip updated.")],
            ),
        )


class HttpReplanner:
    """Replanner backed by the upstream change-plan endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the HTTP replanner.

        Args:
            base_url: Service root; the request goes to {base_url}/api/change-plan
            timeout_s: Per-request timeout
            client: Optional httpx client (for testing with mocks)
        """
        self.url = f"{base_url.rstrip('/')}/api/change-plan"
        self.timeout_s = timeout_s
        self._client = client

    async def plan(self, request: ChangePlanRequest) -> ChangePlannerResponse:
        payload = request.model_dump(mode="json", by_alias=True)

        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self.timeout_s)
            close_client = True

        try:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()
            return ChangePlannerResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            retryable = e.response.status_code >= 500 or e.response.status_code == 429
            raise ReplanningError(
                f"Replanner returned HTTP {e.response.status_code}", retryable=retryable
            ) from e
        except httpx.HTTPError as e:
            raise ReplanningError(f"Replanner unreachable: {type(e).__name__}") from e
        except (ValidationError, ValueError) as e:
            raise ReplanningError(f"Replanner returned an invalid plan: {e}") from e
        finally:
            if close_client:
                await client.aclose()


def get_replanner(settings: Settings | None = None) -> Replanner:
    """HTTP replanner when a URL is configured, deterministic fallback otherwise."""
    settings = settings or get_settings()
    if settings.replanner_url:
        return HttpReplanner(settings.replanner_url, timeout_s=settings.replanner_timeout_s)
    logger.info("No replanner_url configured, using deterministic replanner")
    return DeterministicReplanner()
