"""Next-fix suggester: pick the single highest-value corrective action for a trip.

Candidates are generated independently from the comparison signals, then ranked by
estimated certainty impact (descending), category (timing > safety > budget > cosmetic)
and finally FixId declaration order so the result is deterministic.
"""

from typing import Any

from backend.app.config import Settings, get_settings
from backend.app.models.comparison import TripComparison
from backend.app.models.common import Confidence
from backend.app.models.suggestions import (
    CATEGORY_RANK,
    EditorTarget,
    FixAction,
    FixCategory,
    FixId,
    NextFixSuggestion,
    SuggestionKey,
)
from backend.app.models.trip import TripState
from backend.app.utils.dates import parse_date_range

MIN_SAFE_BUFFER_DAYS = 5
CRITICAL_BUFFER_DAYS = 3
MATERIAL_COST_INCREASE = 150
HIGH_COST_INCREASE = 300
MATERIAL_CERTAINTY_DROP = 5
HIGH_CERTAINTY_DROP = 10
DOMINANT_CATEGORY_RATIO = 0.4

TIMING_BLOCKER_IMPACT = 20
SAFETY_IMPACT = 15
SEVERE_BUDGET_IMPACT = 15
WARN_BUDGET_IMPACT = 8
SOFT_BUDGET_IMPACT = 5

_FIX_ORDER = {fix_id: rank for rank, fix_id in enumerate(FixId)}

_CATEGORY_EDITORS: dict[str, EditorTarget] = {
    "Flights": "flights",
    "Accommodation": "hotels",
    "Activities": "itinerary",
    "Visa": "visa_docs",
}


def determine_confidence(
    visa_risk: str,
    buffer_days: int,
    cost_delta: float | None,
    certainty_delta: int | None,
) -> Confidence:
    """High/medium/low depending on how severe the underlying signal is."""
    if (
        visa_risk == "high"
        or buffer_days < CRITICAL_BUFFER_DAYS
        or (cost_delta is not None and cost_delta > HIGH_COST_INCREASE)
        or (certainty_delta is not None and certainty_delta < -HIGH_CERTAINTY_DROP)
    ):
        return "high"
    if (
        visa_risk == "medium"
        or buffer_days < MIN_SAFE_BUFFER_DAYS
        or (cost_delta is not None and cost_delta > MATERIAL_COST_INCREASE)
        or (certainty_delta is not None and certainty_delta < -MATERIAL_CERTAINTY_DROP)
    ):
        return "medium"
    return "low"


def _date_action(trip: TripState, patch: dict[str, Any]) -> FixAction:
    # Patches need a parseable date range; otherwise send the user to the editor.
    if parse_date_range(trip.dates) is None:
        return FixAction(type="OPEN_EDITOR", editor="dates")
    return FixAction(type="APPLY_PATCH", editor="dates", patch=patch)


def _shift_dates(comparison: TripComparison, trip: TripState) -> NextFixSuggestion | None:
    verdict = comparison.updated.verdict
    if not verdict.risk_flags.visa_timing_blocker:
        return None
    verdict_input = comparison.updated.verdict_input
    shortfall = max(1, verdict_input.visa_processing_days.minimum - verdict_input.days_until_travel)
    return NextFixSuggestion(
        id=FixId.SHIFT_TRAVEL_DATES,
        title=f"Move your trip {shortfall} days later",
        target_field="dates",
        estimated_impact=TIMING_BLOCKER_IMPACT,
        category=FixCategory.timing,
        reason=(
            f"Visa processing needs at least {verdict_input.visa_processing_days.minimum} days "
            f"but you travel in {verdict_input.days_until_travel}."
        ),
        cta_label="Shift dates",
        confidence="high",
        action=_date_action(trip, {"shiftDays": shortfall}),
        buffer_days=shortfall,
    )


def _add_buffer(comparison: TripComparison, trip: TripState) -> NextFixSuggestion | None:
    certainty = comparison.certainty
    buffer = certainty.buffer_days_after

    if certainty.visa_risk_after == "high":
        days = max(CRITICAL_BUFFER_DAYS, MIN_SAFE_BUFFER_DAYS - buffer)
        title = f"Add {days} buffer days to reduce visa risk"
        reason = "High visa risk detected. Adding buffer days improves approval chances and reduces stress."
        impact = 5 + days
        confidence = determine_confidence("high", buffer, None, certainty.delta)
    elif buffer < MIN_SAFE_BUFFER_DAYS:
        days = MIN_SAFE_BUFFER_DAYS - buffer
        title = f"Add {days} more days for safety buffer"
        reason = f"Only {buffer} buffer days. Adding more time reduces risk if plans change."
        impact = days * 2
        confidence = "medium"
    elif (
        certainty.delta is not None
        and certainty.delta < -MATERIAL_CERTAINTY_DROP
        and certainty.buffer_delta < 0
    ):
        days = abs(certainty.buffer_delta)
        title = "Restore buffer days"
        reason = f"Certainty dropped {abs(certainty.delta)}% partly due to fewer buffer days."
        impact = abs(certainty.delta)
        base = determine_confidence(certainty.visa_risk_after, buffer, None, certainty.delta)
        confidence = "high" if base == "high" else "medium"
    else:
        return None

    return NextFixSuggestion(
        id=FixId.ADD_BUFFER_DAYS,
        title=title,
        target_field="dates",
        estimated_impact=impact,
        category=FixCategory.timing,
        reason=reason,
        cta_label="Extend trip",
        confidence=confidence,
        action=_date_action(trip, {"extendDays": days}),
        buffer_days=days,
    )


def _lower_visa_risk(comparison: TripComparison) -> NextFixSuggestion | None:
    certainty = comparison.certainty
    if certainty.visa_risk_after != "high" or certainty.visa_risk_before == "high":
        return None
    drop = abs(certainty.delta) if certainty.delta is not None and certainty.delta < 0 else 0
    reason = (
        f"Certainty dropped {drop}% due to higher visa risk."
        if drop
        else "Visa risk increased to high with this change."
    )
    return NextFixSuggestion(
        id=FixId.LOWER_VISA_RISK,
        title="Address increased visa risk",
        target_field="visa_docs",
        estimated_impact=max(drop, MATERIAL_CERTAINTY_DROP),
        category=FixCategory.timing,
        reason=reason,
        cta_label="Review visa",
        confidence=determine_confidence("high", certainty.buffer_days_after, None, certainty.delta),
        action=FixAction(type="OPEN_EDITOR", editor="visa_docs"),
    )


def _review_safety(comparison: TripComparison) -> NextFixSuggestion | None:
    if not comparison.updated.verdict.risk_flags.safety_l3_plus:
        return None
    level = comparison.updated.verdict_input.safety_level
    return NextFixSuggestion(
        id=FixId.REVIEW_SAFETY,
        title="Review destination safety",
        target_field="destination",
        estimated_impact=SAFETY_IMPACT,
        category=FixCategory.safety,
        reason=f"Travel advisory level {level} for this destination. Consider an alternative.",
        cta_label="Review destination",
        confidence="high",
        action=FixAction(type="OPEN_EDITOR", editor="destination"),
    )


def _dominant_category(comparison: TripComparison, total_delta: float) -> tuple[str, float] | None:
    if total_delta <= 0:
        return None
    for cost in comparison.cost_deltas:
        if cost.delta is not None and cost.delta > 0 and cost.delta / total_delta >= DOMINANT_CATEGORY_RATIO:
            return cost.category, cost.delta
    return None


def _reduce_cost(comparison: TripComparison, tolerance: float) -> NextFixSuggestion | None:
    flags = comparison.updated.verdict.risk_flags
    budget = comparison.budget
    delta = budget.delta
    material = delta is not None and delta > MATERIAL_COST_INCREASE
    over_budget = budget.budget_ratio_after is not None and budget.budget_ratio_after > 1 - tolerance

    if flags.over_budget50:
        impact = SEVERE_BUDGET_IMPACT
    elif flags.over_budget20:
        impact = WARN_BUDGET_IMPACT
    elif material or over_budget:
        impact = SOFT_BUDGET_IMPACT
    else:
        return None

    confidence = determine_confidence("low", 10, delta, None)
    if flags.over_budget50:
        confidence = "high"

    dominant = _dominant_category(comparison, delta) if delta is not None else None
    if dominant is not None:
        category, category_delta = dominant
        return NextFixSuggestion(
            id=FixId.REDUCE_COST,
            title=f"Reduce {category.lower()} cost",
            target_field="budget",
            estimated_impact=impact,
            category=FixCategory.budget,
            reason=f"{category} increased by ${round(category_delta):,}, driving up total cost.",
            cta_label=f"Review {category.lower()}",
            confidence=confidence,
            action=FixAction(type="OPEN_EDITOR", editor=_CATEGORY_EDITORS.get(category, "budget")),
            cost_delta=-category_delta,
        )

    if delta is not None and delta > 0:
        reason = f"Total cost increased by ${round(delta):,}. Review options to stay within budget."
    else:
        ratio = budget.budget_ratio_after or 0.0
        reason = f"Estimated cost is {round((ratio - 1) * 100)}% over your budget."
    return NextFixSuggestion(
        id=FixId.REDUCE_COST,
        title="Review budget to reduce costs",
        target_field="budget",
        estimated_impact=impact,
        category=FixCategory.budget,
        reason=reason,
        cta_label="Review budget",
        # generic suggestions are one step less certain
        confidence={"high": "medium", "medium": "low", "low": "low"}[confidence],
        action=FixAction(type="OPEN_EDITOR", editor="budget"),
        cost_delta=-delta if delta is not None and delta > 0 else None,
    )


def _simplify_itinerary(comparison: TripComparison) -> NextFixSuggestion | None:
    delta = comparison.certainty.delta
    if delta is None or delta >= -MATERIAL_CERTAINTY_DROP:
        return None
    drop = abs(delta)
    return NextFixSuggestion(
        id=FixId.SIMPLIFY_ITINERARY,
        title="Simplify itinerary to improve certainty",
        target_field="itinerary",
        estimated_impact=round(drop * 0.7),
        category=FixCategory.cosmetic,
        reason=f"Certainty dropped {drop}%. A simpler plan may be more reliable.",
        cta_label="Review itinerary",
        confidence="low",
        action=FixAction(type="OPEN_EDITOR", editor="itinerary"),
    )


def _refresh_pricing(comparison: TripComparison) -> NextFixSuggestion | None:
    if comparison.budget.direction != "unavailable":
        return None
    return NextFixSuggestion(
        id=FixId.REFRESH_PRICING,
        title="Refresh pricing for accurate comparison",
        target_field=None,
        estimated_impact=0,
        category=FixCategory.cosmetic,
        reason="Cost data is unavailable. Refresh to see accurate cost comparison.",
        cta_label="Refresh prices",
        confidence="medium",
        action=FixAction(type="TRIGGER_FLOW", flow="refresh_pricing"),
    )


def _revert(reason: str | None) -> NextFixSuggestion:
    return NextFixSuggestion(
        id=FixId.REVERT_CHANGE,
        title="Revert to compare accurately",
        target_field=None,
        estimated_impact=0,
        category=FixCategory.cosmetic,
        reason=reason or "Plans cannot be compared due to fundamental differences.",
        cta_label="Undo change",
        confidence="medium",
        action=FixAction(type="TRIGGER_FLOW", flow="undo_change"),
    )


def rank_key(suggestion: NextFixSuggestion) -> tuple[int, int, int]:
    return (-suggestion.estimated_impact, CATEGORY_RANK[suggestion.category], _FIX_ORDER[suggestion.id])


def candidate_fixes(
    comparison: TripComparison,
    trip: TripState,
    settings: Settings | None = None,
) -> list[NextFixSuggestion]:
    """All applicable candidates, best first."""
    settings = settings or get_settings()
    candidates = [
        _shift_dates(comparison, trip),
        _add_buffer(comparison, trip),
        _lower_visa_risk(comparison),
        _review_safety(comparison),
        _reduce_cost(comparison, settings.near_budget_tolerance),
        _simplify_itinerary(comparison),
        _refresh_pricing(comparison),
    ]
    return sorted((c for c in candidates if c is not None), key=rank_key)


def suggest_next_fix(
    comparison: TripComparison | None,
    trip: TripState,
    settings: Settings | None = None,
) -> NextFixSuggestion | None:
    """At most one suggestion; None when there is nothing to compare or nothing to fix."""
    if comparison is None:
        return None
    if not comparison.is_comparable:
        return _revert(comparison.incomparable_reason)
    ranked = candidate_fixes(comparison, trip, settings)
    return ranked[0] if ranked else None


def suggestion_analytics(
    suggestion: NextFixSuggestion | None,
    key: SuggestionKey | None = None,
) -> dict[str, Any]:
    """Flat analytics payload for a surfaced (or absent) suggestion."""
    if suggestion is None:
        return {"suggestionId": None, "suggestionShown": False}
    payload: dict[str, Any] = {
        "suggestionId": suggestion.id.value,
        "suggestionShown": True,
        "suggestionTitle": suggestion.title,
        "suggestionConfidence": suggestion.confidence,
        "suggestionCategory": suggestion.category.value,
        "actionType": suggestion.action.type,
    }
    if key is not None:
        payload["suggestionKey"] = str(key)
    return payload
