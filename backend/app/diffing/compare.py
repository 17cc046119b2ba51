"""Trip diff engine: compare an original trip state against the current one.

Pure functions. Blockers are compared as sets of identifiers (never by position),
and all money values use None for "unavailable" so a missing number is never
mistaken for a zero.
"""

import math
from datetime import date
from typing import Any

from backend.app.config import Settings
from backend.app.models.common import Direction
from backend.app.models.comparison import (
    CATEGORY_LABELS,
    COST_CATEGORIES,
    BlockerComparison,
    BudgetComparison,
    CertaintyComparison,
    CostDelta,
    ItineraryComparison,
    Money,
    PlanSnapshot,
    Recommendation,
    SnapshotCertainty,
    SnapshotInputs,
    SnapshotItinerary,
    TripComparison,
)
from backend.app.models.trip import TripState
from backend.app.utils.coerce import dig, first_present, safe_int, safe_list, safe_number, scalar_text
from backend.app.utils.dates import parse_date_range
from backend.app.verdict.engine import compute_verdict
from backend.app.verdict.inputs import build_verdict_input

MIN_TRIP_DAYS = 3
MAX_HIGHLIGHTS = 10

# Upstream spellings for each cost category
_COST_KEYS: dict[str, tuple[str, ...]] = {
    "flights": ("flights", "flight"),
    "stay": ("accommodation", "stay", "hotels"),
    "activities": ("activities", "experiences"),
    "visa": ("visa",),
    "insurance": ("insurance",),
    "food": ("food", "meals"),
    "transport": ("transport", "localTransport"),
    "misc": ("misc", "miscellaneous"),
}


def num_or_null(value: Any) -> Money:
    """Positive finite number, or None when unavailable."""
    if value is None:
        return None
    number = safe_number(value, math.nan)
    return number if math.isfinite(number) and number > 0 else None


def safe_delta(before: Money, after: Money) -> Money:
    """after - before, or None if either side is unavailable."""
    if before is None or after is None:
        return None
    return after - before


def direction_of(delta: float | None) -> Direction:
    if delta is None:
        return "unavailable"
    if delta > 0:
        return "up"
    if delta < 0:
        return "down"
    return "same"


def _visa_risk(report: Any) -> str:
    if not isinstance(report, dict) or not report:
        return "medium"
    explicit = dig(report, "visaDetails", "risk")
    if explicit in ("low", "medium", "high"):
        return explicit
    score = dig(report, "score")
    numeric = safe_number(score, math.nan) if score is not None else math.nan
    if dig(report, "breakdown", "visa", "status") == "issue" or numeric < 50:
        return "high"
    if numeric < 70:
        return "medium"
    return "low"


def buffer_days(dates: str) -> int:
    """Days of slack beyond the minimum viable trip length."""
    parsed = parse_date_range(dates)
    if parsed is None:
        return 0
    start, end = parsed
    return max(0, (end - start).days - MIN_TRIP_DAYS)


def _costs(trip: TripState) -> tuple[dict[str, Money], Money]:
    breakdown = first_present(
        dig(trip.itinerary, "costBreakdown"),
        dig(trip.feasibility_report, "breakdown", "budget"),
    )
    if not isinstance(breakdown, dict):
        breakdown = {}

    costs: dict[str, Money] = {}
    for category in COST_CATEGORIES:
        raw = first_present(*(breakdown.get(key) for key in _COST_KEYS[category]))
        costs[category] = num_or_null(raw)

    total = num_or_null(first_present(breakdown.get("grandTotal"), breakdown.get("total")))
    if total is None:
        parts = [v for v in costs.values() if v is not None]
        total = sum(parts) if parts else None
    return costs, total


def _itinerary(itinerary: Any) -> SnapshotItinerary:
    days = safe_list(dig(itinerary, "days"))
    highlights: list[str] = []
    activities = 0
    for day in days:
        if not isinstance(day, dict):
            continue
        if day.get("highlight"):
            highlights.append(str(day["highlight"]))
        day_activities = safe_list(day.get("activities"))
        activities += len(day_activities)
        for activity in day_activities:
            if isinstance(activity, dict) and activity.get("type") in ("landmark", "experience"):
                name = activity.get("name") or activity.get("title")
                if name:
                    highlights.append(str(name))
    return SnapshotItinerary(
        day_count=len(days),
        highlights=highlights[:MAX_HIGHLIGHTS],
        activities=activities,
    )


def _blocker_ids(report: Any, overrides: list[str]) -> list[str]:
    explicit = dig(report, "blockers")
    if not isinstance(explicit, list):
        return list(overrides)
    ids: list[str] = []
    for item in explicit:
        if isinstance(item, dict):
            item = first_present(item.get("id"), item.get("code"), item.get("title"))
        if item is not None and str(item) not in ids:
            ids.append(str(item))
    return ids


def extract_snapshot(
    trip: TripState,
    label: str,
    *,
    today: date | None = None,
    settings: Settings | None = None,
) -> PlanSnapshot:
    """Normalize a trip state into a comparable snapshot."""
    report = trip.feasibility_report or {}
    costs, total = _costs(trip)
    verdict_input = build_verdict_input(report, trip.budget, trip.dates, today=today, settings=settings)
    if total is not None:
        # The itinerary's cost table is more current than the report's estimate.
        verdict_input = verdict_input.model_copy(update={"total_cost": total})
    verdict = compute_verdict(verdict_input)
    score = dig(report, "score")

    return PlanSnapshot(
        label=label,
        trip_id=trip.id,
        inputs=SnapshotInputs(
            passport=trip.passport,
            destination=trip.destination,
            dates=trip.dates,
            budget=trip.budget,
            travelers=trip.group_size,
            travel_style=trip.travel_style,
        ),
        certainty=SnapshotCertainty(
            score=safe_int(score) if isinstance(score, int | float) and not isinstance(score, bool) else None,
            visa_risk=_visa_risk(report),
            visa_type=scalar_text(dig(report, "visaDetails", "type")) or "unknown",
            buffer_days=buffer_days(trip.dates),
            safety_status=scalar_text(dig(report, "breakdown", "safety", "status")),
            accessibility_status=scalar_text(dig(report, "breakdown", "accessibility", "status")),
        ),
        costs=costs,
        total_cost=total,
        itinerary=_itinerary(trip.itinerary),
        blockers=_blocker_ids(report, [o.value for o in verdict.overrides_applied]),
        verdict_input=verdict_input,
        verdict=verdict,
    )


def _comparability(a: PlanSnapshot, b: PlanSnapshot) -> str | None:
    problems: list[str] = []
    if a.inputs.destination.strip().lower() != b.inputs.destination.strip().lower():
        problems.append("destinations differ")
    if a.inputs.passport.strip().lower() != b.inputs.passport.strip().lower():
        problems.append("passport countries differ")
    if a.inputs.travelers != b.inputs.travelers:
        problems.append("traveler count differs")
    if not problems:
        return None
    return f"Plans not comparable: {', '.join(problems)}"


_VISA_RISK_RANK = {"low": 1, "medium": 2, "high": 3}


def _fmt_money(amount: float) -> str:
    return f"${abs(round(amount)):,}"


def recommend(
    certainty: CertaintyComparison,
    budget: BudgetComparison,
) -> Recommendation:
    """Weigh certainty, cost, visa risk and buffer changes into a preference.

    Weights for certainty (0.5) and cost (0.3) are redistributed when one of them
    is unavailable; confidence is capped at "low" unless both are present.
    """
    has_certainty = certainty.delta is not None
    has_cost = budget.percent_change is not None and budget.delta is not None
    visa_improved = _VISA_RISK_RANK.get(certainty.visa_risk_after, 2) < _VISA_RISK_RANK.get(
        certainty.visa_risk_before, 2
    )
    buffer_improved = certainty.buffer_delta > 0

    certainty_weight, cost_weight = 0.5, 0.3
    if not has_certainty and not has_cost:
        certainty_weight, cost_weight = 0.0, 0.0
    elif not has_certainty:
        certainty_weight, cost_weight = 0.0, 0.5
    elif not has_cost:
        certainty_weight, cost_weight = 0.6, 0.0

    score = 0.0
    if certainty.delta is not None:
        score += (certainty.delta / 5) * certainty_weight
    if has_cost and budget.percent_change is not None:
        score += (-budget.percent_change / 10) * cost_weight
    if visa_improved:
        score += 0.5 * 0.15
    if buffer_improved:
        score += 0.3 * 0.05

    full_data = has_certainty and has_cost
    if score > 0.3:
        preferred = "B"
        confidence = ("high" if score > 0.6 else "medium") if full_data else "low"
    elif score < -0.3:
        preferred = "A"
        confidence = ("high" if score < -0.6 else "medium") if full_data else "low"
    else:
        preferred, confidence = "neutral", "low"

    missing = [name for name, ok in (("certainty", has_certainty), ("cost", has_cost)) if not ok]
    warning = f" ({' and '.join(missing)} data unavailable)" if missing else ""

    if preferred == "B":
        gains = []
        if certainty.delta is not None and certainty.delta > 0:
            gains.append(f"+{certainty.delta}% certainty")
        if visa_improved:
            gains.append("lower visa risk")
        if buffer_improved:
            gains.append("more buffer days")
        cost_note = ""
        if budget.delta:
            verb = "costs" if budget.delta > 0 else "saves"
            cost_note = f" ({verb} {_fmt_money(budget.delta)}{' more' if budget.delta > 0 else ''})"
        if gains:
            reason = f"Updated plan offers {', '.join(gains)}{cost_note}{warning}."
        else:
            reason = f"Updated plan is recommended based on overall improvements{warning}."
    elif preferred == "A":
        keeps = []
        if certainty.delta is not None and certainty.delta < 0:
            keeps.append(f"maintains {abs(certainty.delta)}% higher certainty")
        if budget.delta is not None and budget.delta > 0:
            keeps.append(f"saves {_fmt_money(budget.delta)}")
        reason = f"Original plan {' and '.join(keeps) or 'is recommended'}{warning}."
    else:
        reason = f"Both plans are comparable. Choose based on your priorities{warning}."

    parts = []
    if certainty.delta:
        parts.append(f"{'improves' if certainty.delta > 0 else 'reduces'} certainty by {abs(certainty.delta)}%")
    elif not has_certainty:
        parts.append("certainty data unavailable")
    if budget.delta:
        parts.append(f"{'costs' if budget.delta > 0 else 'saves'} {_fmt_money(budget.delta)}")
    elif budget.delta is None:
        parts.append("cost data unavailable")
    if visa_improved:
        parts.append("lowers visa risk")
    tradeoff = f"Updated plan {', '.join(parts)}." if parts else "No significant tradeoffs."

    return Recommendation(preferred=preferred, confidence=confidence, reason=reason, tradeoff_summary=tradeoff)


def compare_snapshots(original: PlanSnapshot, updated: PlanSnapshot) -> TripComparison:
    """Structured diff of two snapshots."""
    incomparable_reason = _comparability(original, updated)

    cert_before, cert_after = original.certainty.score, updated.certainty.score
    cert_delta = None if cert_before is None or cert_after is None else cert_after - cert_before
    certainty = CertaintyComparison(
        score_before=cert_before,
        score_after=cert_after,
        delta=cert_delta,
        direction=(
            "unavailable"
            if cert_delta is None
            else "improved" if cert_delta > 0 else "worsened" if cert_delta < 0 else "same"
        ),
        visa_risk_before=original.certainty.visa_risk,
        visa_risk_after=updated.certainty.visa_risk,
        buffer_days_before=original.certainty.buffer_days,
        buffer_days_after=updated.certainty.buffer_days,
        buffer_delta=updated.certainty.buffer_days - original.certainty.buffer_days,
    )

    cost_deltas = []
    for category in COST_CATEGORIES:
        before, after = original.costs.get(category), updated.costs.get(category)
        if before is None and after is None:
            continue
        delta = safe_delta(before, after)
        cost_deltas.append(
            CostDelta(
                category=CATEGORY_LABELS[category],
                before=before,
                after=after,
                delta=delta,
                direction=direction_of(delta),
            )
        )

    total_delta = safe_delta(original.total_cost, updated.total_cost)
    percent = (
        round(total_delta / original.total_cost * 100)
        if total_delta is not None and original.total_cost
        else None
    )
    budget_after = updated.inputs.budget
    budget = BudgetComparison(
        budget_before=original.inputs.budget,
        budget_after=budget_after,
        cost_before=original.total_cost,
        cost_after=updated.total_cost,
        delta=total_delta,
        percent_change=percent,
        direction=direction_of(total_delta),
        budget_ratio_after=(
            updated.total_cost / budget_after
            if updated.total_cost is not None and budget_after > 0
            else None
        ),
    )

    before_ids, after_ids = original.blockers, updated.blockers
    blockers = BlockerComparison(
        before=list(before_ids),
        after=list(after_ids),
        resolved=[b for b in before_ids if b not in set(after_ids)],
        added=[b for b in after_ids if b not in set(before_ids)],
    )

    highlights_before = original.itinerary.highlights
    highlights_after = updated.itinerary.highlights
    added_highlights = [h for h in highlights_after if h not in highlights_before]
    removed_highlights = [h for h in highlights_before if h not in highlights_after]
    itinerary = ItineraryComparison(
        changed=bool(
            added_highlights
            or removed_highlights
            or original.itinerary.day_count != updated.itinerary.day_count
            or original.itinerary.activities != updated.itinerary.activities
        ),
        day_count_before=original.itinerary.day_count,
        day_count_after=updated.itinerary.day_count,
        activities_before=original.itinerary.activities,
        activities_after=updated.itinerary.activities,
        added_highlights=added_highlights,
        removed_highlights=removed_highlights,
    )

    if incomparable_reason is None:
        recommendation = recommend(certainty, budget)
    else:
        recommendation = Recommendation(
            preferred="neutral",
            confidence="low",
            reason=incomparable_reason,
            tradeoff_summary="N/A",
        )

    return TripComparison(
        trip_id=updated.trip_id,
        original=original,
        updated=updated,
        is_comparable=incomparable_reason is None,
        incomparable_reason=incomparable_reason,
        certainty=certainty,
        cost_deltas=cost_deltas,
        budget=budget,
        blockers=blockers,
        itinerary=itinerary,
        recommendation=recommendation,
    )


def compare_trips(
    original: TripState,
    updated: TripState,
    *,
    today: date | None = None,
    settings: Settings | None = None,
) -> TripComparison:
    """Snapshot both trip states and diff them."""
    return compare_snapshots(
        extract_snapshot(original, "original", today=today, settings=settings),
        extract_snapshot(updated, "updated", today=today, settings=settings),
    )
