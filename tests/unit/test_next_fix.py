"""Tests for the next-fix suggester."""

from collections.abc import Callable

import pytest

from backend.app.config import Settings
from backend.app.diffing.compare import compare_trips
from backend.app.models.suggestions import FixAction, FixCategory, FixId, NextFixSuggestion, SuggestionKey
from backend.app.models.trip import TripState
from backend.app.suggestions.next_fix import (
    candidate_fixes,
    determine_confidence,
    rank_key,
    suggest_next_fix,
    suggestion_analytics,
)
from tests.factories import TODAY, build_itinerary, build_report

MakeTrip = Callable[..., TripState]


def suggest(original: TripState, updated: TripState, settings: Settings) -> NextFixSuggestion | None:
    return suggest_next_fix(compare_trips(original, updated, today=TODAY), updated, settings)


def test_no_comparison_yields_none(make_trip: MakeTrip, settings: Settings) -> None:
    assert suggest_next_fix(None, make_trip(), settings) is None


def test_clear_trip_yields_none(make_trip: MakeTrip, settings: Settings) -> None:
    assert suggest(make_trip(), make_trip(), settings) is None


def test_incomparable_suggests_revert(make_trip: MakeTrip, settings: Settings) -> None:
    suggestion = suggest(make_trip(), make_trip(passport="FR"), settings)
    assert suggestion is not None
    assert suggestion.id == FixId.REVERT_CHANGE
    assert suggestion.action.type == "TRIGGER_FLOW"
    assert suggestion.action.flow == "undo_change"
    assert "passport countries differ" in suggestion.reason


def test_visa_timing_blocker_shifts_dates(make_trip: MakeTrip, settings: Settings) -> None:
    report = build_report(visa_type="visa_required", processing=(160, 180), risk="low")
    updated = make_trip(feasibility_report=report)
    suggestion = suggest(make_trip(), updated, settings)

    assert suggestion is not None
    assert suggestion.id == FixId.SHIFT_TRAVEL_DATES
    assert suggestion.category == FixCategory.timing
    assert suggestion.action.type == "APPLY_PATCH"
    assert suggestion.action.patch == {"shiftDays": 9}
    assert suggestion.buffer_days == 9
    assert suggestion.confidence == "high"


def test_safety_beats_budget_on_equal_impact(make_trip: MakeTrip, settings: Settings) -> None:
    updated = make_trip(budget=1200, feasibility_report=build_report(safety_status="danger"))
    comparison = compare_trips(make_trip(), updated, today=TODAY)

    ranked = candidate_fixes(comparison, updated, settings)

    assert [s.id for s in ranked] == [FixId.REVIEW_SAFETY, FixId.REDUCE_COST]
    assert ranked[0].estimated_impact == ranked[1].estimated_impact
    assert ranked[1].reason == "Estimated cost is 67% over your budget."


def test_cost_increase_targets_dominant_category(make_trip: MakeTrip, settings: Settings) -> None:
    original = make_trip(budget=3300)
    updated = make_trip(
        budget=3300,
        itinerary=build_itinerary({"flights": 2800, "accommodation": 900, "activities": 300}),
    )
    suggestion = suggest(original, updated, settings)

    assert suggestion is not None
    assert suggestion.id == FixId.REDUCE_COST
    assert suggestion.title == "Reduce flights cost"
    assert suggestion.action.editor == "flights"
    assert suggestion.cost_delta == -2000
    assert suggestion.estimated_impact == 8
    assert suggestion.confidence == "high"


def test_visa_risk_increase(make_trip: MakeTrip, settings: Settings) -> None:
    updated = make_trip(feasibility_report=build_report(score=70, risk="high"))
    comparison = compare_trips(make_trip(), updated, today=TODAY)
    ranked = candidate_fixes(comparison, updated, settings)

    assert ranked[0].id == FixId.LOWER_VISA_RISK
    assert ranked[0].estimated_impact == 15
    assert ranked[0].action.editor == "visa_docs"
    assert {s.id for s in ranked} == {
        FixId.LOWER_VISA_RISK,
        FixId.SIMPLIFY_ITINERARY,
        FixId.ADD_BUFFER_DAYS,
    }


def test_certainty_drop_simplifies_itinerary(make_trip: MakeTrip, settings: Settings) -> None:
    updated = make_trip(feasibility_report=build_report(score=75))
    suggestion = suggest(make_trip(), updated, settings)
    assert suggestion is not None
    assert suggestion.id == FixId.SIMPLIFY_ITINERARY
    assert suggestion.estimated_impact == 7
    assert suggestion.reason == "Certainty dropped 10%. A simpler plan may be more reliable."


def test_small_certainty_drop_is_ignored(make_trip: MakeTrip, settings: Settings) -> None:
    updated = make_trip(feasibility_report=build_report(score=80))
    assert suggest(make_trip(), updated, settings) is None


def test_low_buffer_extends_trip(make_trip: MakeTrip, settings: Settings) -> None:
    short = make_trip(dates="2026-06-01 to 2026-06-06")
    suggestion = suggest(short, short, settings)
    assert suggestion is not None
    assert suggestion.id == FixId.ADD_BUFFER_DAYS
    assert suggestion.action.type == "APPLY_PATCH"
    assert suggestion.action.patch == {"extendDays": 3}
    assert suggestion.estimated_impact == 6
    assert suggestion.confidence == "medium"


def test_unparsable_dates_open_editor(make_trip: MakeTrip, settings: Settings) -> None:
    trip = make_trip(dates="sometime in spring")
    suggestion = suggest(trip, trip, settings)
    assert suggestion is not None
    assert suggestion.id == FixId.ADD_BUFFER_DAYS
    assert suggestion.action.type == "OPEN_EDITOR"
    assert suggestion.action.editor == "dates"


def test_missing_cost_refreshes_pricing(make_trip: MakeTrip, settings: Settings) -> None:
    updated = make_trip(itinerary=build_itinerary({}))
    suggestion = suggest(make_trip(), updated, settings)
    assert suggestion is not None
    assert suggestion.id == FixId.REFRESH_PRICING
    assert suggestion.action.flow == "refresh_pricing"


def test_near_budget_tolerance(make_trip: MakeTrip) -> None:
    original = make_trip(budget=2100)
    updated = make_trip(
        budget=2100,
        itinerary=build_itinerary({"flights": 850, "accommodation": 900, "activities": 300}),
    )
    strict = Settings(_env_file=None)
    tolerant = Settings(_env_file=None, near_budget_tolerance=0.1)

    assert suggest(original, updated, strict) is None
    suggestion = suggest(original, updated, tolerant)
    assert suggestion is not None
    assert suggestion.id == FixId.REDUCE_COST


def test_suggestion_is_stable(make_trip: MakeTrip, settings: Settings) -> None:
    updated = make_trip(feasibility_report=build_report(score=70, risk="high"))
    comparison = compare_trips(make_trip(), updated, today=TODAY)
    first = suggest_next_fix(comparison, updated, settings)
    second = suggest_next_fix(comparison, updated, settings)
    assert first == second


def test_rank_key_tie_breaks_by_category() -> None:
    def make(fix_id: FixId, category: FixCategory, impact: int) -> NextFixSuggestion:
        return NextFixSuggestion(
            id=fix_id,
            title="t",
            target_field=None,
            estimated_impact=impact,
            category=category,
            reason="r",
            cta_label="c",
            confidence="low",
            action=FixAction(type="OPEN_EDITOR", editor="budget"),
        )

    budget = make(FixId.REDUCE_COST, FixCategory.budget, 10)
    timing = make(FixId.ADD_BUFFER_DAYS, FixCategory.timing, 10)
    cosmetic = make(FixId.SIMPLIFY_ITINERARY, FixCategory.cosmetic, 12)
    assert sorted([budget, timing, cosmetic], key=rank_key) == [cosmetic, timing, budget]


@pytest.mark.parametrize(
    ("args", "expected"),
    [
        (("high", 10, None, None), "high"),
        (("low", 2, None, None), "high"),
        (("low", 10, 301, None), "high"),
        (("low", 10, None, -11), "high"),
        (("medium", 10, None, None), "medium"),
        (("low", 4, None, None), "medium"),
        (("low", 10, 151, None), "medium"),
        (("low", 10, None, -6), "medium"),
        (("low", 10, 100, -3), "low"),
    ],
)
def test_determine_confidence(args: tuple, expected: str) -> None:
    assert determine_confidence(*args) == expected


def test_analytics_payload(make_trip: MakeTrip, settings: Settings) -> None:
    assert suggestion_analytics(None) == {"suggestionId": None, "suggestionShown": False}

    updated = make_trip(feasibility_report=build_report(score=75))
    suggestion = suggest(make_trip(), updated, settings)
    assert suggestion is not None
    key = SuggestionKey(trip_id=1, change_id="chg_1", suggestion_id=suggestion.id)
    payload = suggestion_analytics(suggestion, key)
    assert payload["suggestionId"] == "SIMPLIFY_ITINERARY"
    assert payload["actionType"] == "OPEN_EDITOR"
    assert payload["suggestionKey"] == "1:chg_1:SIMPLIFY_ITINERARY"
