"""Tests for building VerdictInput from raw feasibility reports."""

from datetime import date

import pytest

from backend.app.config import Settings
from backend.app.models.common import VisaRisk, VisaType
from backend.app.verdict.inputs import (
    build_verdict_input,
    normalize_visa_type,
    resolve_days_until_travel,
)
from tests.factories import TODAY, build_report


def test_missing_visa_details_is_visa_free(settings: Settings) -> None:
    """No visa details never produces a blocker."""
    inp = build_verdict_input({"score": 70}, 1000, "2026-03-01", today=TODAY, settings=settings)
    assert inp.visa_type == VisaType.visa_free
    assert inp.visa_processing_days.minimum == 0
    assert inp.visa_risk == VisaRisk.low


def test_none_report_uses_defaults(settings: Settings) -> None:
    inp = build_verdict_input(None, None, None, today=TODAY, settings=settings)
    assert inp.certainty_score == settings.default_certainty_score
    assert inp.user_budget == 0.0
    assert inp.days_until_travel == settings.default_days_until_travel
    assert inp.safety_level == 1


def test_full_report_is_mapped(settings: Settings) -> None:
    report = build_report(
        score=72,
        visa_type="e-visa",
        processing=(3, 5),
        risk="medium",
        safety_status="caution",
        budget_total=2500,
    )
    inp = build_verdict_input(report, "2,000", "2026-01-31 to 2026-02-07", today=TODAY, settings=settings)

    assert inp.certainty_score == 72
    assert inp.visa_type == VisaType.e_visa
    assert inp.visa_processing_days.minimum == 3
    assert inp.visa_processing_days.maximum == 5
    assert inp.visa_risk == VisaRisk.medium
    assert inp.safety_level == 2
    assert inp.total_cost == 2500
    assert inp.user_budget == 2000
    assert inp.days_until_travel == 30


def test_unknown_visa_type_is_required() -> None:
    assert normalize_visa_type("consular stamp") == VisaType.visa_required
    assert normalize_visa_type("Visa on Arrival") == VisaType.visa_on_arrival
    assert normalize_visa_type("") == VisaType.visa_free


def test_score_is_clamped(settings: Settings) -> None:
    assert build_verdict_input({"score": 140}, 0, None, settings=settings).certainty_score == 100
    assert build_verdict_input({"score": -3}, 0, None, settings=settings).certainty_score == 0


def test_non_numeric_cost_falls_back_to_budget(settings: Settings) -> None:
    report = build_report(budget_total=None)
    report["breakdown"]["budget"] = {"total": "n/a"}
    inp = build_verdict_input(report, 1800, None, settings=settings)
    assert inp.total_cost == 1800


def test_numeric_safety_level_wins(settings: Settings) -> None:
    report = build_report(safety_status="ok", safetyAssessment={"level": 9})
    assert build_verdict_input(report, 0, None, settings=settings).safety_level == 4


@pytest.mark.parametrize(
    ("dates", "expected"),
    [
        ("2026-01-11", 10),
        ("2026-01-11 to 2026-01-20", 10),
        ("January 11, 2026", 10),
        ("Jan 11 - Jan 20, 2026", 10),
        ("January 11-20, 2026", 10),
        ("February 2026, 7 days", 31),
    ],
)
def test_days_until_travel_formats(settings: Settings, dates: str, expected: int) -> None:
    assert resolve_days_until_travel({}, dates, today=TODAY, settings=settings) == expected


def test_explicit_date_wins(settings: Settings) -> None:
    days = resolve_days_until_travel({}, "2026-06-01", date(2026, 1, 4), today=TODAY, settings=settings)
    assert days == 3


def test_unparsable_dates_use_report_timing_then_default(settings: Settings) -> None:
    report = {"visaDetails": {"timing": {"daysUntilTrip": 12}}}
    assert resolve_days_until_travel(report, "someday", today=TODAY, settings=settings) == 12
    assert resolve_days_until_travel({}, "someday", today=TODAY, settings=settings) == 365


def test_unparsable_dates_do_not_fire_timing_override(settings: Settings) -> None:
    report = build_report(visa_type="visa_required", processing=(20, 40), risk="low")
    inp = build_verdict_input(report, 1000, "whenever", today=TODAY, settings=settings)
    assert inp.days_until_travel > inp.visa_processing_days.minimum


def test_year_zero_dates_fall_back_to_default_horizon(settings: Settings) -> None:
    inp = build_verdict_input({"score": 90}, 1000, "March 0000, 7 days", today=TODAY, settings=settings)
    assert inp.days_until_travel == 365
