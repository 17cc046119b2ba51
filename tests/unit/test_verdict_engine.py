"""Tests for the verdict engine."""

import pytest

from backend.app.models.common import OverrideId, Verdict, VisaRisk, VisaType
from backend.app.models.verdict import VerdictInput, VerdictThresholds, VisaProcessingDays
from backend.app.verdict.engine import (
    POSITIVE_REASON,
    VISA_FREE_REASON,
    base_verdict,
    budget_metrics,
    compute_verdict,
)


def make_input(**overrides: object) -> VerdictInput:
    """Clean trip: visa-free, safe, on budget, far from departure."""
    data: dict[str, object] = {
        "certainty_score": 90,
        "visa_type": VisaType.visa_free,
        "visa_processing_days": VisaProcessingDays(),
        "visa_risk": VisaRisk.low,
        "safety_level": 1,
        "total_cost": 1000.0,
        "user_budget": 1000.0,
        "days_until_travel": 120,
    }
    data.update(overrides)
    return VerdictInput(**data)  # type: ignore[arg-type]


class TestBaseTiers:
    """Score tiers with inclusive lower bounds."""

    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (100, Verdict.GO),
            (80, Verdict.GO),
            (79, Verdict.POSSIBLE),
            (50, Verdict.POSSIBLE),
            (49, Verdict.DIFFICULT),
            (0, Verdict.DIFFICULT),
        ],
    )
    def test_boundaries(self, score: int, expected: Verdict) -> None:
        result = compute_verdict(make_input(certainty_score=score))
        assert result.verdict == expected
        assert result.overrides_applied == []

    def test_out_of_range_scores_map_to_nearest_tier(self) -> None:
        assert compute_verdict(make_input(certainty_score=150)).verdict == Verdict.GO
        assert compute_verdict(make_input(certainty_score=-20)).verdict == Verdict.DIFFICULT

    def test_custom_thresholds(self) -> None:
        thresholds = VerdictThresholds(go_min_score=90, possible_min_score=60)
        assert base_verdict(85, thresholds) == Verdict.POSSIBLE
        assert base_verdict(59, thresholds) == Verdict.DIFFICULT


class TestBudget:
    """Budget ratio thresholds."""

    def test_zero_budget_falls_back_to_ratio_one(self) -> None:
        result = compute_verdict(make_input(user_budget=0.0, total_cost=5000.0))
        assert result.budget_ratio == 1.0
        assert result.budget_delta == 0.0
        assert result.verdict == Verdict.GO
        assert not result.risk_flags.over_budget20
        assert not result.risk_flags.over_budget50

    def test_negative_budget_is_unknown(self) -> None:
        assert budget_metrics(500.0, -10.0) == (1.0, 0.0, False)

    def test_exactly_on_budget_no_warning(self) -> None:
        result = compute_verdict(make_input(total_cost=1000.0, user_budget=1000.0))
        assert result.verdict == Verdict.GO
        assert result.budget_ratio == 1.0
        assert not result.risk_flags.has_any()

    def test_19_percent_over_no_downgrade(self) -> None:
        result = compute_verdict(make_input(total_cost=1190.0))
        assert result.verdict == Verdict.GO
        assert not result.risk_flags.over_budget20

    def test_21_percent_over_downgrades(self) -> None:
        result = compute_verdict(make_input(total_cost=1210.0))
        assert result.verdict == Verdict.POSSIBLE
        assert result.overrides_applied == [OverrideId.OVER_BUDGET_20]

    def test_25_percent_over_sets_flag(self) -> None:
        result = compute_verdict(make_input(total_cost=1250.0))
        assert result.risk_flags.over_budget20
        assert not result.risk_flags.over_budget50
        assert result.verdict == Verdict.POSSIBLE

    def test_55_percent_over_forces_difficult(self) -> None:
        result = compute_verdict(make_input(certainty_score=100, total_cost=1550.0))
        assert result.verdict == Verdict.DIFFICULT
        assert OverrideId.OVER_BUDGET_50 in result.overrides_applied
        assert OverrideId.OVER_BUDGET_20 not in result.overrides_applied
        assert result.risk_flags.over_budget50
        assert result.risk_flags.over_budget20

    def test_severe_breach_emits_single_budget_reason(self) -> None:
        result = compute_verdict(make_input(total_cost=1550.0))
        budget_reasons = [r for r in result.reasons if "budget" in r]
        assert budget_reasons == ["Trip cost ($1,550) exceeds budget by $550"]

    def test_under_budget_reports_remaining(self) -> None:
        result = compute_verdict(make_input(total_cost=700.0))
        assert result.budget_delta == -300.0
        assert "$300 remaining in budget" in result.reasons


class TestOverrides:
    """Override rules and their precedence."""

    def test_visa_high_risk_downgrades_once(self) -> None:
        result = compute_verdict(make_input(visa_risk=VisaRisk.high))
        assert result.verdict == Verdict.POSSIBLE
        assert result.risk_flags.visa_high_risk
        assert OverrideId.VISA_HIGH_RISK in result.overrides_applied

    def test_visa_high_risk_does_not_push_possible_further(self) -> None:
        result = compute_verdict(make_input(certainty_score=60, visa_risk=VisaRisk.high))
        assert result.verdict == Verdict.POSSIBLE

    def test_timing_blocker_beats_perfect_score(self) -> None:
        result = compute_verdict(
            make_input(
                certainty_score=100,
                visa_type=VisaType.visa_required,
                visa_processing_days=VisaProcessingDays(minimum=15, maximum=30),
                days_until_travel=10,
            )
        )
        assert result.verdict == Verdict.DIFFICULT
        assert result.overrides_applied[0] == OverrideId.VISA_TIMING_BLOCKER
        assert result.risk_flags.visa_timing_blocker
        assert result.reasons[0] == "Visa processing (15-30 days) exceeds your 10 days until travel"

    def test_timing_blocker_suppresses_short_notice(self) -> None:
        result = compute_verdict(
            make_input(
                visa_type=VisaType.e_visa,
                visa_processing_days=VisaProcessingDays(minimum=5, maximum=7),
                days_until_travel=3,
            )
        )
        assert result.risk_flags.visa_timing_blocker
        assert not result.risk_flags.under7_days_visa_required

    def test_visa_free_short_notice_stays_go(self) -> None:
        result = compute_verdict(make_input(days_until_travel=2))
        assert result.verdict == Verdict.GO
        assert not result.risk_flags.under7_days_visa_required
        assert VISA_FREE_REASON in result.reasons

    def test_short_notice_visa_on_arrival(self) -> None:
        result = compute_verdict(make_input(visa_type=VisaType.visa_on_arrival, days_until_travel=5))
        assert result.verdict == Verdict.POSSIBLE
        assert result.overrides_applied == [OverrideId.UNDER_7_DAYS_VISA_REQUIRED]
        assert result.reasons[0] == "Only 5 days until travel. Visa may not process in time."

    @pytest.mark.parametrize("level", [3, 4])
    def test_safety_l3_plus_forces_difficult(self, level: int) -> None:
        result = compute_verdict(make_input(certainty_score=100, safety_level=level))
        assert result.verdict == Verdict.DIFFICULT
        assert result.overrides_applied == [OverrideId.SAFETY_L3_PLUS]

    def test_high_risk_and_over_budget_combine(self) -> None:
        result = compute_verdict(make_input(visa_risk=VisaRisk.high, total_cost=1250.0))
        assert result.verdict == Verdict.POSSIBLE
        assert result.overrides_applied == [OverrideId.VISA_HIGH_RISK, OverrideId.OVER_BUDGET_20]
        assert result.risk_flags.visa_high_risk
        assert result.risk_flags.over_budget20
        assert len(result.reasons) >= 2

    def test_overrides_follow_precedence_order(self) -> None:
        result = compute_verdict(
            make_input(
                visa_type=VisaType.visa_required,
                visa_processing_days=VisaProcessingDays(minimum=30, maximum=45),
                visa_risk=VisaRisk.high,
                safety_level=3,
                total_cost=2000.0,
                days_until_travel=4,
            )
        )
        assert result.overrides_applied == [
            OverrideId.VISA_TIMING_BLOCKER,
            OverrideId.SAFETY_L3_PLUS,
            OverrideId.OVER_BUDGET_50,
            OverrideId.VISA_HIGH_RISK,
        ]
        assert result.verdict == Verdict.DIFFICULT


class TestReasons:
    """Reasons list."""

    def test_clean_trip_has_positive_reason(self) -> None:
        result = compute_verdict(make_input())
        assert result.reasons[0] == POSITIVE_REASON
        assert "Visa-free entry available" in result.reasons

    def test_never_empty(self) -> None:
        result = compute_verdict(make_input(visa_type=VisaType.e_visa, user_budget=0.0))
        assert len(result.reasons) >= 1

    def test_positive_reason_absent_when_flagged(self) -> None:
        result = compute_verdict(make_input(visa_risk=VisaRisk.high))
        assert POSITIVE_REASON not in result.reasons


def test_compute_verdict_is_pure() -> None:
    """Identical input yields byte-identical output."""
    inp = make_input(visa_risk=VisaRisk.high, total_cost=1300.0, days_until_travel=3)
    first = compute_verdict(inp).model_dump_json()
    second = compute_verdict(inp).model_dump_json()
    assert first == second
