"""Verdict engine: turns trip-risk signals into a single GO / POSSIBLE / DIFFICULT verdict.

Pure and deterministic. Never raises on odd input; callers validate upstream
(see build_verdict_input).

Rules, in precedence order:
1. VISA_TIMING_BLOCKER        forces DIFFICULT
2. SAFETY_L3_PLUS             forces DIFFICULT
3. OVER_BUDGET_50             forces DIFFICULT
4. VISA_HIGH_RISK             GO -> POSSIBLE
5. OVER_BUDGET_20             GO -> POSSIBLE
6. UNDER_7_DAYS_VISA_REQUIRED GO -> POSSIBLE

Every rule that fires is recorded in overrides_applied and gets a reason, even
when an earlier rule already settled the verdict.
"""

import math

from backend.app.models.common import OverrideId, Verdict, VisaRisk, VisaType
from backend.app.models.verdict import RiskFlags, VerdictInput, VerdictResult, VerdictThresholds

DEFAULT_THRESHOLDS = VerdictThresholds()

POSITIVE_REASON = "All checks passed. Safe to book."
VISA_FREE_REASON = "Visa-free entry available"


def base_verdict(score: int, thresholds: VerdictThresholds = DEFAULT_THRESHOLDS) -> Verdict:
    """Tier from certainty score; lower bounds are inclusive."""
    if score >= thresholds.go_min_score:
        return Verdict.GO
    if score >= thresholds.possible_min_score:
        return Verdict.POSSIBLE
    return Verdict.DIFFICULT


def budget_metrics(total_cost: float, user_budget: float) -> tuple[float, float, bool]:
    """Return (ratio, delta, budget_known).

    A non-positive budget is "unknown": ratio falls back to exactly 1 and delta to 0
    so neither budget overrides nor the remaining-budget reason fire.
    """
    cost = total_cost if math.isfinite(total_cost) and total_cost > 0 else 0.0
    if not math.isfinite(user_budget) or user_budget <= 0:
        return 1.0, 0.0, False
    return cost / user_budget, cost - user_budget, True


def _downgrade(verdict: Verdict) -> Verdict:
    return Verdict.POSSIBLE if verdict == Verdict.GO else verdict


def _money(amount: float) -> str:
    return f"${abs(round(amount)):,}"


def compute_verdict(
    verdict_input: VerdictInput,
    thresholds: VerdictThresholds = DEFAULT_THRESHOLDS,
) -> VerdictResult:
    """Compute the verdict, risk flags, budget metrics and reasons for one trip."""
    inp = verdict_input
    flags = RiskFlags()
    overrides: list[OverrideId] = []
    reasons: list[str] = []

    verdict = base_verdict(inp.certainty_score, thresholds)
    ratio, delta, budget_known = budget_metrics(inp.total_cost, inp.user_budget)
    needs_visa = inp.visa_type != VisaType.visa_free
    forced = False

    # 1. Visa cannot be processed before departure
    if needs_visa and inp.days_until_travel < inp.visa_processing_days.minimum:
        flags.visa_timing_blocker = True
        overrides.append(OverrideId.VISA_TIMING_BLOCKER)
        forced = True
        days = inp.visa_processing_days
        reasons.append(
            f"Visa processing ({days.minimum}-{max(days.minimum, days.maximum)} days) exceeds "
            f"your {inp.days_until_travel} days until travel"
        )

    # 2. Travel advisory
    if inp.safety_level >= thresholds.safety_blocking_level:
        flags.safety_l3_plus = True
        overrides.append(OverrideId.SAFETY_L3_PLUS)
        forced = True
        reasons.append(f"Level {inp.safety_level} travel advisory in effect")

    # 3. Severe budget breach
    if budget_known and ratio >= thresholds.over_budget_severe_ratio:
        flags.over_budget50 = True
        flags.over_budget20 = True
        overrides.append(OverrideId.OVER_BUDGET_50)
        forced = True
        reasons.append(
            f"Trip cost ({_money(inp.total_cost)}) exceeds budget by {_money(delta)}"
        )

    if forced:
        verdict = Verdict.DIFFICULT

    # 4. Visa approval uncertain
    if inp.visa_risk == VisaRisk.high:
        flags.visa_high_risk = True
        overrides.append(OverrideId.VISA_HIGH_RISK)
        verdict = _downgrade(verdict)
        reasons.append("Visa approval is uncertain for this route")

    # 5. Moderate budget breach
    if (
        budget_known
        and thresholds.over_budget_warn_ratio <= ratio < thresholds.over_budget_severe_ratio
    ):
        flags.over_budget20 = True
        overrides.append(OverrideId.OVER_BUDGET_20)
        verdict = _downgrade(verdict)
        reasons.append(f"Estimated cost is {_money(delta)} over budget")

    # 6. Short notice for a trip that needs any kind of visa
    if (
        needs_visa
        and inp.days_until_travel < thresholds.short_notice_days
        and not flags.visa_timing_blocker
    ):
        flags.under7_days_visa_required = True
        overrides.append(OverrideId.UNDER_7_DAYS_VISA_REQUIRED)
        verdict = _downgrade(verdict)
        reasons.append(
            f"Only {inp.days_until_travel} days until travel. Visa may not process in time."
        )

    if not flags.has_any():
        reasons.append(POSITIVE_REASON)

    if inp.visa_type == VisaType.visa_free:
        reasons.append(VISA_FREE_REASON)

    if budget_known and delta < 0:
        reasons.append(f"{_money(delta)} remaining in budget")

    return VerdictResult(
        score=inp.certainty_score,
        verdict=verdict,
        overrides_applied=overrides,
        risk_flags=flags,
        budget_ratio=ratio,
        budget_delta=delta,
        reasons=reasons,
    )
