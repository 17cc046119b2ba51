"""Verdict models - canonical engine input, tunable thresholds and result."""

from pydantic import ConfigDict, Field

from backend.app.models.common import OverrideId, Verdict, VisaRisk, VisaType, WireModel


class VisaProcessingDays(WireModel):
    """Processing window for a visa application, in days."""

    model_config = ConfigDict(frozen=True)

    minimum: int = Field(default=0, ge=0)
    maximum: int = Field(default=0, ge=0)


class VerdictInput(WireModel):
    """Canonical, already-defaulted input to compute_verdict.

    Built fresh per evaluation (see build_verdict_input). The certainty score is
    not range-checked here: the engine maps out-of-range scores onto the nearest tier.
    """

    model_config = ConfigDict(frozen=True)

    certainty_score: int
    visa_type: VisaType = VisaType.visa_free
    visa_processing_days: VisaProcessingDays = Field(default_factory=VisaProcessingDays)
    visa_risk: VisaRisk = VisaRisk.low
    safety_level: int = 1
    total_cost: float = Field(default=0.0, ge=0)
    user_budget: float = 0.0
    days_until_travel: int


class VerdictThresholds(WireModel):
    """Tunable cut-offs for tiers and override rules."""

    model_config = ConfigDict(frozen=True)

    go_min_score: int = 80
    possible_min_score: int = 50
    over_budget_warn_ratio: float = 1.2
    over_budget_severe_ratio: float = 1.5
    safety_blocking_level: int = 3
    short_notice_days: int = 7


class RiskFlags(WireModel):
    """Which override conditions were detected, whether or not they moved the verdict."""

    visa_high_risk: bool = False
    over_budget20: bool = False
    over_budget50: bool = False
    visa_timing_blocker: bool = False
    safety_l3_plus: bool = False
    under7_days_visa_required: bool = False

    def has_any(self) -> bool:
        """True when at least one flag is set."""
        return any(self.model_dump().values())


class VerdictResult(WireModel):
    """Output of compute_verdict."""

    score: int
    verdict: Verdict
    overrides_applied: list[OverrideId] = Field(default_factory=list)
    risk_flags: RiskFlags = Field(default_factory=RiskFlags)
    budget_ratio: float = Field(ge=0)
    budget_delta: float
    reasons: list[str] = Field(min_length=1)
