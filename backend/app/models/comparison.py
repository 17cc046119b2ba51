"""Trip comparison models - snapshots of two trip states and the structured diff between them."""

from typing import Literal

from pydantic import Field

from backend.app.models.common import Confidence, Direction, WireModel
from backend.app.models.verdict import VerdictInput, VerdictResult

Money = float | None

COST_CATEGORIES: tuple[str, ...] = (
    "flights",
    "stay",
    "activities",
    "visa",
    "insurance",
    "food",
    "transport",
    "misc",
)

CATEGORY_LABELS: dict[str, str] = {
    "flights": "Flights",
    "stay": "Accommodation",
    "activities": "Activities",
    "visa": "Visa",
    "insurance": "Insurance",
    "food": "Food & Dining",
    "transport": "Local Transport",
    "misc": "Miscellaneous",
}


class SnapshotInputs(WireModel):
    """User-chosen inputs at snapshot time."""

    passport: str
    destination: str
    dates: str
    budget: float
    travelers: int
    travel_style: str | None = None


class SnapshotCertainty(WireModel):
    """Certainty signals at snapshot time."""

    score: int | None = None
    visa_risk: Literal["low", "medium", "high"] = "medium"
    visa_type: str = "unknown"
    buffer_days: int = 0
    safety_status: str | None = None
    accessibility_status: str | None = None


class SnapshotItinerary(WireModel):
    """Coarse itinerary shape."""

    day_count: int = 0
    highlights: list[str] = Field(default_factory=list)
    activities: int = 0


class PlanSnapshot(WireModel):
    """Normalized view of one trip state."""

    label: Literal["original", "updated"]
    trip_id: int
    inputs: SnapshotInputs
    certainty: SnapshotCertainty
    costs: dict[str, Money] = Field(default_factory=dict)
    total_cost: Money = None
    itinerary: SnapshotItinerary = Field(default_factory=SnapshotItinerary)
    blockers: list[str] = Field(default_factory=list)
    verdict_input: VerdictInput
    verdict: VerdictResult


class CertaintyComparison(WireModel):
    """Certainty before/after."""

    score_before: int | None
    score_after: int | None
    delta: int | None
    direction: Literal["improved", "worsened", "same", "unavailable"]
    visa_risk_before: str
    visa_risk_after: str
    buffer_days_before: int
    buffer_days_after: int
    buffer_delta: int


class CostDelta(WireModel):
    """One cost category before/after."""

    category: str
    before: Money
    after: Money
    delta: Money
    direction: Direction


class BudgetComparison(WireModel):
    """Budget and total cost before/after."""

    budget_before: float
    budget_after: float
    cost_before: Money
    cost_after: Money
    delta: Money
    percent_change: int | None
    direction: Direction
    budget_ratio_after: float | None


class BlockerComparison(WireModel):
    """Blocker identifiers before/after, compared as sets."""

    before: list[str] = Field(default_factory=list)
    after: list[str] = Field(default_factory=list)
    resolved: list[str] = Field(default_factory=list)
    added: list[str] = Field(default_factory=list)


class ItineraryComparison(WireModel):
    """Structural itinerary delta."""

    changed: bool
    day_count_before: int
    day_count_after: int
    activities_before: int
    activities_after: int
    added_highlights: list[str] = Field(default_factory=list)
    removed_highlights: list[str] = Field(default_factory=list)


class Recommendation(WireModel):
    """Which of the two states to prefer."""

    preferred: Literal["A", "B", "neutral"]
    confidence: Confidence
    reason: str
    tradeoff_summary: str


class TripComparison(WireModel):
    """Cumulative diff of the updated trip against its fixed original baseline."""

    trip_id: int
    original: PlanSnapshot
    updated: PlanSnapshot
    is_comparable: bool
    incomparable_reason: str | None = None
    certainty: CertaintyComparison
    cost_deltas: list[CostDelta] = Field(default_factory=list)
    budget: BudgetComparison
    blockers: BlockerComparison
    itinerary: ItineraryComparison
    recommendation: Recommendation
