"""Next-fix suggestion models."""

from enum import Enum
from typing import Any, Literal

from pydantic import ConfigDict, Field

from backend.app.models.common import Confidence, WireModel


class FixId(str, Enum):
    """Kinds of corrective action the suggester can propose."""

    SHIFT_TRAVEL_DATES = "SHIFT_TRAVEL_DATES"
    ADD_BUFFER_DAYS = "ADD_BUFFER_DAYS"
    LOWER_VISA_RISK = "LOWER_VISA_RISK"
    REVIEW_SAFETY = "REVIEW_SAFETY"
    REDUCE_COST = "REDUCE_COST"
    SIMPLIFY_ITINERARY = "SIMPLIFY_ITINERARY"
    REFRESH_PRICING = "REFRESH_PRICING"
    REVERT_CHANGE = "REVERT_CHANGE"


class FixCategory(str, Enum):
    """Tie-break categories, declared in priority order."""

    timing = "timing"
    safety = "safety"
    budget = "budget"
    cosmetic = "cosmetic"


CATEGORY_RANK: dict[FixCategory, int] = {category: rank for rank, category in enumerate(FixCategory)}

ActionType = Literal["APPLY_PATCH", "OPEN_EDITOR", "TRIGGER_FLOW"]
EditorTarget = Literal["dates", "budget", "hotels", "flights", "itinerary", "visa_docs", "destination"]
FlowName = Literal["undo_change", "refresh_pricing"]


class FixAction(WireModel):
    """How a suggestion is carried out."""

    type: ActionType
    editor: EditorTarget | None = None
    flow: FlowName | None = None
    patch: dict[str, Any] = Field(default_factory=dict)


class NextFixSuggestion(WireModel):
    """A single ranked corrective action."""

    model_config = ConfigDict(frozen=True)

    id: FixId
    title: str
    target_field: EditorTarget | None
    estimated_impact: int = Field(ge=0, description="Estimated certainty points gained")
    category: FixCategory
    reason: str
    cta_label: str
    confidence: Confidence
    action: FixAction
    cost_delta: float | None = None
    buffer_days: int | None = None


class SuggestionKey(WireModel):
    """Composite identity of a surfaced suggestion."""

    model_config = ConfigDict(frozen=True)

    trip_id: int
    change_id: str
    suggestion_id: FixId

    def __str__(self) -> str:
        return f"{self.trip_id}:{self.change_id}:{self.suggestion_id.value}"


FixOutcome = Literal["applied", "navigated", "no-op"]


class FixApplyResult(WireModel):
    """Uniform result of dispatching a suggestion."""

    outcome: FixOutcome
    message: str = ""
    new_change_id: str | None = None
    new_certainty_score: int | None = None
