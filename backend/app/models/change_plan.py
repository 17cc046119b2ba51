"""Change planner models - replanner request/response, display deltas, undo and history records."""

from datetime import datetime, timedelta
from typing import Any, Literal

from pydantic import Field, field_validator

from backend.app.models.common import CertaintySource, ChangeSource, WireModel
from backend.app.models.trip import TripInput, TripState
from backend.app.utils.coerce import safe_int, safe_list, safe_number

ChangeableField = Literal[
    "dates",
    "budget",
    "origin",
    "destination",
    "passport",
    "travelers",
    "preferences",
    "constraints",
]
RecomputableModule = Literal["visa", "flights", "hotels", "itinerary", "certainty", "action_items"]
ChangeSeverity = Literal["low", "medium", "high"]
HighlightSection = Literal["ActionItems", "CostBreakdown", "Itinerary", "VisaCard"]


class DetectedChange(WireModel):
    """One input field that differs between prev and next input."""

    field: ChangeableField
    before: Any = None
    after: Any = None
    impact: list[RecomputableModule] = Field(default_factory=list)
    severity: ChangeSeverity = "low"


class CertaintyChange(WireModel):
    """Certainty score before/after the change."""

    before: int = 0
    after: int = 0
    reason: str = ""

    @field_validator("before", "after", mode="before")
    @classmethod
    def coerce_score(cls, v: Any) -> int:
        """Non-numeric scores count as 0."""
        return safe_int(v)


class CostChange(WireModel):
    """Total trip cost before/after the change."""

    before: float = 0.0
    after: float = 0.0
    delta: float = 0.0
    notes: list[str] = Field(default_factory=list)

    @field_validator("before", "after", "delta", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        """Non-numeric amounts count as 0."""
        return safe_number(v)

    @field_validator("notes", mode="before")
    @classmethod
    def coerce_notes(cls, v: Any) -> list[Any]:
        """Anything that is not a list becomes empty."""
        return safe_list(v)


class BlockerChange(WireModel):
    """Blocker counts and named blockers that went away or appeared."""

    before: int = 0
    after: int = 0
    resolved: list[str] = Field(default_factory=list)
    added: list[str] = Field(default_factory=list, alias="new")

    @field_validator("before", "after", mode="before")
    @classmethod
    def coerce_count(cls, v: Any) -> int:
        """Non-numeric counts count as 0."""
        return safe_int(v)

    @field_validator("resolved", "added", mode="before")
    @classmethod
    def coerce_names(cls, v: Any) -> list[str]:
        """Keep only scalar entries of list-shaped input."""
        return [str(item) for item in safe_list(v) if isinstance(item, str | int | float)]


class ItineraryChange(WireModel):
    """Coarse itinerary delta reported by the replanner."""

    day_count_before: int = 0
    day_count_after: int = 0
    major_diffs: list[str] = Field(default_factory=list)


class DeltaSummary(WireModel):
    """Everything that moved as a result of one change plan."""

    certainty: CertaintyChange = Field(default_factory=CertaintyChange)
    total_cost: CostChange = Field(default_factory=CostChange)
    blockers: BlockerChange | None = None
    itinerary: ItineraryChange = Field(default_factory=ItineraryChange)


class Banner(WireModel):
    """Summary banner shown after a plan is applied."""

    tone: Literal["green", "amber", "red"]
    title: str
    subtitle: str | None = None


class Toast(WireModel):
    """Non-blocking notification."""

    tone: Literal["success", "info", "warning", "error"]
    message: str


class UIInstructions(WireModel):
    """Presentation hints returned by the replanner."""

    banner: Banner | None = None
    highlight_sections: list[HighlightSection] = Field(default_factory=list)
    toasts: list[Toast] = Field(default_factory=list)


class UpdatedData(WireModel):
    """Recomputed documents to patch into the working trip."""

    visa: dict[str, Any] | None = None
    itinerary: dict[str, Any] | None = None
    cost_breakdown: dict[str, Any] | None = None


class ChangePlannerResponse(WireModel):
    """Result of replanning a trip after an input change."""

    change_id: str
    detected_changes: list[DetectedChange] = Field(default_factory=list)
    modules_to_recompute: list[RecomputableModule] = Field(default_factory=list)
    delta_summary: DeltaSummary | None = None
    ui_instructions: UIInstructions = Field(default_factory=UIInstructions)
    updated_data: UpdatedData = Field(default_factory=UpdatedData)
    failures: list[str] | None = None
    # Stamped locally by the orchestrator; never part of the replanner payload.
    generation: int = Field(default=0, exclude=True)


class ChangePlanRequest(WireModel):
    """Payload sent to the replanning collaborator."""

    trip_id: int
    prev_input: TripInput
    next_input: TripInput
    current_results: TripState
    source: ChangeSource


class BlockerDeltaUI(WireModel):
    """Display-ready projection of deltaSummary.blockers."""

    before: int = 0
    after: int = 0
    resolved: list[str] = Field(default_factory=list)
    added: list[str] = Field(default_factory=list)
    computed_at: datetime


class UndoContext(WireModel):
    """Minimal state needed to reverse exactly one applied change."""

    change_id: str
    prev_input: TripInput
    next_input: TripInput
    applied_at: datetime
    source: ChangeSource

    def is_expired(self, now: datetime, window_seconds: float) -> bool:
        """True once the undo window has elapsed."""
        return now >= self.applied_at + timedelta(seconds=window_seconds)


class CertaintyPoint(WireModel):
    """One entry in the bounded certainty history."""

    id: str
    score: int
    at: datetime
    label: str
    source: CertaintySource


class ApplyChangesResult(WireModel):
    """What the UI should do after a plan was applied."""

    change_id: str
    highlight_sections: list[HighlightSection] = Field(default_factory=list)
    toasts: list[Toast] = Field(default_factory=list)
    banner: Banner | None = None
    blocker_delta: BlockerDeltaUI | None = None
    duplicate: bool = False
