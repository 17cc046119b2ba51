"""Models package - re-exports for convenience."""

from backend.app.models.change_plan import (
    ApplyChangesResult,
    BlockerChange,
    BlockerDeltaUI,
    CertaintyPoint,
    ChangePlannerResponse,
    ChangePlanRequest,
    DeltaSummary,
    DetectedChange,
    UndoContext,
)
from backend.app.models.common import (
    ChangeSource,
    OverrideId,
    Verdict,
    VisaRisk,
    VisaType,
    WireModel,
)
from backend.app.models.comparison import PlanSnapshot, Recommendation, TripComparison
from backend.app.models.suggestions import (
    FixAction,
    FixApplyResult,
    FixCategory,
    FixId,
    NextFixSuggestion,
    SuggestionKey,
)
from backend.app.models.trip import TripDates, TripInput, TripState
from backend.app.models.verdict import (
    RiskFlags,
    VerdictInput,
    VerdictResult,
    VerdictThresholds,
    VisaProcessingDays,
)

__all__ = [
    # Common
    "WireModel",
    "Verdict",
    "VisaType",
    "VisaRisk",
    "OverrideId",
    "ChangeSource",
    # Verdict
    "VerdictInput",
    "VerdictResult",
    "VerdictThresholds",
    "VisaProcessingDays",
    "RiskFlags",
    # Trip
    "TripState",
    "TripInput",
    "TripDates",
    # Change plan
    "ChangePlannerResponse",
    "ChangePlanRequest",
    "DeltaSummary",
    "DetectedChange",
    "BlockerChange",
    "BlockerDeltaUI",
    "UndoContext",
    "CertaintyPoint",
    "ApplyChangesResult",
    # Comparison
    "PlanSnapshot",
    "TripComparison",
    "Recommendation",
    # Suggestions
    "NextFixSuggestion",
    "FixId",
    "FixCategory",
    "FixAction",
    "FixApplyResult",
    "SuggestionKey",
]
