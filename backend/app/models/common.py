"""Common types and enums shared across all models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models exchanged with the UI and the replanner (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Verdict(str, Enum):
    """Top-level feasibility recommendation."""

    GO = "GO"
    POSSIBLE = "POSSIBLE"
    DIFFICULT = "DIFFICULT"


class VisaType(str, Enum):
    """Entry requirement for a passport/destination pair."""

    visa_free = "visa_free"
    visa_on_arrival = "visa_on_arrival"
    e_visa = "e_visa"
    visa_required = "visa_required"
    not_allowed = "not_allowed"


class VisaRisk(str, Enum):
    """Likelihood that the visa is not granted in time."""

    low = "low"
    medium = "medium"
    high = "high"


class OverrideId(str, Enum):
    """Override rules, declared in precedence order."""

    VISA_TIMING_BLOCKER = "VISA_TIMING_BLOCKER"
    SAFETY_L3_PLUS = "SAFETY_L3_PLUS"
    OVER_BUDGET_50 = "OVER_BUDGET_50"
    VISA_HIGH_RISK = "VISA_HIGH_RISK"
    OVER_BUDGET_20 = "OVER_BUDGET_20"
    UNDER_7_DAYS_VISA_REQUIRED = "UNDER_7_DAYS_VISA_REQUIRED"


ChangeSource = Literal["edit_trip", "quick_chip", "fix_blocker", "undo"]
CertaintySource = Literal["initial", "edit_trip", "quick_chip", "fix_blocker", "undo"]
Direction = Literal["up", "down", "same", "unavailable"]
Confidence = Literal["high", "medium", "low"]
