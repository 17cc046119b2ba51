"""Trip models - the flat trip state shown to the user and the nested trip input sent to the replanner."""

from typing import Any, Literal

from pydantic import Field

from backend.app.models.common import WireModel

TripStatus = Literal["pending", "generating", "complete", "partial", "failed"]


class TripDates(WireModel):
    """Resolved travel dates (ISO strings)."""

    start: str
    end: str
    duration: int = Field(default=1, ge=1)


class TripBudget(WireModel):
    """Budget as entered by the user."""

    total: float = Field(default=0.0, ge=0)
    per_person: float = Field(default=0.0, ge=0)
    currency: str = "USD"


class Place(WireModel):
    """City/country pair."""

    city: str = ""
    country: str = ""


class Travelers(WireModel):
    """Party composition."""

    total: int = Field(default=1, ge=1)
    adults: int = Field(default=1, ge=0)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)


class TripPreferences(WireModel):
    """Soft preferences that shape the itinerary."""

    pace: Literal["relaxed", "moderate", "packed"] = "moderate"
    interests: list[str] = Field(default_factory=list)
    hotel_class: Literal["budget", "mid", "luxury"] = "mid"


class TripInput(WireModel):
    """Everything the user chose for a trip; the replanner diffs two of these."""

    dates: TripDates | None = None
    budget: TripBudget = Field(default_factory=TripBudget)
    origin: Place = Field(default_factory=Place)
    destination: Place = Field(default_factory=Place)
    passport: str = ""
    travelers: Travelers = Field(default_factory=Travelers)
    preferences: TripPreferences = Field(default_factory=TripPreferences)
    constraints: list[str] = Field(default_factory=list)


class TripState(WireModel):
    """Current computed state of a trip.

    `feasibility_report` and `itinerary` are opaque nested documents produced upstream;
    readers must tolerate any shape.
    """

    id: int
    status: TripStatus = "complete"
    destination: str = ""
    passport: str = ""
    origin: str = ""
    dates: str = ""
    budget: float = 0.0
    currency: str = "USD"
    group_size: int = 1
    adults: int | None = None
    children: int | None = None
    infants: int | None = None
    travel_style: str | None = None
    interests: list[str] = Field(default_factory=list)
    feasibility_report: dict[str, Any] | None = None
    itinerary: dict[str, Any] | None = None
