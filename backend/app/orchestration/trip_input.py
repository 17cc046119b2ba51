"""TripInput construction and date patches.

Pure helpers: inputs are never mutated, every patch returns a new model.
"""

from datetime import date, timedelta
from typing import Any

from backend.app.models.trip import Place, TripBudget, TripDates, TripInput, TripPreferences, TripState, Travelers
from backend.app.utils.dates import parse_date_range


def parse_trip_dates(dates: str | None) -> TripDates | None:
    """Resolve a free-form dates string into ISO start/end and an inclusive duration."""
    parsed = parse_date_range(dates)
    if parsed is None:
        return None
    start, end = parsed
    return _trip_dates(start, end)


def _trip_dates(start: date, end: date) -> TripDates:
    return TripDates(
        start=start.isoformat(),
        end=end.isoformat(),
        duration=max(1, (end - start).days + 1),
    )


def parse_place(text: str) -> Place:
    """'Bangkok, Thailand' -> city/country; a single value fills both."""
    parts = [part.strip() for part in text.split(",") if part.strip()]
    if len(parts) >= 2:
        return Place(city=parts[0], country=parts[-1])
    value = parts[0] if parts else ""
    return Place(city=value, country=value)


def _hotel_class(travel_style: str | None) -> str:
    style = (travel_style or "").strip().lower()
    if style == "luxury":
        return "luxury"
    if style == "budget":
        return "budget"
    return "mid"


def trip_to_trip_input(trip: TripState) -> TripInput:
    """Build the nested replanner input from the flat trip state."""
    group_size = max(1, trip.group_size)
    return TripInput(
        dates=parse_trip_dates(trip.dates),
        budget=TripBudget(
            total=max(0.0, trip.budget),
            per_person=round(max(0.0, trip.budget) / group_size),
            currency=trip.currency or "USD",
        ),
        origin=Place(city=trip.origin or "", country=""),
        destination=parse_place(trip.destination),
        passport=trip.passport,
        travelers=Travelers(
            total=group_size,
            adults=trip.adults or group_size,
            children=trip.children or 0,
            infants=trip.infants or 0,
        ),
        preferences=TripPreferences(
            interests=list(trip.interests),
            hotel_class=_hotel_class(trip.travel_style),
        ),
    )


def merge_trip_input(base: TripInput, patch: dict[str, Any]) -> TripInput:
    """Apply a (possibly nested, camelCase or snake_case) patch to a TripInput."""
    merged = _deep_merge(base.model_dump(by_alias=True), patch)
    return TripInput.model_validate(merged)


def _deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def shift_trip_dates(trip_input: TripInput, days: int) -> TripInput | None:
    """Move both start and end by days; None when the input has no dates."""
    if trip_input.dates is None:
        return None
    delta = timedelta(days=days)
    start = date.fromisoformat(trip_input.dates.start) + delta
    end = date.fromisoformat(trip_input.dates.end) + delta
    return trip_input.model_copy(update={"dates": _trip_dates(start, end)})


def extend_trip_dates(trip_input: TripInput, days: int) -> TripInput | None:
    """Push the end date out by days; None when the input has no dates."""
    if trip_input.dates is None:
        return None
    start = date.fromisoformat(trip_input.dates.start)
    end = date.fromisoformat(trip_input.dates.end) + timedelta(days=days)
    return trip_input.model_copy(update={"dates": _trip_dates(start, end)})


def format_trip_dates(dates: TripDates) -> str:
    """Render TripDates back into the flat trip's 'start to end' string."""
    return f"{dates.start} to {dates.end}"
