"""Tests for TripInput construction and date patches."""

from collections.abc import Callable

from backend.app.models.trip import TripInput, TripState
from backend.app.orchestration.trip_input import (
    extend_trip_dates,
    format_trip_dates,
    merge_trip_input,
    parse_place,
    parse_trip_dates,
    shift_trip_dates,
    trip_to_trip_input,
)

MakeTrip = Callable[..., TripState]


def test_trip_to_trip_input(make_trip: MakeTrip) -> None:
    trip_input = trip_to_trip_input(make_trip(travel_style="Luxury", interests=["food"]))

    assert trip_input.dates is not None
    assert trip_input.dates.start == "2026-06-01"
    assert trip_input.dates.end == "2026-06-15"
    assert trip_input.dates.duration == 15
    assert trip_input.budget.total == 4000
    assert trip_input.budget.per_person == 2000
    assert trip_input.destination.city == "Tokyo"
    assert trip_input.destination.country == "Japan"
    assert trip_input.origin.city == "New York"
    assert trip_input.travelers.total == 2
    assert trip_input.travelers.adults == 2
    assert trip_input.preferences.hotel_class == "luxury"
    assert trip_input.preferences.interests == ["food"]


def test_unparsable_dates_leave_dates_empty(make_trip: MakeTrip) -> None:
    assert trip_to_trip_input(make_trip(dates="flexible")).dates is None
    assert parse_trip_dates("") is None


def test_parse_place() -> None:
    assert parse_place("Lisbon, Portugal").city == "Lisbon"
    single = parse_place("Singapore")
    assert single.city == single.country == "Singapore"
    assert parse_place("").city == ""


def test_shift_moves_both_ends(make_trip: MakeTrip) -> None:
    base = trip_to_trip_input(make_trip())
    shifted = shift_trip_dates(base, 9)

    assert shifted is not None and shifted.dates is not None
    assert shifted.dates.start == "2026-06-10"
    assert shifted.dates.end == "2026-06-24"
    assert shifted.dates.duration == 15
    # input untouched
    assert base.dates is not None and base.dates.start == "2026-06-01"


def test_extend_moves_end_only(make_trip: MakeTrip) -> None:
    extended = extend_trip_dates(trip_to_trip_input(make_trip()), 3)
    assert extended is not None and extended.dates is not None
    assert extended.dates.start == "2026-06-01"
    assert extended.dates.end == "2026-06-18"
    assert extended.dates.duration == 18


def test_patches_need_dates() -> None:
    assert shift_trip_dates(TripInput(), 3) is None
    assert extend_trip_dates(TripInput(), 3) is None


def test_merge_is_deep(make_trip: MakeTrip) -> None:
    base = trip_to_trip_input(make_trip())
    merged = merge_trip_input(base, {"budget": {"total": 5000}, "passport": "CA"})

    assert merged.budget.total == 5000
    assert merged.budget.per_person == 2000
    assert merged.budget.currency == "USD"
    assert merged.passport == "CA"
    assert merged.destination == base.destination


def test_format_trip_dates(make_trip: MakeTrip) -> None:
    dates = trip_to_trip_input(make_trip()).dates
    assert dates is not None
    assert format_trip_dates(dates) == "2026-06-01 to 2026-06-15"
