"""Build a canonical VerdictInput from a raw feasibility report.

All defaulting for loosely-shaped upstream data happens here so the engine
never has to defend against missing fields:
- missing visa details      -> visa_free, 0 processing days, low risk
- unknown visa type string  -> visa_required (processing days still default to 0)
- unparsable travel date    -> settings.default_days_until_travel
- missing/invalid budget    -> 0 (engine treats it as unknown)
- missing total cost        -> the budget itself (ratio 1, no budget warning)
"""

import logging
from datetime import date, datetime
from typing import Any

from backend.app.config import Settings, get_settings
from backend.app.models.common import VisaRisk, VisaType
from backend.app.models.verdict import VerdictInput, VisaProcessingDays
from backend.app.utils.coerce import dig, first_present, safe_int, safe_number
from backend.app.utils.dates import days_between, parse_date, parse_date_range

logger = logging.getLogger(__name__)

_VISA_ALIASES: dict[str, VisaType] = {
    "visa_free": VisaType.visa_free,
    "visafree": VisaType.visa_free,
    "not_required": VisaType.visa_free,
    "no_visa_required": VisaType.visa_free,
    "none": VisaType.visa_free,
    "visa_on_arrival": VisaType.visa_on_arrival,
    "on_arrival": VisaType.visa_on_arrival,
    "voa": VisaType.visa_on_arrival,
    "e_visa": VisaType.e_visa,
    "evisa": VisaType.e_visa,
    "eta": VisaType.e_visa,
    "electronic_visa": VisaType.e_visa,
    "visa_required": VisaType.visa_required,
    "required": VisaType.visa_required,
    "embassy_visa": VisaType.visa_required,
    "embassy": VisaType.visa_required,
    "visa": VisaType.visa_required,
    "not_allowed": VisaType.not_allowed,
    "no_entry": VisaType.not_allowed,
    "entry_denied": VisaType.not_allowed,
    "banned": VisaType.not_allowed,
}

_SAFETY_STATUS_LEVELS: dict[str, int] = {
    "ok": 1,
    "good": 1,
    "safe": 1,
    "low": 1,
    "warning": 2,
    "caution": 2,
    "moderate": 2,
    "medium": 2,
    "issue": 3,
    "high": 3,
    "danger": 3,
    "reconsider": 3,
    "critical": 4,
    "blocker": 4,
    "do_not_travel": 4,
}


def _norm(value: Any) -> str:
    return str(value).strip().lower().replace("-", "_").replace(" ", "_")


def normalize_visa_type(raw: Any) -> VisaType:
    """Map the many upstream spellings onto VisaType."""
    if raw is None or raw == "":
        return VisaType.visa_free
    return _VISA_ALIASES.get(_norm(raw), VisaType.visa_required)


def _visa_fields(report: Any) -> tuple[VisaType, VisaProcessingDays, VisaRisk]:
    details = dig(report, "visaDetails")
    if not isinstance(details, dict) or not details:
        return VisaType.visa_free, VisaProcessingDays(), VisaRisk.low

    raw_type = details.get("type")
    if raw_type is None and details.get("required") is True:
        raw_type = "visa_required"
    visa_type = normalize_visa_type(raw_type)

    window = first_present(details.get("processingDays"), details.get("processingTime"))
    minimum = max(0, safe_int(dig(window, "minimum")))
    maximum = max(minimum, safe_int(dig(window, "maximum")))

    risk_raw = details.get("risk")
    try:
        risk = VisaRisk(_norm(risk_raw)) if risk_raw is not None else VisaRisk.medium
    except ValueError:
        risk = VisaRisk.medium
    if visa_type == VisaType.visa_free and risk_raw is None:
        risk = VisaRisk.low

    return visa_type, VisaProcessingDays(minimum=minimum, maximum=maximum), risk


def _safety_level(report: Any) -> int:
    numeric = first_present(dig(report, "safetyAssessment", "level"), dig(report, "breakdown", "safety", "level"))
    if numeric is not None:
        return min(4, max(1, safe_int(numeric, 1)))
    status = dig(report, "breakdown", "safety", "status")
    if status is None:
        return 1
    return _SAFETY_STATUS_LEVELS.get(_norm(status), 1)


def _certainty_score(report: Any, default: int) -> int:
    raw = first_present(dig(report, "score"), dig(report, "certaintyScore", "score"))
    return min(100, max(0, safe_int(raw, default)))


def _total_cost(report: Any, budget: float) -> float:
    raw = first_present(
        dig(report, "costBreakdown", "grandTotal"),
        dig(report, "costBreakdown", "total"),
        dig(report, "breakdown", "budget", "total"),
        dig(report, "breakdown", "budget", "estimatedCost"),
    )
    cost = safe_number(raw, -1.0)
    return cost if cost >= 0 else budget


def _travel_date(explicit: date | datetime | str | None) -> date | None:
    if isinstance(explicit, datetime):
        return explicit.date()
    if isinstance(explicit, date):
        return explicit
    if isinstance(explicit, str):
        return parse_date(explicit)
    return None


def resolve_days_until_travel(
    report: Any,
    dates: str | None,
    explicit_date: date | datetime | str | None = None,
    *,
    today: date | None = None,
    settings: Settings | None = None,
) -> int:
    """Days until departure: explicit date, then the dates string, then report timing, then default."""
    settings = settings or get_settings()
    today = today or date.today()

    start = _travel_date(explicit_date)
    if start is None:
        parsed = parse_date_range(dates)
        start = parsed[0] if parsed else None
    if start is not None:
        return days_between(start, today)

    reported = dig(report, "visaDetails", "timing", "daysUntilTrip")
    if isinstance(reported, int | float) and not isinstance(reported, bool):
        return safe_int(reported, settings.default_days_until_travel)

    logger.info("No usable travel date in %r; using default horizon", dates)
    return settings.default_days_until_travel


def build_verdict_input(
    raw_report: dict[str, Any] | None,
    budget: Any,
    dates: str | None,
    explicit_date: date | datetime | str | None = None,
    *,
    today: date | None = None,
    settings: Settings | None = None,
) -> VerdictInput:
    """Normalize a raw feasibility report + budget + travel date into a VerdictInput."""
    settings = settings or get_settings()
    report = raw_report if isinstance(raw_report, dict) else {}

    user_budget = max(0.0, safe_number(budget))
    visa_type, processing_days, visa_risk = _visa_fields(report)

    return VerdictInput(
        certainty_score=_certainty_score(report, settings.default_certainty_score),
        visa_type=visa_type,
        visa_processing_days=processing_days,
        visa_risk=visa_risk,
        safety_level=_safety_level(report),
        total_cost=_total_cost(report, user_budget),
        user_budget=user_budget,
        days_until_travel=resolve_days_until_travel(
            report, dates, explicit_date, today=today, settings=settings
        ),
    )
