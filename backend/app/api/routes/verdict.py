"""Verdict, blocker delta and trip comparison endpoints."""

from typing import Any

from fastapi import APIRouter, Body
from pydantic import Field

from backend.app.diffing.blockers import get_blocker_delta_ui
from backend.app.diffing.compare import compare_trips
from backend.app.models.change_plan import BlockerDeltaUI
from backend.app.models.common import WireModel
from backend.app.models.comparison import TripComparison
from backend.app.models.suggestions import NextFixSuggestion
from backend.app.models.trip import TripState
from backend.app.models.verdict import VerdictResult
from backend.app.suggestions.next_fix import suggest_next_fix, suggestion_analytics
from backend.app.utils.metrics import PrometheusPlannerMetrics
from backend.app.verdict.engine import compute_verdict
from backend.app.verdict.inputs import build_verdict_input

router = APIRouter(tags=["verdict"])
metrics = PrometheusPlannerMetrics()


class VerdictRequest(WireModel):
    """Request body for POST /verdict."""

    report: dict[str, Any] | None = Field(None, description="Raw feasibility report")
    budget: Any = Field(None, description="User budget (numbers or numeric strings)")
    dates: str | None = Field(None, description="Free-form travel dates")
    travel_date: str | None = Field(None, description="Explicit departure date, overrides dates")


class CompareRequest(WireModel):
    """Request body for POST /compare."""

    original: TripState
    updated: TripState


class CompareResponse(WireModel):
    """Comparison plus the single suggested next fix."""

    comparison: TripComparison
    suggestion: NextFixSuggestion | None = None
    analytics: dict[str, Any] = Field(default_factory=dict)


@router.post("/verdict", response_model=VerdictResult)
async def verdict(request: VerdictRequest) -> VerdictResult:
    """Compute the GO / POSSIBLE / DIFFICULT verdict for a feasibility report."""
    verdict_input = build_verdict_input(request.report, request.budget, request.dates, request.travel_date)
    result = compute_verdict(verdict_input)
    metrics.inc_verdict(result.verdict.value)
    return result


@router.post("/blocker-delta", response_model=BlockerDeltaUI | None)
async def blocker_delta(plan: dict[str, Any] | None = Body(None)) -> BlockerDeltaUI | None:
    """Display-ready blocker delta of a change plan; null when none was recorded."""
    return get_blocker_delta_ui(plan)


@router.post("/compare", response_model=CompareResponse)
async def compare(request: CompareRequest) -> CompareResponse:
    """Diff two trip states and suggest the next fix for the updated one."""
    comparison = compare_trips(request.original, request.updated)
    suggestion = suggest_next_fix(comparison, request.updated)
    return CompareResponse(
        comparison=comparison,
        suggestion=suggestion,
        analytics=suggestion_analytics(suggestion),
    )
