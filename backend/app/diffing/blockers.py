"""Normalize the blocker delta of a change plan for display."""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from backend.app.models.change_plan import BlockerDeltaUI, ChangePlannerResponse
from backend.app.utils.coerce import dig, safe_int, unique_strings


def get_blocker_delta_ui(
    plan: ChangePlannerResponse | Mapping[str, Any] | None,
    *,
    now: datetime | None = None,
) -> BlockerDeltaUI | None:
    """Extract {before, after, resolved, added} from plan.deltaSummary.blockers.

    Returns None when there is no plan or no blocker delta recorded, so callers can
    tell "nothing recorded" apart from "zero blockers".
    """
    if plan is None:
        return None
    data = plan.model_dump(by_alias=True) if isinstance(plan, BaseModel) else plan
    blockers = dig(data, "deltaSummary", "blockers")
    if not isinstance(blockers, Mapping):
        return None

    return BlockerDeltaUI(
        before=max(0, safe_int(blockers.get("before"))),
        after=max(0, safe_int(blockers.get("after"))),
        resolved=unique_strings(blockers.get("resolved")),
        added=unique_strings(blockers.get("new")),
        computed_at=now or datetime.now(UTC),
    )


def has_blocker_changes(delta: BlockerDeltaUI | None) -> bool:
    """True when the blocker count moved or a blocker was resolved or added."""
    if delta is None:
        return False
    return delta.before != delta.after or bool(delta.resolved or delta.added)
