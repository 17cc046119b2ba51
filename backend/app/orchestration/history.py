"""Bounded certainty history per trip."""

from collections import deque
from datetime import datetime

from backend.app.models.change_plan import CertaintyPoint
from backend.app.models.common import CertaintySource

_LABELS: dict[CertaintySource, str] = {
    "initial": "Initial",
    "edit_trip": "Edited trip",
    "quick_chip": "Quick change",
    "fix_blocker": "Applied fix",
    "undo": "Undo",
}


class CertaintyHistory:
    """Most recent certainty points, oldest dropped first once full."""

    def __init__(self, max_points: int = 5):
        self.max_points = max_points
        self._points: deque[CertaintyPoint] = deque(maxlen=max_points)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> list[CertaintyPoint]:
        return list(self._points)

    def seed(self, score: int, at: datetime) -> bool:
        """Add the initial point; only the first call on an empty history has effect."""
        if self._points:
            return False
        self.add("initial", score, at, point_id="initial")
        return True

    def add(
        self,
        source: CertaintySource,
        score: int,
        at: datetime,
        *,
        point_id: str | None = None,
        label: str | None = None,
    ) -> CertaintyPoint:
        point = CertaintyPoint(
            id=point_id or f"{source}-{at.timestamp():.3f}",
            score=min(100, max(0, score)),
            at=at,
            label=label or _LABELS[source],
            source=source,
        )
        self._points.append(point)
        return point

    def latest(self) -> CertaintyPoint | None:
        return self._points[-1] if self._points else None
