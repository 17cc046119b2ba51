"""Per-trip original baseline for cumulative comparisons."""

import logging
from datetime import date

from backend.app.config import Settings
from backend.app.diffing.compare import compare_snapshots, extract_snapshot
from backend.app.models.comparison import PlanSnapshot, TripComparison
from backend.app.models.trip import TripState

logger = logging.getLogger(__name__)


class BaselineRegistry:
    """Captures the first fully-computed snapshot of each trip and never overwrites it.

    Every comparison is made against that baseline, so the diff shown after several
    edits is cumulative rather than relative to the previous edit.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings
        self._baselines: dict[int, PlanSnapshot] = {}

    def capture(self, trip: TripState, *, today: date | None = None) -> PlanSnapshot | None:
        """Record trip as the baseline if none exists yet and it is no longer generating."""
        existing = self._baselines.get(trip.id)
        if existing is not None:
            return existing
        if trip.status == "generating":
            return None
        snapshot = extract_snapshot(trip, "original", today=today, settings=self._settings)
        self._baselines[trip.id] = snapshot
        logger.info("Captured baseline for trip %s", trip.id)
        return snapshot

    def get(self, trip_id: int) -> PlanSnapshot | None:
        return self._baselines.get(trip_id)

    def compare(self, trip: TripState, *, today: date | None = None) -> TripComparison | None:
        """Diff trip against its baseline; None while no baseline has been captured."""
        baseline = self._baselines.get(trip.id)
        if baseline is None:
            return None
        updated = extract_snapshot(trip, "updated", today=today, settings=self._settings)
        return compare_snapshots(baseline, updated)
