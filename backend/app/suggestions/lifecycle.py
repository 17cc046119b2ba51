"""Apply / snooze / dismiss bookkeeping for the single live suggestion of each trip."""

import logging
from datetime import datetime, timedelta
from typing import Literal

from backend.app.models.suggestions import NextFixSuggestion, SuggestionKey

logger = logging.getLogger(__name__)

SuggestionStatus = Literal["shown", "applied", "snoozed", "dismissed"]

DEFAULT_SNOOZE_SECONDS = 300.0


class SuggestionLifecycle:
    """Per-trip state keyed by (trip_id, change_id, suggestion_id).

    Each trip holds at most one live key. Surfacing a suggestion under a new
    change id drops everything recorded for the previous change id of that trip.
    """

    def __init__(self, snooze_seconds: float = DEFAULT_SNOOZE_SECONDS):
        self.snooze_seconds = snooze_seconds
        self._change_ids: dict[int, str] = {}
        self._status: dict[SuggestionKey, SuggestionStatus] = {}
        self._snoozed_until: dict[SuggestionKey, datetime] = {}

    def _invalidate(self, trip_id: int) -> None:
        stale = [key for key in self._status if key.trip_id == trip_id]
        for key in stale:
            self._status.pop(key, None)
            self._snoozed_until.pop(key, None)

    def reset(self, trip_id: int, change_id: str) -> None:
        """Adopt a new change id for trip_id, discarding state from the old one."""
        if self._change_ids.get(trip_id) == change_id:
            return
        self._invalidate(trip_id)
        self._change_ids[trip_id] = change_id
        logger.debug("Suggestion state reset for trip %s at change %s", trip_id, change_id)

    def key_for(self, trip_id: int, change_id: str, suggestion: NextFixSuggestion) -> SuggestionKey:
        self.reset(trip_id, change_id)
        return SuggestionKey(trip_id=trip_id, change_id=change_id, suggestion_id=suggestion.id)

    def is_visible(self, key: SuggestionKey, now: datetime) -> bool:
        """False once applied or dismissed, or while snoozed."""
        if self._change_ids.get(key.trip_id) != key.change_id:
            return False
        status = self._status.get(key, "shown")
        if status == "snoozed":
            until = self._snoozed_until.get(key)
            if until is not None and now >= until:
                self._status[key] = "shown"
                self._snoozed_until.pop(key, None)
                return True
            return False
        return status == "shown"

    def visible(
        self,
        trip_id: int,
        change_id: str,
        suggestion: NextFixSuggestion | None,
        now: datetime,
    ) -> NextFixSuggestion | None:
        """Filter a freshly computed suggestion through the recorded lifecycle."""
        if suggestion is None:
            return None
        key = self.key_for(trip_id, change_id, suggestion)
        return suggestion if self.is_visible(key, now) else None

    def _record(self, key: SuggestionKey, status: SuggestionStatus) -> bool:
        if self._change_ids.get(key.trip_id) != key.change_id:
            logger.info("Ignoring %s for stale suggestion key %s", status, key)
            return False
        self._status[key] = status
        return True

    def mark_applied(self, key: SuggestionKey) -> bool:
        return self._record(key, "applied")

    def dismiss(self, key: SuggestionKey) -> bool:
        return self._record(key, "dismissed")

    def snooze(self, key: SuggestionKey, now: datetime) -> bool:
        if not self._record(key, "snoozed"):
            return False
        self._snoozed_until[key] = now + timedelta(seconds=self.snooze_seconds)
        return True

    def status(self, key: SuggestionKey) -> SuggestionStatus | None:
        if self._change_ids.get(key.trip_id) != key.change_id:
            return None
        return self._status.get(key, "shown")
