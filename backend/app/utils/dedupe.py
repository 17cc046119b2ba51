"""Time-window deduplication of user-triggered events."""

from datetime import datetime, timedelta


def window_elapsed(started_at: datetime | None, now: datetime, window_seconds: float) -> bool:
    """True when nothing started, or when the window since started_at has fully passed."""
    if started_at is None:
        return True
    return now >= started_at + timedelta(seconds=window_seconds)


class DedupeGuard:
    """Remembers the last accepted key and when it was accepted.

    A repeat of the same key inside the window is rejected; a different key,
    or the same key after the window, is accepted and becomes the new last key.
    """

    def __init__(self, window_seconds: float):
        self.window_seconds = window_seconds
        self._last_key: str | None = None
        self._last_at: datetime | None = None

    def accept(self, key: str, now: datetime) -> bool:
        if key == self._last_key and not window_elapsed(self._last_at, now, self.window_seconds):
            return False
        self._last_key = key
        self._last_at = now
        return True

    def reset(self) -> None:
        self._last_key = None
        self._last_at = None
