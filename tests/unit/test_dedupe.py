"""Tests for time-window deduplication."""

from datetime import timedelta

from backend.app.utils.dedupe import DedupeGuard, window_elapsed
from tests.factories import NOW


def test_window_elapsed() -> None:
    assert window_elapsed(None, NOW, 60)
    assert not window_elapsed(NOW, NOW + timedelta(seconds=59.9), 60)
    assert window_elapsed(NOW, NOW + timedelta(seconds=60), 60)


def test_repeat_inside_window_rejected() -> None:
    guard = DedupeGuard(1.0)
    assert guard.accept("chg_1", NOW)
    assert not guard.accept("chg_1", NOW + timedelta(milliseconds=500))
    assert guard.accept("chg_1", NOW + timedelta(seconds=1))


def test_different_key_accepted() -> None:
    guard = DedupeGuard(1.0)
    assert guard.accept("chg_1", NOW)
    assert guard.accept("chg_2", NOW)
    assert guard.accept("chg_1", NOW)


def test_reset_forgets_last_key() -> None:
    guard = DedupeGuard(1.0)
    guard.accept("chg_1", NOW)
    guard.reset()
    assert guard.accept("chg_1", NOW)
