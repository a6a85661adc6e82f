"""Unit tests for clock implementations."""

import pytest

from hpanel.utils.clock import ManualClock, MonotonicClock


def test_manual_clock_only_moves_when_advanced():
    clock = ManualClock(start_time=10.0)
    assert clock.now() == 10.0
    assert clock.advance(0.5) == 10.5
    assert clock.now() == 10.5


def test_manual_clock_rejects_negative_step():
    with pytest.raises(ValueError):
        ManualClock().advance(-1.0)


def test_monotonic_clock_never_decreases():
    clock = MonotonicClock()
    first = clock.now()
    assert clock.now() >= first
