from __future__ import annotations

import pytest

from shelters.services.timers import TimerQueue


def test_one_shot_fires_once_when_due(clock) -> None:
    timers = TimerQueue(clock)
    fired = []
    timers.call_later(10, lambda: fired.append(clock()))

    assert timers.run_due() == 0
    clock.advance(10)
    assert timers.run_due() == 1
    clock.advance(10)
    assert timers.run_due() == 0
    assert fired == [1010.0]
    assert timers.pending() == 0


def test_due_timers_fire_in_order_with_ties_by_insertion(clock) -> None:
    timers = TimerQueue(clock)
    order = []
    timers.call_later(5, lambda: order.append("b"))
    timers.call_later(1, lambda: order.append("a"))
    timers.call_later(5, lambda: order.append("c"))

    clock.advance(5)
    assert timers.run_due() == 3
    assert order == ["a", "b", "c"]


def test_cancelled_timer_never_fires(clock) -> None:
    timers = TimerQueue(clock)
    fired = []
    handle = timers.call_later(1, lambda: fired.append(1))
    handle.cancel()

    assert timers.pending() == 0
    clock.advance(5)
    assert timers.run_due() == 0
    assert fired == []


def test_repeating_timer_rearms_until_cancelled(clock) -> None:
    timers = TimerQueue(clock)
    fired = []
    handle = timers.call_every(60, lambda: fired.append(clock()), name="respawn")

    clock.advance(60)
    timers.run_due()
    clock.advance(60)
    timers.run_due()
    assert fired == [1060.0, 1120.0]

    # a long stall fires once, not once per missed interval
    clock.advance(600)
    assert timers.run_due() == 1

    handle.cancel()
    clock.advance(60)
    assert timers.run_due() == 0
    assert len(fired) == 3


def test_call_every_rejects_non_positive_interval(clock) -> None:
    with pytest.raises(ValueError):
        TimerQueue(clock).call_every(0, lambda: None)


def test_callback_errors_are_logged_and_do_not_stop_others(clock, caplog) -> None:
    timers = TimerQueue(clock)
    fired = []

    def explode() -> None:
        raise RuntimeError("boom")

    timers.call_later(1, explode, name="bad")
    timers.call_later(1, lambda: fired.append(True))
    clock.advance(1)

    assert timers.run_due() == 2
    assert fired == [True]
    assert any("timer callback failed name=bad" in record.getMessage() for record in caplog.records)


def test_cancel_all_drops_everything(clock) -> None:
    timers = TimerQueue(clock)
    timers.call_later(1, lambda: None)
    timers.call_every(2, lambda: None)
    timers.cancel_all()

    assert timers.pending() == 0
    clock.advance(10)
    assert timers.run_due() == 0
