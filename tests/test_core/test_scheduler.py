# tests/test_core/test_scheduler.py
"""Unit tests for `DeferredScheduler`.
=====================================

The scheduler is driven by `ManualClock`, so due times are exact and no test
sleeps.
"""

from unittest.mock import MagicMock

from errmark.core.Scheduler import DeferredScheduler
from tests.stubs import ManualClock


def test_callback_runs_only_when_due(scheduler: DeferredScheduler, clock: ManualClock) -> None:
    callback = MagicMock()
    scheduler.call_later(3.0, callback, "arg")

    clock.advance(2.9)
    assert scheduler.run_due() == 0
    callback.assert_not_called()

    clock.advance(0.1)
    assert scheduler.run_due() == 1
    callback.assert_called_once_with("arg")


def test_callback_fires_once(scheduler: DeferredScheduler, clock: ManualClock) -> None:
    callback = MagicMock()
    scheduler.call_later(1.0, callback)
    clock.advance(5)

    scheduler.run_due()
    scheduler.run_due()

    assert callback.call_count == 1
    assert len(scheduler) == 0


def test_due_order_then_fifo(scheduler: DeferredScheduler, clock: ManualClock) -> None:
    order: list[str] = []
    scheduler.call_later(2.0, order.append, "late")
    scheduler.call_later(1.0, order.append, "first")
    scheduler.call_later(1.0, order.append, "second")

    clock.advance(2.0)
    scheduler.run_due()

    assert order == ["first", "second", "late"]


def test_cancelled_call_is_skipped(scheduler: DeferredScheduler, clock: ManualClock) -> None:
    callback = MagicMock()
    call = scheduler.call_later(1.0, callback)
    scheduler.cancel(call)

    assert len(scheduler) == 0

    clock.advance(2.0)
    assert scheduler.run_due() == 0
    callback.assert_not_called()


def test_negative_delay_is_immediate(scheduler: DeferredScheduler) -> None:
    callback = MagicMock()
    scheduler.call_later(-1, callback)
    assert scheduler.run_due() == 1


def test_rescheduling_from_callback_waits_for_next_pass(
    scheduler: DeferredScheduler, clock: ManualClock
) -> None:
    """A callback that schedules itself with zero delay is not re-run in the same pass."""
    calls: list[int] = []

    def tick() -> None:
        calls.append(1)
        scheduler.call_later(0, tick)

    scheduler.call_later(0, tick)
    scheduler.run_due()
    assert calls == [1]

    scheduler.run_due()
    assert calls == [1, 1]


def test_failing_callback_is_logged_and_others_run(
    scheduler: DeferredScheduler, clock: ManualClock, caplog
) -> None:
    healthy = MagicMock()
    scheduler.call_later(0, MagicMock(side_effect=RuntimeError("boom"), __name__="broken"))
    scheduler.call_later(0, healthy)

    assert scheduler.run_due() == 2
    healthy.assert_called_once()
    assert "Deferred callback broken failed" in caplog.text


def test_clear_drops_everything(scheduler: DeferredScheduler, clock: ManualClock) -> None:
    callback = MagicMock()
    scheduler.call_later(0, callback)
    scheduler.clear()
    assert scheduler.run_due() == 0
    callback.assert_not_called()


def test_default_clock_is_monotonic() -> None:
    import time

    assert DeferredScheduler().clock is time.monotonic
