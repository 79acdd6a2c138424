# errmark/core/Scheduler.py
"""Scheduler Module
==================
A fire-once deferred callback scheduler for a single-threaded event loop.

Nothing here runs on its own: callbacks are queued with `call_later()` and
executed by `run_due()`, which the viewer's main loop calls on every tick.
Between scheduling and firing the loop keeps handling input, so a scheduled
callback is a deferred action rather than a blocking wait.

The time source is injectable, which lets tests drive the clock by hand.
"""

import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass(order=True)
class ScheduledCall:
    """A pending callback. Ordered by due time, then by scheduling order."""

    due: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple[Any, ...] = field(default=(), compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class DeferredScheduler:
    """Min-heap of `ScheduledCall` objects polled by the host loop.

    Attributes:
        clock (Callable[[], float]): Monotonic time source in seconds.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self.clock: Callable[[], float] = clock or time.monotonic
        self._queue: list[ScheduledCall] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return sum(1 for call in self._queue if not call.cancelled)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ScheduledCall:
        """Schedule `callback(*args)` to run once `delay` seconds from now."""
        call = ScheduledCall(
            due=self.clock() + max(0.0, float(delay)),
            seq=next(self._counter),
            callback=callback,
            args=args,
        )
        heapq.heappush(self._queue, call)
        logging.debug("Scheduled %s in %.2fs", getattr(callback, "__name__", callback), delay)
        return call

    def cancel(self, call: ScheduledCall) -> None:
        call.cancel()

    def run_due(self, now: Optional[float] = None) -> int:
        """Run every callback whose due time has passed.

        Callbacks scheduled while running are not run in the same pass.
        A failing callback is logged and does not stop the others.

        Returns:
            int: Number of callbacks executed.
        """
        if now is None:
            now = self.clock()

        ready: list[ScheduledCall] = []
        while self._queue and self._queue[0].due <= now:
            call = heapq.heappop(self._queue)
            if not call.cancelled:
                ready.append(call)

        for call in ready:
            try:
                call.callback(*call.args)
            except Exception:
                logging.exception(
                    "Deferred callback %s failed", getattr(call.callback, "__name__", call.callback)
                )
        return len(ready)

    def clear(self) -> None:
        self._queue.clear()
