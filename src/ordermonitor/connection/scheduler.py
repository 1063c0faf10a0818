"""Timer scheduling for reconnect backoff.

In production the running asyncio event loop is the scheduler: its
``call_later`` already returns a cancellable handle. Tests use
``VirtualScheduler`` and advance time by hand.
"""

import heapq
import itertools
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], object]) -> TimerHandle: ...


class VirtualTimer:
    def __init__(self, when: float, callback: Callable[[], object]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """Deterministic scheduler driven by ``advance()``.

    Usage:
        scheduler = VirtualScheduler()
        scheduler.call_later(3.0, retry)
        scheduler.advance(3.0)  # runs retry
    """

    def __init__(self) -> None:
        self.time = 0.0
        self._queue: list[tuple[float, int, VirtualTimer]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], object]) -> VirtualTimer:
        timer = VirtualTimer(self.time + delay, callback)
        heapq.heappush(self._queue, (timer.when, next(self._counter), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> int:
        """Move time forward, running due callbacks in order. Returns how many ran."""
        deadline = self.time + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            when, _, timer = heapq.heappop(self._queue)
            self.time = when
            if timer.cancelled:
                continue
            timer.callback()
            ran += 1
        self.time = deadline
        return ran
