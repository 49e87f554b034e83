"""One-shot and repeating timers polled from the host tick.

Timers are kept in a heap ordered by due time with an insertion sequence as
tie-breaker.  Cancellation only flags the entry; flagged entries are dropped
lazily when they reach the front of the heap.
"""

from __future__ import annotations

import heapq
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

LOG = logging.getLogger(__name__)


@dataclass(order=True)
class TimerHandle:
    due: float
    _seq: int = field(compare=True, repr=False)
    callback: Callable[[], None] = field(compare=False, repr=False)
    interval: Optional[float] = field(compare=False, default=None)
    name: str = field(compare=False, default="")
    cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        self.cancelled = True


def _default_time() -> float:
    return time.time()


class TimerQueue:
    def __init__(self, time_func: Optional[Callable[[], float]] = None) -> None:
        self._time = time_func or _default_time
        self._queue: List[TimerHandle] = []
        self._seq = 0
        self._lock = threading.Lock()

    def _push(self, delay: float, callback: Callable[[], None], interval: Optional[float], name: str) -> TimerHandle:
        with self._lock:
            self._seq += 1
            handle = TimerHandle(
                due=self._time() + max(0.0, float(delay)),
                _seq=self._seq,
                callback=callback,
                interval=interval,
                name=name,
            )
            heapq.heappush(self._queue, handle)
        return handle

    def call_later(self, delay: float, callback: Callable[[], None], *, name: str = "") -> TimerHandle:
        """Run ``callback`` once, ``delay`` seconds from now."""

        return self._push(delay, callback, None, name)

    def call_every(self, interval: float, callback: Callable[[], None], *, name: str = "") -> TimerHandle:
        """Run ``callback`` every ``interval`` seconds, first after one interval.

        The returned handle stays valid across repetitions; cancelling it stops
        the series.
        """

        interval = float(interval)
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._push(interval, callback, interval, name)

    def _pop_due(self, now: float) -> Optional[TimerHandle]:
        with self._lock:
            while self._queue:
                head = self._queue[0]
                if head.cancelled:
                    heapq.heappop(self._queue)
                    continue
                if head.due > now:
                    return None
                return heapq.heappop(self._queue)
        return None

    def run_due(self) -> int:
        """Fire every timer whose due time has passed; return how many ran.

        Repeating timers fire at most once per call and are re-armed relative
        to their previous due time.
        """

        now = self._time()
        rearm: List[TimerHandle] = []
        fired = 0
        while True:
            handle = self._pop_due(now)
            if handle is None:
                break
            try:
                handle.callback()
            except Exception:
                LOG.exception("timer callback failed name=%s", handle.name)
            fired += 1
            if handle.interval is not None and not handle.cancelled:
                rearm.append(handle)

        if rearm:
            with self._lock:
                for handle in rearm:
                    handle.due = max(handle.due + handle.interval, now)
                    heapq.heappush(self._queue, handle)
        return fired

    def pending(self) -> int:
        with self._lock:
            return sum(1 for handle in self._queue if not handle.cancelled)

    def cancel_all(self) -> None:
        with self._lock:
            for handle in self._queue:
                handle.cancelled = True
            self._queue.clear()
