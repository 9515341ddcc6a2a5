"""
Clock/timer capability used by the reminder scheduler.

    now()                      -> naive local datetime
    after(delay_ms, callback)  -> handle
    cancel(handle)             -> None; the callback will not run afterwards

AsyncioClock runs callbacks on a single event loop, so cancel() is
synchronous with respect to every other scheduler call. ManualClock is a
virtual clock for tests and dry runs.
"""
import asyncio
import heapq
import itertools
from datetime import datetime, timedelta
from typing import Callable, List, Optional


class AsyncioClock:
    """Wall clock + ``loop.call_later`` timers."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> datetime:
        return datetime.now()

    def after(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay_ms, 0) / 1000, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class _ManualTimer:
    __slots__ = ("due", "seq", "callback", "cancelled")

    def __init__(self, due: datetime, seq: int, callback: Callable[[], None]):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def __lt__(self, other: "_ManualTimer") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)


class ManualClock:
    """
    Virtual clock. Time only moves when advance()/advance_to() is called;
    due callbacks then run in trigger order, each seeing now() == its due time.
    """

    def __init__(self, start: datetime):
        self._now = start
        self._timers: List[_ManualTimer] = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self._now

    def after(self, delay_ms: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(
            self._now + timedelta(milliseconds=max(delay_ms, 0)),
            next(self._seq),
            callback,
        )
        heapq.heappush(self._timers, timer)
        return timer

    def cancel(self, handle: _ManualTimer) -> None:
        handle.cancelled = True

    def advance(self, **delta) -> int:
        """Advance by a timedelta given as keyword args. Returns callbacks fired."""
        return self.advance_to(self._now + timedelta(**delta))

    def advance_to(self, target: datetime) -> int:
        fired = 0
        while self._timers and self._timers[0].due <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = timer.due
            timer.callback()
            fired += 1
        self._now = max(self._now, target)
        return fired

    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def due_times(self) -> List[datetime]:
        return sorted(t.due for t in self._timers if not t.cancelled)
