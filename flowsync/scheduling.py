"""Timers and debouncing on an injectable scheduler.

Production code schedules callbacks on the running asyncio loop
(:class:`AsyncioScheduler`). Tests use :class:`ManualScheduler`, whose logical
clock only moves when :meth:`ManualScheduler.advance` is called.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Callable, Dict, Generic, Hashable, List, Optional, Protocol, Tuple, TypeVar

logger = logging.getLogger(__name__)

KeyT = TypeVar("KeyT", bound=Hashable)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Prevent the callback from running if it has not run yet."""


class Scheduler(Protocol):
    """Runs callbacks after a delay measured in seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def time(self) -> float:
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)

    def time(self) -> float:
        return self.loop.time()


class _ManualTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler driven by a logical clock."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, _ManualTimer]] = []

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every callback that becomes due.

        Returns the number of callbacks run.
        """

        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = when
            timer.callback()
            ran += 1
        self._now = target
        return ran


class Debouncer(Generic[KeyT]):
    """Coalesce bursts of triggers per key into one delayed callback.

    A trigger for a key with a pending timer resets that timer instead of
    stacking a second one.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        delay: float,
        callback: Callable[[KeyT], None],
    ) -> None:
        self._scheduler = scheduler
        self._delay = delay
        self._callback = callback
        self._timers: Dict[KeyT, TimerHandle] = {}

    @property
    def delay(self) -> float:
        return self._delay

    def trigger(self, key: KeyT) -> None:
        existing = self._timers.pop(key, None)
        if existing is not None:
            existing.cancel()
        self._timers[key] = self._scheduler.call_later(
            self._delay, lambda: self._fire(key)
        )

    def is_pending(self, key: KeyT) -> bool:
        return key in self._timers

    def pending_keys(self) -> List[KeyT]:
        return list(self._timers)

    def cancel(self, key: KeyT) -> bool:
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def _fire(self, key: KeyT) -> None:
        self._timers.pop(key, None)
        try:
            self._callback(key)
        except Exception as e:
            logger.error(f"Debounced callback for {key!r} failed: {e}")
            raise
