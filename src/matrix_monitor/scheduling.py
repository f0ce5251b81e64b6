"""Cancellable delayed-task scheduling used by every timed part of the monitor.

Two implementations share the `Scheduler` protocol:
- `AsyncioScheduler` drives real time through `loop.call_later`, and
- `VirtualScheduler` keeps a virtual millisecond clock that callers advance
  explicitly, which keeps headless runs and tests deterministic.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TaskHandle(Protocol):
    """Opaque token for one scheduled (one-shot or repeating) task."""

    def cancel(self) -> None: ...
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Millisecond-based scheduling primitive consumed by the monitor core."""

    def schedule(
        self, delay_ms: int, callback: Callable[..., Any], *args: Any
    ) -> TaskHandle: ...

    def schedule_repeating(
        self, interval_ms: int, callback: Callable[..., Any], *args: Any
    ) -> TaskHandle: ...

    def cancel(self, handle: TaskHandle | None) -> None: ...


class _AsyncioRepeatingTask:
    """Self re-arming `call_later` chain with a single cancel switch."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        interval_s: float,
        callback: Callable[..., Any],
        args: tuple[Any, ...],
    ) -> None:
        self._loop = loop
        self._interval_s = interval_s
        self._callback = callback
        self._args = args
        self._cancelled = False
        self._timer: asyncio.TimerHandle | None = loop.call_later(
            interval_s, self._fire
        )

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Re-arm first so a callback that raises does not end the cycle.
        self._timer = self._loop.call_later(self._interval_s, self._fire)
        self._callback(*self._args)

    def cancel(self) -> None:
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(
        self, delay_ms: int, callback: Callable[..., Any], *args: Any
    ) -> TaskHandle:
        return self.loop.call_later(max(0, delay_ms) / 1000.0, callback, *args)

    def schedule_repeating(
        self, interval_ms: int, callback: Callable[..., Any], *args: Any
    ) -> TaskHandle:
        interval_s = max(1, interval_ms) / 1000.0
        return _AsyncioRepeatingTask(self.loop, interval_s, callback, args)

    def cancel(self, handle: TaskHandle | None) -> None:
        if handle is not None:
            handle.cancel()


class VirtualTask:
    """Task entry owned by `VirtualScheduler`."""

    __slots__ = ("due_ms", "interval_ms", "callback", "args", "_cancelled", "fired")

    def __init__(
        self,
        due_ms: int,
        callback: Callable[..., Any],
        args: tuple[Any, ...],
        interval_ms: int | None = None,
    ) -> None:
        self.due_ms = due_ms
        self.interval_ms = interval_ms
        self.callback = callback
        self.args = args
        self._cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not self._cancelled and (not self.fired or self.interval_ms is not None)


class VirtualScheduler:
    """Deterministic scheduler driven by an explicit virtual clock.

    Tasks fire in (due time, insertion order). Tasks scheduled by a callback
    while the clock is advancing fire within the same `advance` call when
    they fall due before its target time.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now = start_ms
        self._queue: list[tuple[int, int, VirtualTask]] = []
        self._sequence = itertools.count()

    @property
    def now(self) -> int:
        return self._now

    @property
    def pending_count(self) -> int:
        return sum(1 for _due, _seq, task in self._queue if task.active)

    def pending_tasks(self) -> list[VirtualTask]:
        return [task for _due, _seq, task in sorted(self._queue) if task.active]

    def schedule(
        self, delay_ms: int, callback: Callable[..., Any], *args: Any
    ) -> VirtualTask:
        task = VirtualTask(self._now + max(0, delay_ms), callback, args)
        self._push(task)
        return task

    def schedule_repeating(
        self, interval_ms: int, callback: Callable[..., Any], *args: Any
    ) -> VirtualTask:
        interval = max(1, interval_ms)
        task = VirtualTask(self._now + interval, callback, args, interval_ms=interval)
        self._push(task)
        return task

    def cancel(self, handle: TaskHandle | None) -> None:
        if handle is not None:
            handle.cancel()

    def advance(self, delta_ms: int) -> int:
        """Move the clock forward, firing due tasks. Returns tasks fired."""
        target = self._now + max(0, delta_ms)
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _seq, task = heapq.heappop(self._queue)
            if task.cancelled():
                continue
            self._now = due
            if task.interval_ms is not None:
                task.due_ms = due + task.interval_ms
                self._push(task)
            else:
                task.fired = True
            task.callback(*task.args)
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, limit_ms: int = 600_000) -> int:
        """Fire one-shot tasks until none remain or `limit_ms` elapses.

        Repeating tasks keep firing while one-shot work remains, but do not
        by themselves keep the loop alive.
        """
        deadline = self._now + limit_ms
        fired = 0
        while True:
            one_shot = [
                task
                for _due, _seq, task in self._queue
                if task.active and task.interval_ms is None
            ]
            if not one_shot:
                return fired
            next_due = min(task.due_ms for task in one_shot)
            if next_due > deadline:
                logger.debug("Virtual scheduler stopped at limit %sms", limit_ms)
                return fired
            fired += self.advance(next_due - self._now)

    def _push(self, task: VirtualTask) -> None:
        heapq.heappush(self._queue, (task.due_ms, next(self._sequence), task))
