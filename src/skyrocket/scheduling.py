"""Deferred-flush strategies for the room queue.

A scheduler is any callable taking a zero-argument callback and returning a
handle with ``cancel()``. The queue cancels and reschedules on every enqueue,
so only the last scheduled callback of a burst runs.

    queue = RoomQueue(revolve, scheduler=TimerScheduler())       # threads
    queue = RoomQueue(revolve, scheduler=AsyncioScheduler(loop))  # event loop
    queue = RoomQueue(revolve, scheduler=ManualScheduler())       # explicit ticks
"""

from __future__ import annotations

import asyncio
import threading
from typing import Callable, Protocol

Callback = Callable[[], None]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def __call__(self, callback: Callback) -> Cancellable: ...


class _ManualHandle:
    __slots__ = ("callback", "cancelled")

    def __init__(self, callback: Callback) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Holds callbacks until run_pending() is called.

    Useful for tests and for hosts that drive their own tick.
    """

    def __init__(self) -> None:
        self._handles: list[_ManualHandle] = []

    def __call__(self, callback: Callback) -> _ManualHandle:
        handle = _ManualHandle(callback)
        self._handles = [h for h in self._handles if not h.cancelled]
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not been cancelled."""
        return sum(1 for h in self._handles if not h.cancelled)

    def run_pending(self) -> int:
        """Run every live callback. Returns how many ran."""
        # Snapshot and clear — callbacks may schedule new ones.
        batch = self._handles
        self._handles = []
        ran = 0
        for handle in batch:
            if not handle.cancelled:
                handle.cancelled = True
                handle.callback()
                ran += 1
        return ran


class TimerScheduler:
    """Runs the callback on a daemon threading.Timer after ``delay`` seconds."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay

    def __call__(self, callback: Callback) -> threading.Timer:
        t = threading.Timer(self.delay, callback)
        t.daemon = True
        t.start()
        return t


class AsyncioScheduler:
    """Runs the callback on an asyncio event loop.

    With no explicit loop, the running loop at schedule time is used.
    Zero delay means the next loop iteration (``call_soon``).
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None, delay: float = 0.0) -> None:
        self._loop = loop
        self.delay = delay

    def __call__(self, callback: Callback) -> asyncio.Handle:
        loop = self._loop or asyncio.get_running_loop()
        if self.delay > 0:
            return loop.call_later(self.delay, callback)
        return loop.call_soon(callback)
