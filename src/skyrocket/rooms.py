"""Room queue — coalesces join/leave intents into batched transport calls.

Enqueues are synchronous and cheap; the transport (``revolve``) is only
called from flush(), which the scheduler runs once per burst. Within a burst
the last intent for a room wins, so a join immediately followed by a leave
never reaches the transport as a join.

Leaves are flushed before joins so the transport never sees a room joined
twice while a leave for it is still pending.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from skyrocket.models import Intent
from skyrocket.scheduling import Cancellable, Scheduler, TimerScheduler

logger = logging.getLogger("skyrocket.rooms")

Revolve = Callable[[str, list[str]], None]


class RoomQueue:
    """Pending join/leave sets plus the membership they are filtered against.

    Invariant: a room is never pending for both intents at once.
    Thread-safe: state is guarded by a re-entrant lock so a timer-thread
    flush cannot interleave with caller-thread enqueues.
    """

    def __init__(self, revolve: Revolve, scheduler: Scheduler | None = None) -> None:
        self._revolve = revolve
        self._schedule = scheduler if scheduler is not None else TimerScheduler()
        # dicts as insertion-ordered sets
        self._pending: dict[Intent, dict[str, None]] = {Intent.JOIN: {}, Intent.LEAVE: {}}
        self._joined: set[str] = set()
        self._handle: Cancellable | None = None
        self._lock = threading.RLock()

    @property
    def joined(self) -> frozenset[str]:
        """Rooms the queue believes the transport has joined."""
        with self._lock:
            return frozenset(self._joined)

    @property
    def is_scheduled(self) -> bool:
        return self._handle is not None

    def pending(self, intent: Intent | str) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._pending[Intent(intent)])

    def enqueue(self, intent: Intent | str, room: str) -> None:
        """Queue ``room`` for ``intent`` and (re)schedule the flush."""
        intent = Intent(intent)
        with self._lock:
            self._pending[intent.opposite].pop(room, None)
            queue = self._pending[intent]
            queue.pop(room, None)
            queue[room] = None
            self._reschedule()

    def flush(self) -> None:
        """Send pending leaves, then pending joins, through the transport."""
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None
            self.flush_queue(Intent.LEAVE)
            self.flush_queue(Intent.JOIN)

    def flush_queue(self, intent: Intent | str) -> list[str]:
        """Flush one intent. Returns the rooms handed to the transport.

        Rooms whose membership already matches the intent are dropped
        without a transport call. If the transport raises, the flushable
        rooms and membership are left as they were so the next flush retries.
        Rooms the transport enqueues while it runs stay queued.
        """
        intent = Intent(intent)
        joining = intent is Intent.JOIN
        with self._lock:
            queue = self._pending[intent]
            flushable = [room for room in queue if (room in self._joined) != joining]
            redundant = [room for room in queue if (room in self._joined) == joining]
            if redundant:
                logger.debug("Dropping %d redundant %s request(s)", len(redundant), intent.value)
                for room in redundant:
                    del queue[room]
            if not flushable:
                return []

            logger.debug("Flushing %s for %d room(s)", intent.value, len(flushable))
            self._revolve(intent.value, list(flushable))
            if joining:
                self._joined.update(flushable)
            else:
                self._joined.difference_update(flushable)
            for room in flushable:
                queue.pop(room, None)
            return flushable

    def cancel(self) -> None:
        """Drop the scheduled flush without running it. Pending rooms stay queued."""
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None

    def _reschedule(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._schedule(self.flush)

    def __repr__(self) -> str:
        return (
            f"RoomQueue(join={list(self._pending[Intent.JOIN])!r}, "
            f"leave={list(self._pending[Intent.LEAVE])!r}, joined={sorted(self._joined)!r})"
        )
