"""Dispatcher — room subscriptions and delivery of server-pushed updates.

A Dispatcher owns everything that used to be process-wide state: the
ordered reactor list, the room queue and the operation registry. Build one
per application context and pass it around.

Flow:
- scope(container, view_model).subscribe(room, reaction) registers a
  Reactor and queues a join for the room.
- dispatch(batch) routes each update to the reactors of every room it
  lists: apply_changes mutates the reactor's view model, then reaction fires.
- reactor.dispose() unregisters it and queues a leave once no other reactor
  still wants the room.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable

from skyrocket.config import SkyrocketConfig
from skyrocket.models import Intent, Update
from skyrocket.operations import OperationHandler, OperationRegistry
from skyrocket.patch import PatchEngine
from skyrocket.rooms import RoomQueue

logger = logging.getLogger("skyrocket.dispatcher")

ApplyChanges = Callable[[Any, Update], None]
ReactionFn = Callable[[Update], None]


@dataclass(frozen=True, slots=True)
class SubscribeOptions:
    """Per-reactor overrides.

    Attributes:
        apply_changes: Replaces the dispatcher's patch engine for this reactor.

    """

    apply_changes: ApplyChanges | None = None

    @classmethod
    def coerce(cls, value: SubscribeOptions | Mapping[str, Any] | None) -> SubscribeOptions:
        if value is None:
            return cls()
        if isinstance(value, SubscribeOptions):
            return value
        return cls(apply_changes=value.get("apply_changes"))


class Reactor:
    """A registered (view model, room, reaction) subscription."""

    __slots__ = (
        "container",
        "view_model",
        "room",
        "apply_changes",
        "reaction",
        "_dispatcher",
        "_disposed",
    )

    def __init__(
        self,
        dispatcher: Dispatcher,
        container: Any,
        view_model: Any,
        room: str,
        apply_changes: ApplyChanges,
        reaction: ReactionFn,
    ) -> None:
        self._dispatcher = dispatcher
        self.container = container
        self.view_model = view_model
        self.room = room
        self.apply_changes = apply_changes
        self.reaction = reaction
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._dispatcher._remove(self)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"Reactor({self.room!r}, {state})"


class Scope:
    """Subscription API bound to one (container, view model) pair."""

    __slots__ = ("dispatcher", "container", "view_model")

    def __init__(self, dispatcher: Dispatcher, container: Any, view_model: Any) -> None:
        self.dispatcher = dispatcher
        self.container = container
        self.view_model = view_model

    def subscribe(
        self,
        room: str,
        options: SubscribeOptions | Mapping[str, Any] | ReactionFn | None,
        reaction: ReactionFn | None = None,
    ) -> Reactor:
        """Subscribe the bound view model to ``room``.

        Call as ``subscribe(room, reaction)`` or ``subscribe(room, options, reaction)``.
        """
        if reaction is None:
            if not callable(options):
                raise TypeError("subscribe() requires a reaction callback")
            reaction, options = options, None
        return self.dispatcher.subscribe(
            self.container,
            self.view_model,
            room,
            reaction,
            options=SubscribeOptions.coerce(options),
        )

    # Shared dispatcher operations, reachable from any scope.

    def apply_changes(self, view_model: Any, update: Any) -> None:
        self.dispatcher.apply_changes(view_model, update)

    def register_operation(self, name: str, handler: OperationHandler) -> None:
        self.dispatcher.register_operation(name, handler)

    def dispatch(self, batch: Any) -> int:
        return self.dispatcher.dispatch(batch)


class Dispatcher:
    """Owns the reactor registry, the room queue and the patch engine."""

    def __init__(
        self,
        config: SkyrocketConfig,
        *,
        registry: OperationRegistry | None = None,
    ) -> None:
        self.config = config
        self.registry = registry if registry is not None else OperationRegistry(config.operations)
        self.engine = PatchEngine(self.registry)
        self.queue = RoomQueue(config.revolve, config.scheduler)
        self._reactors: list[Reactor] = []
        self._room_counts: dict[str, int] = {}

    @property
    def reactors(self) -> tuple[Reactor, ...]:
        return tuple(self._reactors)

    def scope(self, container: Any, view_model: Any) -> Scope:
        return Scope(self, container, view_model)

    def register_operation(self, name: str, handler: OperationHandler) -> None:
        self.registry.register(name, handler)

    def apply_changes(self, view_model: Any, update: Any) -> None:
        """Apply an update (or wire-form mapping) directly to ``view_model``."""
        self.engine.apply_changes(view_model, update)

    def subscribe(
        self,
        container: Any,
        view_model: Any,
        room: str,
        reaction: ReactionFn,
        *,
        options: SubscribeOptions | None = None,
    ) -> Reactor:
        options = options or SubscribeOptions()
        reactor = Reactor(
            self,
            container,
            view_model,
            room,
            options.apply_changes or self.apply_changes,
            reaction,
        )
        self._reactors.append(reactor)
        self._room_counts[room] = self._room_counts.get(room, 0) + 1
        logger.debug("Subscribed to %r (%d reactor(s))", room, self._room_counts[room])
        self.queue.enqueue(Intent.JOIN, room)
        self.config.joining(reactor)
        return reactor

    def _remove(self, reactor: Reactor) -> None:
        try:
            self._reactors.remove(reactor)
        except ValueError:
            return  # already removed
        remaining = self._room_counts.get(reactor.room, 1) - 1
        if remaining > 0:
            self._room_counts[reactor.room] = remaining
            logger.debug("Unsubscribed from %r (%d reactor(s) left)", reactor.room, remaining)
            return
        self._room_counts.pop(reactor.room, None)
        logger.debug("Unsubscribed from %r, leaving room", reactor.room)
        self.queue.enqueue(Intent.LEAVE, reactor.room)

    def dispatch(self, batch: Mapping[str, Any] | Iterable[Any] | None) -> int:
        """Deliver a batch of updates to matching reactors.

        ``batch`` is the transport payload ``{"updates": [...]}`` or an
        iterable of updates. Order is updates as listed, then rooms as listed
        per update, then reactors in registration order.

        Returns the number of reactor deliveries. Errors from apply_changes
        or a reaction propagate and abort the rest of the batch.
        """
        delivered = 0
        for update in _updates(batch):
            for room in update.rooms:
                for reactor in [r for r in self._reactors if r.room == room]:
                    if reactor.disposed:
                        continue
                    try:
                        reactor.apply_changes(reactor.view_model, update)
                        reactor.reaction(update)
                    except Exception:
                        logger.debug("Update delivery to %r failed", room, exc_info=True)
                        raise
                    delivered += 1
        return delivered

    def flush(self) -> None:
        """Send queued joins/leaves now instead of waiting for the scheduler."""
        self.queue.flush()

    def close(self) -> None:
        """Dispose every reactor and flush the resulting leaves."""
        for reactor in list(self._reactors):
            reactor.dispose()
        self.queue.flush()

    def __repr__(self) -> str:
        return f"Dispatcher(reactors={len(self._reactors)}, rooms={sorted(self._room_counts)!r})"


def _updates(batch: Mapping[str, Any] | Iterable[Any] | None) -> list[Update]:
    if not batch:
        return []
    if isinstance(batch, Mapping):
        batch = batch.get("updates") or ()
    return [Update.coerce(u) for u in batch]
