"""Skyrocket configuration.

SkyrocketConfig collects the external hooks a Dispatcher calls, frozen
after creation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from skyrocket.errors import ConfigError

if TYPE_CHECKING:
    from skyrocket.dispatcher import Dispatcher
    from skyrocket.operations import OperationHandler
    from skyrocket.rooms import Revolve
    from skyrocket.scheduling import Scheduler


def _noop(reactor: Any) -> None:
    pass


@dataclass(frozen=True, slots=True)
class SkyrocketConfig:
    """Configuration for a Dispatcher.

    Attributes:
        revolve: Transport hook, called as ``revolve(intent, rooms)`` with
            ``"join"`` or ``"leave"`` and the coalesced room list. Required.
        joining: Called synchronously with every new reactor. Defaults to a no-op.
        scheduler: Deferred-flush strategy for the room queue. None means a
            zero-delay TimerScheduler.
        operations: Extra operation handlers registered on top of the built-ins.

    """

    revolve: Revolve
    joining: Callable[[Any], None] = _noop
    scheduler: Scheduler | None = None
    operations: Mapping[str, OperationHandler] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not callable(self.revolve):
            raise ConfigError("revolve must be a callable taking (intent, rooms)")
        if self.joining is None:
            object.__setattr__(self, "joining", _noop)
        elif not callable(self.joining):
            raise ConfigError("joining must be callable")
        if self.scheduler is not None and not callable(self.scheduler):
            raise ConfigError("scheduler must be callable")
        for name, handler in self.operations.items():
            if not callable(handler):
                raise ConfigError(f"operation handler {name!r} must be callable")


def configure(
    revolve: Revolve | None = None,
    *,
    joining: Callable[[Any], None] | None = None,
    scheduler: Scheduler | None = None,
    operations: Mapping[str, OperationHandler] | None = None,
) -> Dispatcher:
    """Build a Dispatcher from keyword hooks.

    Usage:
        rocket = skyrocket.configure(revolve=socket_client.revolve)
        scope = rocket.scope(widget, view_model)
        scope.subscribe("room:42", lambda update: widget.refresh())
    """
    from skyrocket.dispatcher import Dispatcher

    if revolve is None:
        raise ConfigError("configure() requires a revolve(intent, rooms) hook")
    config = SkyrocketConfig(
        revolve=revolve,
        joining=joining,
        scheduler=scheduler,
        operations=dict(operations or {}),
    )
    return Dispatcher(config)
