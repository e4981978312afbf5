"""Skyrocket: room-scoped view-model synchronization for Python."""

from importlib.metadata import version as _version

__version__ = _version("skyrocket")

from skyrocket.errors import (
    ConfigError,
    PatchError,
    RootReplacementError,
    SkyrocketError,
    UnknownOperationError,
)
from skyrocket.models import Intent, Operation, Update
from skyrocket.operations import BuiltinOp, OperationRegistry
from skyrocket.patch import PatchEngine, apply_changes, resolve_concern
from skyrocket.scheduling import AsyncioScheduler, ManualScheduler, TimerScheduler
from skyrocket.rooms import RoomQueue
from skyrocket.config import SkyrocketConfig, configure
from skyrocket.dispatcher import Dispatcher, Reactor, Scope, SubscribeOptions
# textual NOT auto-imported — opt-in only

__all__ = [
    "AsyncioScheduler",
    "BuiltinOp",
    "ConfigError",
    "Dispatcher",
    "Intent",
    "ManualScheduler",
    "Operation",
    "OperationRegistry",
    "PatchEngine",
    "PatchError",
    "Reactor",
    "RootReplacementError",
    "RoomQueue",
    "Scope",
    "SkyrocketConfig",
    "SkyrocketError",
    "SubscribeOptions",
    "TimerScheduler",
    "UnknownOperationError",
    "Update",
    "apply_changes",
    "configure",
    "resolve_concern",
]
