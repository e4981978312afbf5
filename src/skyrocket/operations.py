"""Operation registry — named handlers that mutate path-resolved targets.

Built-in operations form a closed set (BuiltinOp). Hosts extend the registry
with their own names, or override a built-in, by registering a handler:

    def toggle(target, operation, engine):
        if isinstance(target, bool):
            return not target

    registry.register("toggle", toggle)

A handler either mutates target in place and returns None, or returns a
replacement value that the engine writes back at the resolved location.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableSequence
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from skyrocket.errors import UnknownOperationError

if TYPE_CHECKING:
    from skyrocket.models import Operation
    from skyrocket.patch import PatchEngine

_MISSING = object()


class BuiltinOp(str, Enum):
    PUSH = "push"
    UNSHIFT = "unshift"
    REMOVE = "remove"
    EDIT = "edit"


class OperationHandler(Protocol):
    def __call__(self, target: Any, operation: Operation, engine: PatchEngine) -> Any: ...


def push(target: Any, operation: Operation, engine: PatchEngine) -> None:
    if isinstance(target, MutableSequence):
        target.append(operation.model)


def unshift(target: Any, operation: Operation, engine: PatchEngine) -> None:
    if isinstance(target, MutableSequence):
        target.insert(0, operation.model)


def manipulate(target: Any, operation: Operation, engine: PatchEngine) -> Any:
    """remove/edit: find the first element matching operation.query and act on it."""
    if not isinstance(target, MutableSequence):
        return target

    found = find(target, operation.query or {})
    if found is None:
        return None

    index, item = found
    operation.context = item
    if operation.op == BuiltinOp.EDIT:
        engine.apply_changes(item, operation)
    elif operation.op == BuiltinOp.REMOVE:
        del target[index]
    return None


def find(items: MutableSequence[Any], query: Mapping[str, Any]) -> tuple[int, Any] | None:
    """First (index, element) whose fields equal every query value, or None.

    Only primitive query values compare meaningfully; a field the element
    lacks never matches.
    """
    for index, item in enumerate(items):
        if all(_same(_field(item, key), expected) for key, expected in query.items()):
            return index, item
    return None


def _field(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(key, _MISSING)
    return getattr(item, key, _MISSING)


def _same(actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return False
    # True == 1 in Python; query matching is type-strict for booleans.
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


DEFAULT_HANDLERS: dict[str, OperationHandler] = {
    BuiltinOp.PUSH.value: push,
    BuiltinOp.UNSHIFT.value: unshift,
    BuiltinOp.REMOVE.value: manipulate,
    BuiltinOp.EDIT.value: manipulate,
}


class OperationRegistry:
    """Mapping from operation name to handler.

    Pre-populated with the built-in handlers unless ``defaults=False``.
    Registration takes effect for every later patch application.
    """

    def __init__(
        self,
        handlers: Mapping[str, OperationHandler] | None = None,
        *,
        defaults: bool = True,
    ) -> None:
        self._handlers: dict[str, OperationHandler] = dict(DEFAULT_HANDLERS) if defaults else {}
        if handlers:
            for name, handler in handlers.items():
                self.register(name, handler)

    def register(self, name: str | BuiltinOp, handler: OperationHandler) -> None:
        """Register or override the handler for ``name``."""
        if not callable(handler):
            raise TypeError(f"Handler for {name!r} must be callable")
        self._handlers[_key(name)] = handler

    def unregister(self, name: str | BuiltinOp) -> None:
        self._handlers.pop(_key(name), None)

    def lookup(self, name: str | BuiltinOp) -> OperationHandler:
        """Handler for ``name``. Raises UnknownOperationError if none is registered."""
        try:
            return self._handlers[_key(name)]
        except KeyError:
            raise UnknownOperationError(_key(name)) from None

    def names(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def copy(self) -> OperationRegistry:
        return OperationRegistry(self._handlers, defaults=False)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and _key(name) in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"OperationRegistry({sorted(self._handlers)!r})"


def _key(name: str | BuiltinOp) -> str:
    return name.value if isinstance(name, BuiltinOp) else name
