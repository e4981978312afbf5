"""Patch engine — applies updates to caller-owned view models in place.

An update carries a shallow ``model`` merge and an ordered list of
operations. Each operation locates its target by a dot-separated concern
path, then a registered handler mutates the target or returns a
replacement for it.

Application is partial on failure: operations applied before an error are
not rolled back. Callers that need all-or-nothing semantics should apply
onto a copy and swap it in themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, MutableMapping, MutableSequence
from dataclasses import dataclass
from typing import Any

from skyrocket.errors import PatchError, RootReplacementError
from skyrocket.models import Operation, coerce_operations, coerce_patch
from skyrocket.operations import OperationRegistry

logger = logging.getLogger("skyrocket.patch")

_MISSING = object()


@dataclass(slots=True)
class Resolution:
    """Where a concern path led.

    ``parent``/``key`` are the last container and segment walked, kept even
    when the segment itself was missing so a replacement can be written back.
    Both are None when the path resolved to the root.
    """

    target: Any
    parent: Any = None
    key: str | None = None

    @property
    def at_root(self) -> bool:
        return self.key is None


def resolve_concern(view_model: Any, concern: str | None) -> Resolution:
    """Walk ``concern`` from ``view_model``, stopping at the first absent value."""
    target = view_model
    parent = None
    key = None
    for segment in (concern or "").split("."):
        if not segment or not _present(target):
            break
        parent, key = target, segment
        target = _get(target, segment)
    return Resolution(target, parent, key)


def _present(value: Any) -> bool:
    # Empty containers are walkable; None, False, 0 and "" are not.
    if value is None or value is _MISSING:
        return False
    if isinstance(value, (Mapping, MutableSequence)):
        return True
    return bool(value)


def _get(container: Any, key: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(key)
    if isinstance(container, MutableSequence):
        try:
            return container[int(key)]
        except (ValueError, IndexError):
            return None
    return getattr(container, key, None)


def _set(container: Any, key: str, value: Any) -> None:
    if isinstance(container, MutableMapping):
        container[key] = value
    elif isinstance(container, MutableSequence):
        try:
            index = int(key)
        except ValueError:
            raise PatchError(f"Cannot write {key!r} into a list") from None
        if index == len(container):
            container.append(value)
        elif -len(container) <= index < len(container):
            container[index] = value
        else:
            raise PatchError(f"List index {index} is past the end ({len(container)} items)")
    else:
        setattr(container, key, value)


def merge(view_model: Any, model: Mapping[str, Any] | None) -> None:
    """Shallow-assign every field of ``model`` onto ``view_model``."""
    if not model:
        return
    if isinstance(view_model, MutableMapping):
        view_model.update(model)
    else:
        for key, value in model.items():
            setattr(view_model, key, value)


class PatchEngine:
    """Applies updates using the handlers in an OperationRegistry."""

    def __init__(self, registry: OperationRegistry | None = None) -> None:
        self.registry = registry if registry is not None else OperationRegistry()

    def apply_changes(self, view_model: Any, update: Any) -> None:
        """Merge ``update.model`` onto ``view_model``, then apply its operations.

        ``update`` may be an Update, an Operation (edit applies an operation
        onto its matched element) or a plain mapping in wire form.
        """
        patch = coerce_patch(update)
        merge(view_model, patch.model)
        self.apply_operations(view_model, patch.operations)

    def apply_operations(
        self,
        view_model: Any,
        operations: Iterable[Operation | Mapping[str, Any]],
    ) -> None:
        for operation in coerce_operations(operations):
            self.apply_operation(view_model, operation)

    def apply_operation(self, view_model: Any, operation: Operation) -> None:
        handler = self.registry.lookup(operation.op)
        where = resolve_concern(view_model, operation.concern)
        result = handler(where.target, operation, self)
        if result is None:
            return
        if where.at_root:
            raise RootReplacementError(operation)
        logger.debug("Operation %r replaced %r", operation.op, operation.concern)
        _set(where.parent, where.key, result)


_default_engine = PatchEngine()


def apply_changes(view_model: Any, update: Any) -> None:
    """Apply ``update`` with the built-in operations only.

    For host-defined operations use Dispatcher.apply_changes, or a
    PatchEngine over your own OperationRegistry.
    """
    _default_engine.apply_changes(view_model, update)
