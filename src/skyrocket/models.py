"""Value types for server-pushed updates.

Updates arrive from the transport as plain mappings (decoded JSON). They are
coerced into Update/Operation instances on the way in, so the rest of the
package can rely on attributes instead of key lookups. Unknown keys are
ignored.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Intent(str, Enum):
    """What the transport should do with a room."""

    JOIN = "join"
    LEAVE = "leave"

    @property
    def opposite(self) -> Intent:
        return Intent.LEAVE if self is Intent.JOIN else Intent.JOIN


@dataclass(slots=True)
class Operation:
    """A named patch action applied to the target located by ``concern``.

    Attributes:
        op: Registered operation name (``push``, ``edit``, or a host-defined one).
        concern: Dot-separated path to the target inside the view model.
        model: Payload. Inserted by push/unshift, merged onto the match by edit.
        query: Field -> primitive mapping used by remove/edit to find an element.
        operations: Nested operations edit applies onto the matched element.
        context: Set by remove/edit to the element the query matched.

    """

    op: str
    concern: str = ""
    model: Any = None
    query: dict[str, Any] | None = None
    operations: tuple[Operation, ...] = ()
    context: Any = field(default=None, compare=False)

    @classmethod
    def coerce(cls, value: Operation | Mapping[str, Any]) -> Operation:
        if isinstance(value, Operation):
            return value
        return cls(
            op=value.get("op", ""),
            concern=value.get("concern") or "",
            model=value.get("model"),
            query=value.get("query"),
            operations=coerce_operations(value.get("operations")),
        )


@dataclass(frozen=True, slots=True)
class Update:
    """A room-scoped change: field merges plus ordered operations."""

    rooms: tuple[str, ...] = ()
    model: Mapping[str, Any] | None = None
    operations: tuple[Operation, ...] = ()

    @classmethod
    def coerce(cls, value: Update | Mapping[str, Any]) -> Update:
        if isinstance(value, Update):
            return value
        return cls(
            rooms=tuple(value.get("rooms") or ()),
            model=value.get("model"),
            operations=coerce_operations(value.get("operations")),
        )


def coerce_operations(
    values: Iterable[Operation | Mapping[str, Any]] | None,
) -> tuple[Operation, ...]:
    if not values:
        return ()
    return tuple(Operation.coerce(v) for v in values)


def coerce_patch(value: Any) -> Update | Operation:
    """Normalize anything apply_changes accepts into an object with model/operations."""
    if isinstance(value, (Update, Operation)):
        return value
    if isinstance(value, Mapping):
        return Update.coerce(value)
    raise TypeError(f"Expected an Update, Operation or mapping, got {type(value).__name__}")
