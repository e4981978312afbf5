"""Skyrocket error hierarchy.

All skyrocket-specific errors inherit from SkyrocketError for easy catching.
"""

from __future__ import annotations

from typing import Any


class SkyrocketError(Exception):
    """Base error for all skyrocket operations."""


class ConfigError(SkyrocketError):
    """Invalid or missing configuration."""


class PatchError(SkyrocketError):
    """A patch operation could not be applied to a view model."""


class UnknownOperationError(PatchError):
    """An update named an operation that is not registered."""

    def __init__(self, op: str) -> None:
        super().__init__(f"Unknown model change operation: {op!r}")
        self.op = op


class RootReplacementError(PatchError):
    """A handler returned a replacement for the view-model root."""

    def __init__(self, operation: Any) -> None:
        op = getattr(operation, "op", operation)
        super().__init__(f"Operation {op!r} attempted to replace the entire model")
        self.operation = operation
