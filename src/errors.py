"""
Error kinds raised by the flow editing engine.

Operations against ids that no longer exist are NOT errors: removals and
updates silently do nothing in that case, because a batch of UI changes may
legitimately reference an entity an earlier change already removed.
"""

from typing import Any, Iterable


class FlowError(Exception):
    """Base class for all recoverable editor errors."""


class InvalidReference(FlowError):
    """A connection was requested against node ids that are not in the graph."""

    def __init__(self, missing: Iterable[Any]):
        self.missing = list(missing)
        super().__init__(f"Unknown node id(s): {', '.join(map(repr, self.missing))}")


class MalformedDocument(FlowError):
    """Imported or restored content is not a flow document."""


class EditStateError(FlowError):
    """An inline editor was driven through a transition it does not have."""
