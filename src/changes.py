"""
Change Application Engine.

A single gesture on the canvas (a multi-node drag, a box selection, pressing
Delete on several items) produces a batch of change descriptors. This module
folds one batch into one store transition, so observers never see a half
applied gesture.

Ordering rules:
- Descriptors are applied in the order received.
- A descriptor whose id was removed earlier in the same batch (or never
  existed) is skipped, not an error.
- Connection descriptors are applied after everything else in the batch.

Descriptor JSON, as sent by the front-end:
    {"type": "position",   "kind": "node", "id": "...", "position": {"x": 0, "y": 0}, "dragging": false}
    {"type": "dimensions", "kind": "node", "id": "...", "width": 120, "height": 80}
    {"type": "select",     "kind": "node" | "edge", "id": "...", "selected": true}
    {"type": "remove",     "kind": "node" | "edge", "id": "..."}
    {"type": "connect",    "source": "...", "target": "...", "sourceHandle": "true"}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from src.errors import InvalidReference
from src.graph_store import GraphStore
from src.models import Edge, Position

logger = logging.getLogger(__name__)


@dataclass
class NodePositionChange:
    id: str
    position: Position
    dragging: bool = False


@dataclass
class NodeDimensionsChange:
    id: str
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass
class NodeSelectChange:
    id: str
    selected: bool


@dataclass
class NodeRemoveChange:
    id: str


@dataclass
class EdgeSelectChange:
    id: str
    selected: bool


@dataclass
class EdgeRemoveChange:
    id: str


@dataclass
class ConnectionChange:
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None


Change = Union[
    NodePositionChange,
    NodeDimensionsChange,
    NodeSelectChange,
    NodeRemoveChange,
    EdgeSelectChange,
    EdgeRemoveChange,
    ConnectionChange,
]


@dataclass
class ChangeResult:
    """Outcome of one batch."""
    applied: List[Change] = field(default_factory=list)
    skipped: List[Change] = field(default_factory=list)
    created_edges: List[Edge] = field(default_factory=list)


def change_from_dict(raw: Dict[str, Any]) -> Change:
    """
    Parse a front-end change descriptor.

    Raises:
        ValueError: for unknown descriptor types or kinds.
    """
    change_type = raw.get("type")
    kind = raw.get("kind", "node")

    if change_type == "connect":
        return ConnectionChange(
            source=raw.get("source"),
            target=raw.get("target"),
            source_handle=raw.get("sourceHandle"),
            target_handle=raw.get("targetHandle"),
        )
    if kind not in ("node", "edge"):
        raise ValueError(f"Unknown change kind: {kind!r}")

    if change_type == "position" and kind == "node":
        return NodePositionChange(
            id=raw["id"],
            position=Position.from_dict(raw.get("position")),
            dragging=bool(raw.get("dragging", False)),
        )
    if change_type == "dimensions" and kind == "node":
        return NodeDimensionsChange(id=raw["id"], width=raw.get("width"), height=raw.get("height"))
    if change_type == "select":
        cls = NodeSelectChange if kind == "node" else EdgeSelectChange
        return cls(id=raw["id"], selected=bool(raw.get("selected", False)))
    if change_type == "remove":
        cls = NodeRemoveChange if kind == "node" else EdgeRemoveChange
        return cls(id=raw["id"])
    raise ValueError(f"Unknown change type: {change_type!r} for {kind}")


def _apply_one(store: GraphStore, change: Change) -> bool:
    if isinstance(change, NodePositionChange):
        return store.move_node(change.id, change.position)
    if isinstance(change, NodeDimensionsChange):
        return store.resize_node(change.id, change.width, change.height)
    if isinstance(change, NodeSelectChange):
        return store.select_node(change.id, change.selected)
    if isinstance(change, NodeRemoveChange):
        return store.remove_node(change.id)
    if isinstance(change, EdgeSelectChange):
        return store.select_edge(change.id, change.selected)
    if isinstance(change, EdgeRemoveChange):
        return store.remove_edge(change.id)
    raise TypeError(f"Unsupported change: {change!r}")


def apply_changes(store: GraphStore, changes: Iterable[Union[Change, Dict[str, Any]]]) -> ChangeResult:
    """
    Apply a batch of changes to the store as one transition.

    Dict descriptors are parsed with change_from_dict first, so a bad
    descriptor fails the whole batch before anything is touched.
    """
    parsed = [change_from_dict(c) if isinstance(c, dict) else c for c in changes]
    connections = [c for c in parsed if isinstance(c, ConnectionChange)]
    others = [c for c in parsed if not isinstance(c, ConnectionChange)]
    result = ChangeResult()

    with store.transaction():
        for change in others:
            if _apply_one(store, change):
                result.applied.append(change)
            else:
                logger.debug(f"Skipped change for missing id: {change}")
                result.skipped.append(change)

        for change in connections:
            try:
                edge = store.connect(change.source, change.target,
                                     change.source_handle, change.target_handle)
            except InvalidReference as e:
                logger.warning(f"Skipped connection {change.source} -> {change.target}: {e}")
                result.skipped.append(change)
                continue
            result.applied.append(change)
            result.created_edges.append(edge)

    return result
