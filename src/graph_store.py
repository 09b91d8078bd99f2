"""
Graph State Store for the flow editor.

Owns the authoritative node and edge collections and is the only place that
mutates them. The presentation layer reads snapshots and calls the mutation
methods below; it never edits the lists directly.

Contract notes:
- remove/update/move against an unknown id is a silent no-op (returns False).
- remove_node does NOT remove incident edges. Use remove_node_cascade for that.
- connect validates both endpoints and raises InvalidReference. Edges that
  arrive through replace_all (import, load) are not validated.
- Observers are notified once per logical change. Mutations made inside
  transaction() are grouped into a single notification, and rolled back
  together if the block raises.
"""

import copy
import logging
import random
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

import networkx as nx

from src.constants import SPAWN_HEIGHT, SPAWN_MIN_X, SPAWN_MIN_Y, SPAWN_WIDTH
from src.errors import InvalidReference
from src.models import (
    ConditionalHandle,
    Edge,
    Node,
    NodeVariant,
    PathType,
    Position,
    make_node,
)

logger = logging.getLogger(__name__)

PositionLike = Union[Position, Tuple[float, float]]


class GraphSnapshot(NamedTuple):
    """Detached copy of the store contents, safe to hand to renderers and the codec."""
    nodes: List[Node]
    edges: List[Edge]


Listener = Callable[[GraphSnapshot], None]


def _as_position(value: PositionLike) -> Position:
    if isinstance(value, Position):
        return Position(value.x, value.y)
    x, y = value
    return Position(x, y)


def _id_set(ids: Iterable[Any]) -> Set[str]:
    # Imported documents can carry any JSON value in an id slot
    return {i for i in ids if isinstance(i, str)}


def _is_member(value: Any, ids: Set[str]) -> bool:
    return isinstance(value, str) and value in ids


class GraphStore:
    """Ordered node and edge collections with an atomic mutation API."""

    def __init__(
        self,
        nodes: Optional[Iterable[Node]] = None,
        edges: Optional[Iterable[Edge]] = None,
        rng: Optional[random.Random] = None,
        path_type: Union[PathType, str] = PathType.BEZIER,
        animated: bool = False,
    ):
        self._nodes: List[Node] = copy.deepcopy(list(nodes or []))
        self._edges: List[Edge] = copy.deepcopy(list(edges or []))
        self._rng = rng or random.Random()
        self.default_path_type = PathType.parse(path_type)
        self.default_animated = animated
        self._listeners: List[Listener] = []
        self._depth = 0
        self._dirty = False

    # --- Observers ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback receiving a snapshot after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        if self._depth:
            self._dirty = True
            return
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    @contextmanager
    def transaction(self) -> Iterator["GraphStore"]:
        """
        Group mutations into one transition.

        Observers see a single notification when the outermost block exits.
        If the block raises, the store is restored to its state on entry.
        """
        saved = None
        if self._depth == 0:
            saved = (copy.deepcopy(self._nodes), copy.deepcopy(self._edges),
                     self.default_path_type, self.default_animated)
        self._depth += 1
        try:
            yield self
        except Exception:
            if saved is not None:
                self._nodes, self._edges, self.default_path_type, self.default_animated = saved
                self._dirty = False
                logger.debug("Transaction rolled back")
            raise
        finally:
            self._depth -= 1
        if self._depth == 0 and self._dirty:
            self._dirty = False
            self._notify()

    # --- Lookup ---

    def _node_index(self, node_id: str) -> Optional[int]:
        return next((i for i, n in enumerate(self._nodes) if n.id == node_id), None)

    def _edge_index(self, edge_id: str) -> Optional[int]:
        return next((i for i, e in enumerate(self._edges) if e.id == edge_id), None)

    def _node(self, node_id: str) -> Optional[Node]:
        index = self._node_index(node_id)
        return None if index is None else self._nodes[index]

    def _edge(self, edge_id: str) -> Optional[Edge]:
        index = self._edge_index(edge_id)
        return None if index is None else self._edges[index]

    def find_node(self, node_id: str) -> Optional[Node]:
        node = self._node(node_id)
        return copy.deepcopy(node) if node else None

    def find_edge(self, edge_id: str) -> Optional[Edge]:
        edge = self._edge(edge_id)
        return copy.deepcopy(edge) if edge else None

    def node_ids(self) -> List[str]:
        return [n.id for n in self._nodes]

    def edge_ids(self) -> List[str]:
        return [e.id for e in self._edges]

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(copy.deepcopy(self._nodes), copy.deepcopy(self._edges))

    @staticmethod
    def _new_id(prefix: str, taken: Iterable[str]) -> str:
        taken = _id_set(taken)
        while True:
            candidate = f"{prefix}-{uuid.uuid4().hex[:8]}"
            if candidate not in taken:
                return candidate

    def _spawn_position(self) -> Position:
        return Position(
            self._rng.random() * SPAWN_WIDTH + SPAWN_MIN_X,
            self._rng.random() * SPAWN_HEIGHT + SPAWN_MIN_Y,
        )

    # --- Node operations ---

    def add_node(
        self,
        variant: Union[NodeVariant, str],
        position: Optional[PositionLike] = None,
        label: Optional[str] = None,
        node_id: Optional[str] = None,
    ) -> Node:
        """
        Append a new node and return a copy of it.

        Args:
            variant: Node variant (or its name)
            position: Canvas position; a random spot in the spawn area if omitted
            label: Initial label; default_label(variant) if omitted
            node_id: Explicit id, only honoured if it is not already taken
        """
        variant = NodeVariant.parse(variant)
        if node_id is None or self._node(node_id) is not None:
            node_id = self._new_id(variant.value, self.node_ids())
        pos = self._spawn_position() if position is None else _as_position(position)
        node = make_node(variant, node_id, pos, label)
        self._nodes.append(node)
        logger.info(f"Added {variant.value} node {node_id}")
        self._changed()
        return copy.deepcopy(node)

    def remove_node(self, node_id: str) -> bool:
        """Remove a node. Edges referencing it are left in place."""
        index = self._node_index(node_id)
        if index is None:
            logger.debug(f"remove_node: {node_id} not present")
            return False
        del self._nodes[index]
        self._changed()
        return True

    def remove_node_cascade(self, node_id: str) -> List[Edge]:
        """Remove a node together with every edge touching it. Returns the removed edges."""
        with self.transaction():
            removed = [e for e in self._edges if node_id in (e.source, e.target)]
            if not self.remove_node(node_id) and not removed:
                return []
            self._edges = [e for e in self._edges if node_id not in (e.source, e.target)]
            if removed:
                self._changed()
        return copy.deepcopy(removed)

    def update_node_data(self, node_id: str, patch: Dict[str, Any]) -> bool:
        node = self._node(node_id)
        if node is None:
            logger.debug(f"update_node_data: {node_id} not present")
            return False
        node.data = node.data.merged(patch)
        self._changed()
        return True

    def move_node(self, node_id: str, position: PositionLike) -> bool:
        node = self._node(node_id)
        if node is None:
            return False
        node.position = _as_position(position)
        self._changed()
        return True

    def resize_node(self, node_id: str, width: Optional[float], height: Optional[float]) -> bool:
        node = self._node(node_id)
        if node is None:
            return False
        node.width = width
        node.height = height
        self._changed()
        return True

    def select_node(self, node_id: str, selected: bool) -> bool:
        node = self._node(node_id)
        if node is None:
            return False
        node.selected = selected
        self._changed()
        return True

    def apply_positions(self, positions: Sequence[PositionLike]) -> None:
        """Assign positions index-wise, as produced by the layout engine."""
        if len(positions) != len(self._nodes):
            raise ValueError(f"Expected {len(self._nodes)} positions, got {len(positions)}")
        for node, position in zip(self._nodes, positions):
            node.position = _as_position(position)
        self._changed()

    # --- Edge operations ---

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Edge:
        """
        Create an edge between two current nodes using the default path style.

        Raises:
            InvalidReference: if either endpoint is not a node in the store.
        """
        known = _id_set(self.node_ids())
        missing: List[Any] = []
        for nid in (source, target):
            if not _is_member(nid, known) and nid not in missing:
                missing.append(nid)
        if missing:
            raise InvalidReference(missing)
        edge = Edge(
            id=self._new_id("edge", self.edge_ids()),
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
            path_type=self.default_path_type,
            animated=self.default_animated,
        )
        self._edges.append(edge)
        logger.info(f"Connected {source} -> {target} ({edge.id})")
        self._changed()
        return copy.deepcopy(edge)

    def remove_edge(self, edge_id: str) -> bool:
        index = self._edge_index(edge_id)
        if index is None:
            logger.debug(f"remove_edge: {edge_id} not present")
            return False
        del self._edges[index]
        self._changed()
        return True

    def update_edge_data(self, edge_id: str, patch: Dict[str, Any]) -> bool:
        """
        Merge ``patch`` into an edge's data.

        An "edgeType" key sets the edge's path type, the same field the
        document stores under data.edgeType.

        Raises:
            ValueError: if "edgeType" is not a known path type.
        """
        edge = self._edge(edge_id)
        if edge is None:
            logger.debug(f"update_edge_data: {edge_id} not present")
            return False
        patch = dict(patch)
        path_type = None
        if "edgeType" in patch:
            path_type = PathType.parse(patch.pop("edgeType"))
        edge.data = edge.data.merged(patch)
        if path_type is not None:
            edge.path_type = path_type
        self._changed()
        return True

    def select_edge(self, edge_id: str, selected: bool) -> bool:
        edge = self._edge(edge_id)
        if edge is None:
            return False
        edge.selected = selected
        self._changed()
        return True

    def set_edge_style(
        self,
        edge_id: str,
        path_type: Optional[Union[PathType, str]] = None,
        animated: Optional[bool] = None,
    ) -> bool:
        edge = self._edge(edge_id)
        if edge is None:
            return False
        if path_type is not None:
            edge.path_type = PathType.parse(path_type)
        if animated is not None:
            edge.animated = animated
        self._changed()
        return True

    def set_path_type(self, path_type: Union[PathType, str]) -> None:
        """Make ``path_type`` the graph-wide edge style, for existing and new edges."""
        path_type = PathType.parse(path_type)
        self.default_path_type = path_type
        for edge in self._edges:
            edge.path_type = path_type
        self._changed()

    def set_animated(self, animated: bool) -> None:
        """Toggle edge animation graph-wide, for existing and new edges."""
        self.default_animated = animated
        for edge in self._edges:
            edge.animated = animated
        self._changed()

    # --- Bulk operations ---

    def replace_all(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Swap both collections at once. Used by import, load and clear."""
        new_nodes = copy.deepcopy(list(nodes))
        new_edges = copy.deepcopy(list(edges))
        self._nodes, self._edges = new_nodes, new_edges
        self._changed()

    def clear(self) -> None:
        self.replace_all([], [])

    # --- Consistency reports ---

    def dangling_edges(self) -> List[Edge]:
        """Edges whose source or target is not a current node."""
        known = _id_set(self.node_ids())
        return [copy.deepcopy(e) for e in self._edges
                if not _is_member(e.source, known) or not _is_member(e.target, known)]

    def branch_conflicts(self) -> Dict[Tuple[str, str], List[str]]:
        """
        Conditional outputs used by more than one edge.

        Returns a mapping (node_id, handle) -> edge ids, only for handles with
        two or more outgoing edges. The store itself allows this; callers that
        want single-branch semantics can check it.
        """
        conditional_ids = _id_set(n.id for n in self._nodes if n.variant == NodeVariant.CONDITIONAL)
        branches: Dict[Tuple[str, str], List[str]] = {}
        for edge in self._edges:
            if _is_member(edge.source, conditional_ids) and edge.source_handle in ConditionalHandle.ALL:
                branches.setdefault((edge.source, edge.source_handle), []).append(edge.id)
        return {key: ids for key, ids in branches.items() if len(ids) > 1}

    def to_networkx(self) -> nx.MultiDiGraph:
        """Directed multigraph view; dangling edges are left out."""
        G = nx.MultiDiGraph()
        for node in self._nodes:
            if not isinstance(node.id, str):
                continue
            G.add_node(node.id, variant=node.variant, label=node.label,
                       position=node.position.as_tuple())
        present = _id_set(G.nodes)
        for edge in self._edges:
            if _is_member(edge.source, present) and _is_member(edge.target, present):
                key = edge.id if isinstance(edge.id, str) else None
                G.add_edge(edge.source, edge.target, key=key,
                           source_handle=edge.source_handle, label=edge.label)
        return G
