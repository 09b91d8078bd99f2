"""
FlowEditor - the interface the presentation layer talks to.

Wires the store, change engine, layout engine, codec, save slot and inline
editors together. The UI calls these methods and renders snapshot(); it never
touches the node/edge lists directly.

Every operation is synchronous. Import parses the whole document before the
store is touched, so a bad file leaves the current graph as it was.
"""

import logging
import random
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from src import codec
from src.changes import ChangeResult, apply_changes
from src.config import EditorConfig
from src.constants import WELCOME_NODE_ID, WELCOME_NODE_LABEL, WELCOME_NODE_POSITION
from src.graph_store import GraphSnapshot, GraphStore, PositionLike
from src.inline_edit import InlineEditor, InlineEditRegistry
from src.layout import LayoutStrategy, compute_layout
from src.models import Edge, Node, NodeVariant, PathType
from src.storage.factory import create_slot
from src.storage.protocol import SaveSlot

logger = logging.getLogger(__name__)


class FlowEditor:
    """Collaborator interface over one graph."""

    def __init__(
        self,
        store: Optional[GraphStore] = None,
        slot: Optional[SaveSlot] = None,
        config: Optional[EditorConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or EditorConfig()
        self.store = store or GraphStore(
            rng=rng,
            path_type=self.config.default_path_type,
            animated=self.config.default_animated,
        )
        self.slot = slot if slot is not None else create_slot(self.config)
        self.editors = InlineEditRegistry(self.store)

    # --- Read access ---

    def snapshot(self) -> GraphSnapshot:
        return self.store.snapshot()

    @property
    def edge_type(self) -> PathType:
        return self.store.default_path_type

    @property
    def edges_animated(self) -> bool:
        return self.store.default_animated

    # --- Structure ---

    def seed_welcome(self) -> Node:
        """Place the starting node of a fresh canvas."""
        return self.store.add_node(
            NodeVariant.BOX,
            position=WELCOME_NODE_POSITION,
            label=WELCOME_NODE_LABEL,
            node_id=WELCOME_NODE_ID,
        )

    def add_node(self, variant: Union[NodeVariant, str], position: Optional[PositionLike] = None,
                 label: Optional[str] = None) -> Node:
        return self.store.add_node(variant, position=position, label=label)

    def connect(self, source: str, target: str, source_handle: Optional[str] = None,
                target_handle: Optional[str] = None) -> Edge:
        return self.store.connect(source, target, source_handle, target_handle)

    def remove_node(self, node_id: str, cascade: bool = False) -> bool:
        """Remove a node; with cascade=True its edges go too."""
        existed = node_id in self.store.node_ids()
        if cascade:
            for edge in self.store.remove_node_cascade(node_id):
                self.editors.forget(edge.id)
        else:
            self.store.remove_node(node_id)
        self.editors.forget(node_id)
        return existed

    def remove_edge(self, edge_id: str) -> bool:
        self.editors.forget(edge_id)
        return self.store.remove_edge(edge_id)

    def apply_changes(self, changes: Iterable[Any]) -> ChangeResult:
        result = apply_changes(self.store, changes)
        known = {i for i in self.store.node_ids() + self.store.edge_ids() if isinstance(i, str)}
        for change in result.applied:
            change_id = getattr(change, "id", None)
            if isinstance(change_id, str) and change_id not in known:
                self.editors.forget(change_id)
        return result

    # --- Style ---

    def set_edge_type(self, path_type: Union[PathType, str]) -> None:
        self.store.set_path_type(path_type)
        logger.info(f"Edge type set to {self.store.default_path_type.value}")

    def set_edges_animated(self, animated: bool) -> None:
        self.store.set_animated(animated)
        logger.info(f"Edge animation {'on' if animated else 'off'}")

    def set_edge_style(self, edge_id: str, path_type: Optional[Union[PathType, str]] = None,
                       animated: Optional[bool] = None) -> bool:
        """Restyle a single edge. The graph-wide defaults stay as they are."""
        return self.store.set_edge_style(edge_id, path_type=path_type, animated=animated)

    # --- Layout ---

    def apply_layout(self, strategy: Union[LayoutStrategy, str]) -> None:
        strategy = LayoutStrategy.parse(strategy)
        snap = self.store.snapshot()
        positions = compute_layout(snap.nodes, strategy, snap.edges)
        self.store.apply_positions(positions)
        logger.info(f"Applied {strategy.value} layout to {len(positions)} nodes")

    # --- Inline editing ---

    def node_editor(self, node_id: str) -> InlineEditor:
        return self.editors.for_node(node_id)

    def edge_editor(self, edge_id: str) -> InlineEditor:
        return self.editors.for_edge(edge_id)

    # --- Persistence ---

    def to_document(self) -> Dict[str, Any]:
        snap = self.store.snapshot()
        return codec.serialize(snap.nodes, snap.edges)

    def save(self) -> None:
        """Write the current graph to the save slot, replacing the previous save."""
        self.slot.write(codec.dumps(self.to_document()))
        logger.info(f"Saved flow to slot '{self.slot.key}'")

    def load(self) -> bool:
        """
        Restore the last save.

        Returns:
            False if the slot is empty (graph untouched), True once restored.

        Raises:
            MalformedDocument: if the stored text is not a flow document.
        """
        text = self.slot.read()
        if text is None:
            logger.info(f"Save slot '{self.slot.key}' is empty")
            return False
        self._replace_from(text)
        logger.info(f"Restored flow from slot '{self.slot.key}'")
        return True

    def export_document(self, day: Optional[date] = None) -> Tuple[str, str]:
        """Return (filename, pretty JSON text) of the export artifact."""
        return codec.export_filename(day), codec.dumps(self.to_document(), pretty=True)

    def export_file(self, directory: Union[str, Path], day: Optional[date] = None) -> Path:
        filename, text = self.export_document(day)
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        logger.info(f"Exported flow to {path}")
        return path

    def import_file(self, contents: Union[str, bytes, Dict[str, Any]]) -> GraphSnapshot:
        """
        Replace the whole graph with an imported document.

        Raises:
            MalformedDocument: on unparseable content; the graph is unchanged.
        """
        self._replace_from(contents)
        snap = self.store.snapshot()
        logger.info(f"Imported flow with {len(snap.nodes)} nodes and {len(snap.edges)} edges")
        return snap

    def import_path(self, path: Union[str, Path]) -> GraphSnapshot:
        with open(path, "rb") as f:
            return self.import_file(f.read())

    def _replace_from(self, contents: Union[str, bytes, Dict[str, Any]]) -> None:
        nodes, edges = codec.deserialize(contents)
        self.store.replace_all(nodes, edges)
        self.editors.reset()

    def clear(self) -> None:
        self.store.clear()
        self.editors.reset()
        logger.info("Cleared flow")

    def dangling_edges(self) -> List[Edge]:
        return self.store.dangling_edges()
