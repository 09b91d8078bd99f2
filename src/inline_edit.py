"""
Inline Edit State Machine - label editing for nodes and edges.

Every node and edge has its own editor with two modes:

    VIEWING --begin_edit--> EDITING --commit (Enter | Escape | blur)--> VIEWING

Entering EDITING copies the committed values into a buffer. Every way out of
EDITING writes the buffer back to the store, empty strings included. There is
no cancel: Escape commits exactly like Enter. That is the editor's current
behaviour and tests pin it.

Editor state is transient and never saved with the document.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from src.errors import EditStateError
from src.graph_store import GraphStore
from src.models import editable_fields

COMMIT_KEYS = ("Enter", "Escape")


class EditMode(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"


class EntityKind(str, Enum):
    NODE = "node"
    EDGE = "edge"


@dataclass
class InlineEditState:
    """Immutable snapshot of one editor."""
    mode: EditMode = EditMode.VIEWING
    buffer: Dict[str, str] = field(default_factory=dict)

    @property
    def is_editing(self) -> bool:
        return self.mode == EditMode.EDITING


class InlineEditor:
    """View/edit toggle for the text fields of one node or edge."""

    def __init__(self, store: GraphStore, kind: EntityKind, entity_id: str,
                 fields: Tuple[str, ...] = ("label",)):
        self._store = store
        self.kind = EntityKind(kind)
        self.entity_id = entity_id
        self.fields = tuple(fields)
        self._state = InlineEditState()
        self._on_state_change: Optional[Callable[[InlineEditState], None]] = None

    @property
    def state(self) -> InlineEditState:
        return self._state

    @property
    def mode(self) -> EditMode:
        return self._state.mode

    def set_on_state_change(self, callback: Callable[[InlineEditState], None]):
        self._on_state_change = callback

    def _notify_change(self):
        if self._on_state_change:
            self._on_state_change(self._state)

    def committed_values(self) -> Dict[str, str]:
        """Current stored values of the edited fields ('' when unset or the entity is gone)."""
        if self.kind == EntityKind.NODE:
            entity = self._store.find_node(self.entity_id)
        else:
            entity = self._store.find_edge(self.entity_id)
        if entity is None:
            return {name: "" for name in self.fields}
        return {name: entity.data.get(name) or "" for name in self.fields}

    def begin_edit(self) -> InlineEditState:
        if self._state.is_editing:
            return self._state
        self._state = InlineEditState(mode=EditMode.EDITING, buffer=self.committed_values())
        self._notify_change()
        return self._state

    def set_value(self, name: str, value: str) -> InlineEditState:
        if not self._state.is_editing:
            raise EditStateError(f"{self.kind.value} {self.entity_id} is not being edited")
        if name not in self.fields:
            raise EditStateError(f"{name!r} is not editable on {self.kind.value} {self.entity_id}")
        buffer = dict(self._state.buffer)
        buffer[name] = value
        self._state = InlineEditState(mode=EditMode.EDITING, buffer=buffer)
        self._notify_change()
        return self._state

    def handle_key(self, key: str) -> InlineEditState:
        """Enter and Escape both commit; any other key leaves the editor alone."""
        if self._state.is_editing and key in COMMIT_KEYS:
            return self.commit()
        return self._state

    def blur(self) -> InlineEditState:
        if self._state.is_editing:
            return self.commit()
        return self._state

    def commit(self) -> InlineEditState:
        if not self._state.is_editing:
            raise EditStateError(f"{self.kind.value} {self.entity_id} is not being edited")
        patch = dict(self._state.buffer)
        if self.kind == EntityKind.NODE:
            self._store.update_node_data(self.entity_id, patch)
        else:
            self._store.update_edge_data(self.entity_id, patch)
        self._state = InlineEditState()
        self._notify_change()
        return self._state


class InlineEditRegistry:
    """Keeps one editor per entity so the UI can come back to the same state."""

    def __init__(self, store: GraphStore):
        self._store = store
        self._editors: Dict[Tuple[EntityKind, str], InlineEditor] = {}

    def for_node(self, node_id: str) -> InlineEditor:
        key = (EntityKind.NODE, node_id)
        if key not in self._editors:
            node = self._store.find_node(node_id)
            fields = editable_fields(node.variant) if node else ("label",)
            self._editors[key] = InlineEditor(self._store, EntityKind.NODE, node_id, fields)
        return self._editors[key]

    def for_edge(self, edge_id: str) -> InlineEditor:
        key = (EntityKind.EDGE, edge_id)
        if key not in self._editors:
            self._editors[key] = InlineEditor(self._store, EntityKind.EDGE, edge_id)
        return self._editors[key]

    def forget(self, entity_id: str) -> None:
        for key in [k for k in self._editors if k[1] == entity_id]:
            del self._editors[key]

    def reset(self) -> None:
        self._editors.clear()

    def editing(self) -> Dict[Tuple[EntityKind, str], InlineEditState]:
        """Editors currently in EDITING mode."""
        return {key: ed.state for key, ed in self._editors.items() if ed.state.is_editing}
