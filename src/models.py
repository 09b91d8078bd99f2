"""
Entity model for the flow graph.

Nodes are tagged by a variant (box, circle, diamond, conditional) and carry a
variant-specific payload:
- box / circle / diamond: NodeData(label)
- conditional: ConditionalData(label, condition)

Edges connect two node ids, optionally through a named handle. Conditional
nodes expose two output handles, "true" and "false".

Every entity converts to and from the JSON shape used by saved documents:

    node: {"id", "type", "position": {"x", "y"}, "data": {...}, "selected", ...}
    edge: {"id", "source", "target", "sourceHandle", "animated",
           "data": {"label", "edgeType"}, "selected", ...}

Conversion is lenient: unknown variants, unknown keys and dangling references
are carried through untouched so an imported document saves back the way it
came in.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Type, Union

from src.constants import DEFAULT_CONDITIONAL_LABEL


class NodeVariant(str, Enum):
    BOX = "box"
    CIRCLE = "circle"
    DIAMOND = "diamond"
    CONDITIONAL = "conditional"

    @classmethod
    def parse(cls, value: Union[str, "NodeVariant"]) -> "NodeVariant":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown node variant: {value!r}") from None


class PathType(str, Enum):
    BEZIER = "bezier"
    STRAIGHT = "straight"
    STEP = "step"
    SMOOTHSTEP = "smoothstep"

    @classmethod
    def parse(cls, value: Union[str, "PathType"]) -> "PathType":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown edge path type: {value!r}") from None


class ConditionalHandle:
    """Output handle ids of a conditional node."""
    TRUE = "true"
    FALSE = "false"
    ALL = (TRUE, FALSE)


def _coerce(enum_cls: Type[Enum], value: Any) -> Any:
    # Unknown values are kept as-is so imported documents pass through.
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, raw: Any) -> "Position":
        if isinstance(raw, dict):
            return cls(raw.get("x", 0.0), raw.get("y", 0.0))
        return cls()

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


# --- Payloads ---

@dataclass
class _Payload:
    """Common behaviour of node and edge payloads: named fields plus extra keys."""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.name != "extra")

    def get(self, key: str, default: Any = None) -> Any:
        if key in self.field_names():
            return getattr(self, key)
        return self.extra.get(key, default)

    def merged(self, patch: Dict[str, Any]) -> "_Payload":
        """Return a copy with ``patch`` applied; unknown keys land in ``extra``."""
        updated = copy.deepcopy(self)
        names = self.field_names()
        for key, value in patch.items():
            if key in names:
                setattr(updated, key, value)
            else:
                updated.extra[key] = value
        return updated

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name in self.field_names():
            value = getattr(self, name)
            if value is None and name not in self._required:
                continue
            out[name] = value
        for key, value in self.extra.items():
            out.setdefault(key, copy.deepcopy(value))
        return out

    @classmethod
    def from_dict(cls, raw: Any) -> "_Payload":
        if not isinstance(raw, dict):
            return cls()
        raw = copy.deepcopy(raw)
        known = {name: raw.pop(name) for name in cls.field_names() if name in raw}
        return cls(extra=raw, **known)

    _required: ClassVar[Tuple[str, ...]] = ()


@dataclass
class NodeData(_Payload):
    label: str = ""

    _required = ("label",)


@dataclass
class ConditionalData(NodeData):
    condition: Optional[str] = None


@dataclass
class EdgeData(_Payload):
    label: Optional[str] = None


_PAYLOAD_BY_VARIANT: Dict[NodeVariant, Type[NodeData]] = {
    NodeVariant.BOX: NodeData,
    NodeVariant.CIRCLE: NodeData,
    NodeVariant.DIAMOND: NodeData,
    NodeVariant.CONDITIONAL: ConditionalData,
}

_EDITABLE_FIELDS: Dict[NodeVariant, Tuple[str, ...]] = {
    NodeVariant.BOX: ("label",),
    NodeVariant.CIRCLE: ("label",),
    NodeVariant.DIAMOND: ("label",),
    NodeVariant.CONDITIONAL: ("label", "condition"),
}


def _known_variant(variant: Any) -> Optional[NodeVariant]:
    variant = _coerce(NodeVariant, variant)
    return variant if isinstance(variant, NodeVariant) else None


def data_class_for(variant: Any) -> Type[NodeData]:
    """Payload class for a variant. Unknown variants get the plain label payload."""
    return _PAYLOAD_BY_VARIANT.get(_known_variant(variant), NodeData)


def editable_fields(variant: Any) -> Tuple[str, ...]:
    """Fields an inline editor exposes for a node of this variant."""
    return _EDITABLE_FIELDS.get(_known_variant(variant), ("label",))


def default_label(variant: NodeVariant) -> str:
    if variant == NodeVariant.CONDITIONAL:
        return DEFAULT_CONDITIONAL_LABEL
    return f"{variant.value.capitalize()} Node"


# --- Entities ---

@dataclass
class Node:
    id: str
    variant: Union[NodeVariant, str]
    position: Position = field(default_factory=Position)
    data: NodeData = field(default_factory=NodeData)
    selected: bool = field(default=False, compare=False)
    width: Optional[float] = None
    height: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = ("id", "type", "position", "data", "selected", "width", "height")

    @property
    def label(self) -> str:
        return self.data.label

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "id": self.id,
            "type": _plain(self.variant),
            "position": self.position.to_dict(),
            "data": self.data.to_dict(),
            "selected": self.selected,
        }
        if self.width is not None:
            out["width"] = self.width
        if self.height is not None:
            out["height"] = self.height
        for key, value in self.extra.items():
            out.setdefault(key, copy.deepcopy(value))
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Node":
        variant = _coerce(NodeVariant, raw.get("type"))
        extra = {k: copy.deepcopy(v) for k, v in raw.items() if k not in cls._KNOWN_KEYS}
        return cls(
            id=raw.get("id"),
            variant=variant,
            position=Position.from_dict(raw.get("position")),
            data=data_class_for(variant).from_dict(raw.get("data")),
            selected=bool(raw.get("selected", False)),
            width=raw.get("width"),
            height=raw.get("height"),
            extra=extra,
        )


@dataclass
class Edge:
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    path_type: Union[PathType, str] = PathType.BEZIER
    animated: bool = False
    data: EdgeData = field(default_factory=EdgeData)
    selected: bool = field(default=False, compare=False)
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = ("id", "source", "target", "sourceHandle", "targetHandle",
                   "animated", "data", "selected")

    @property
    def label(self) -> Optional[str]:
        return self.data.label

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
        }
        if self.source_handle is not None:
            out["sourceHandle"] = self.source_handle
        if self.target_handle is not None:
            out["targetHandle"] = self.target_handle
        data = self.data.to_dict()
        data["edgeType"] = _plain(self.path_type)
        out["animated"] = self.animated
        out["data"] = data
        out["selected"] = self.selected
        for key, value in self.extra.items():
            out.setdefault(key, copy.deepcopy(value))
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Edge":
        raw_data = raw.get("data")
        data = dict(raw_data) if isinstance(raw_data, dict) else {}
        path_type = _coerce(PathType, data.pop("edgeType", PathType.BEZIER.value))
        extra = {k: copy.deepcopy(v) for k, v in raw.items() if k not in cls._KNOWN_KEYS}
        return cls(
            id=raw.get("id"),
            source=raw.get("source"),
            target=raw.get("target"),
            source_handle=raw.get("sourceHandle"),
            target_handle=raw.get("targetHandle"),
            path_type=path_type,
            animated=bool(raw.get("animated", False)),
            data=EdgeData.from_dict(data),
            selected=bool(raw.get("selected", False)),
            extra=extra,
        )


def make_node(variant: NodeVariant, node_id: str, position: Position,
              label: Optional[str] = None) -> Node:
    """
    Create a node of the given variant with its payload class filled in.
    The label defaults to "<Variant> Node", or "If Condition" for conditionals.
    """
    payload_cls = data_class_for(variant)
    return Node(
        id=node_id,
        variant=variant,
        position=position,
        data=payload_cls(label=default_label(variant) if label is None else label),
    )
