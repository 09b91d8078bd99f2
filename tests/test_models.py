import pytest

from src.models import (
    ConditionalData,
    Edge,
    EdgeData,
    Node,
    NodeData,
    NodeVariant,
    PathType,
    Position,
    data_class_for,
    default_label,
    editable_fields,
    make_node,
)


def test_make_node_picks_payload_by_variant():
    box = make_node(NodeVariant.BOX, "b1", Position(1, 2))
    cond = make_node(NodeVariant.CONDITIONAL, "c1", Position(0, 0), label="Check")

    assert type(box.data) is NodeData
    assert box.label == "Box Node"
    assert isinstance(cond.data, ConditionalData)
    assert cond.data.condition is None
    assert cond.label == "Check"


def test_dispatch_tables():
    assert data_class_for("conditional") is ConditionalData
    assert data_class_for(NodeVariant.CIRCLE) is NodeData
    assert data_class_for("hexagon") is NodeData
    assert editable_fields(NodeVariant.CONDITIONAL) == ("label", "condition")
    assert editable_fields("diamond") == ("label",)
    assert editable_fields(None) == ("label",)
    assert default_label(NodeVariant.DIAMOND) == "Diamond Node"


def test_variant_and_path_type_parse():
    assert NodeVariant.parse("circle") is NodeVariant.CIRCLE
    assert PathType.parse(PathType.STEP) is PathType.STEP
    with pytest.raises(ValueError):
        NodeVariant.parse("triangle")
    with pytest.raises(ValueError):
        PathType.parse("zigzag")


def test_payload_merge_keeps_unknown_keys_in_extra():
    data = ConditionalData(label="If")
    merged = data.merged({"condition": "x > 10", "color": "red"})

    assert merged.condition == "x > 10"
    assert merged.extra == {"color": "red"}
    assert merged.get("color") == "red"
    # original untouched
    assert data.condition is None
    assert data.extra == {}


def test_node_to_dict_shape():
    node = make_node(NodeVariant.CONDITIONAL, "c1", Position(10, 20), label="If")
    node.data = node.data.merged({"condition": "a == b"})
    out = node.to_dict()

    assert out == {
        "id": "c1",
        "type": "conditional",
        "position": {"x": 10, "y": 20},
        "data": {"label": "If", "condition": "a == b"},
        "selected": False,
    }


def test_edge_to_dict_shape():
    edge = Edge(id="e1", source="a", target="b", source_handle="true",
                path_type=PathType.SMOOTHSTEP, animated=True, data=EdgeData(label="yes"))
    out = edge.to_dict()

    assert out["sourceHandle"] == "true"
    assert "targetHandle" not in out
    assert out["animated"] is True
    assert out["data"] == {"label": "yes", "edgeType": "smoothstep"}


def test_node_from_dict_passes_unknown_content_through():
    raw = {
        "id": "n1",
        "type": "hexagon",
        "position": {"x": 5, "y": 6},
        "data": {"label": "Odd", "icon": "star"},
        "width": 140,
        "height": 90,
        "style": {"border": "1px"},
    }
    node = Node.from_dict(raw)

    assert node.variant == "hexagon"
    assert node.data.extra == {"icon": "star"}
    assert node.width == 140
    assert node.extra == {"style": {"border": "1px"}}
    assert node.to_dict() == {**raw, "selected": False}


def test_edge_from_dict_defaults():
    edge = Edge.from_dict({"id": "e1", "source": "a", "target": "ghost"})

    assert edge.path_type is PathType.BEZIER
    assert edge.animated is False
    assert edge.label is None
    assert edge.target == "ghost"


def test_selected_flag_is_ignored_by_equality():
    a = make_node(NodeVariant.BOX, "n", Position(0, 0), label="A")
    b = make_node(NodeVariant.BOX, "n", Position(0, 0), label="A")
    b.selected = True
    assert a == b


def test_conditional_default_label():
    assert default_label(NodeVariant.CONDITIONAL) == "If Condition"
    assert make_node(NodeVariant.CONDITIONAL, "c", Position(0, 0)).label == "If Condition"
