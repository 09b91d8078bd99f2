import pytest

from src.changes import (
    ConnectionChange,
    EdgeRemoveChange,
    EdgeSelectChange,
    NodeDimensionsChange,
    NodePositionChange,
    NodeRemoveChange,
    NodeSelectChange,
    apply_changes,
    change_from_dict,
)
from src.graph_store import GraphStore
from src.models import NodeVariant, Position


@pytest.fixture
def store():
    s = GraphStore()
    s.add_node(NodeVariant.BOX, (0, 0), "A", node_id="a")
    s.add_node(NodeVariant.BOX, (0, 0), "B", node_id="b")
    s.add_node(NodeVariant.CONDITIONAL, (0, 0), "C", node_id="c")
    return s


def test_multi_node_drag_is_one_notification(store):
    seen = []
    store.subscribe(seen.append)

    result = apply_changes(store, [
        NodePositionChange("a", Position(10, 10), dragging=True),
        NodePositionChange("b", Position(20, 20), dragging=True),
        NodeSelectChange("c", True),
    ])

    assert len(result.applied) == 3
    assert len(seen) == 1
    positions = {n.id: n.position for n in seen[0].nodes}
    assert positions["a"] == Position(10, 10)
    assert positions["b"] == Position(20, 20)
    assert store.find_node("c").selected is True


def test_change_after_removal_in_same_batch_is_skipped(store):
    move = NodePositionChange("a", Position(5, 5))
    result = apply_changes(store, [NodeRemoveChange("a"), move, NodeRemoveChange("a")])

    assert "a" not in store.node_ids()
    assert result.skipped == [move, NodeRemoveChange("a")]


def test_connections_apply_after_other_changes(store):
    # The connection is listed first but must see the removal of "b"
    result = apply_changes(store, [
        ConnectionChange("a", "b"),
        ConnectionChange("a", "c"),
        NodeRemoveChange("b"),
    ])

    assert len(result.created_edges) == 1
    edge = result.created_edges[0]
    assert (edge.source, edge.target) == ("a", "c")
    assert result.skipped == [ConnectionChange("a", "b")]
    assert store.edge_ids() == [edge.id]


def test_edge_changes(store):
    e1 = store.connect("a", "b")
    e2 = store.connect("b", "c")

    apply_changes(store, [EdgeSelectChange(e1.id, True), EdgeRemoveChange(e2.id),
                          EdgeSelectChange(e2.id, True)])

    assert store.edge_ids() == [e1.id]
    assert store.find_edge(e1.id).selected is True


def test_dimensions_change(store):
    apply_changes(store, [NodeDimensionsChange("a", 150, 90)])
    node = store.find_node("a")
    assert (node.width, node.height) == (150, 90)


def test_dict_descriptors():
    assert change_from_dict({"type": "position", "id": "a", "position": {"x": 1, "y": 2}}) == \
        NodePositionChange("a", Position(1, 2))
    assert change_from_dict({"type": "remove", "kind": "edge", "id": "e"}) == EdgeRemoveChange("e")
    assert change_from_dict({"type": "select", "kind": "node", "id": "n", "selected": True}) == \
        NodeSelectChange("n", True)
    assert change_from_dict({"type": "connect", "source": "a", "target": "c", "sourceHandle": "false"}) == \
        ConnectionChange("a", "c", "false")


def test_unknown_descriptor_fails_whole_batch(store):
    before = store.snapshot()
    with pytest.raises(ValueError):
        apply_changes(store, [{"type": "remove", "id": "a"}, {"type": "teleport", "id": "b"}])
    assert store.snapshot() == before


def test_dict_batch_applies(store):
    result = apply_changes(store, [
        {"type": "connect", "source": "c", "target": "a", "sourceHandle": "true"},
        {"type": "position", "kind": "node", "id": "c", "position": {"x": 50, "y": 60}},
    ])
    assert store.find_node("c").position == Position(50, 60)
    assert result.created_edges[0].source_handle == "true"


def test_connect_without_target_only_skips_itself(store):
    result = apply_changes(store, [
        {"type": "position", "id": "a", "position": {"x": 9, "y": 9}},
        {"type": "connect", "source": "a"},
    ])

    assert store.find_node("a").position == Position(9, 9)
    assert result.skipped == [ConnectionChange("a", None)]
    assert store.edge_ids() == []
