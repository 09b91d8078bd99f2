"""
Tests for GraphStore: ids, no-op semantics, reference checks, bulk replacement
and observer notifications.
"""

import random

import pytest

from src.errors import InvalidReference
from src.graph_store import GraphStore
from src.models import ConditionalHandle, Edge, Node, NodeVariant, PathType, Position


@pytest.fixture
def store():
    return GraphStore(rng=random.Random(7))


@pytest.fixture
def two_nodes(store):
    a = store.add_node(NodeVariant.BOX, (0, 0), "A")
    b = store.add_node(NodeVariant.CIRCLE, (100, 0), "B")
    return a, b


class TestNodes:

    def test_added_node_ids_are_unique(self, store):
        ids = [store.add_node(v).id for v in list(NodeVariant) * 25]
        assert len(ids) == len(set(ids))
        assert store.node_ids() == ids

    def test_add_node_defaults(self, store):
        node = store.add_node("diamond")

        assert node.variant is NodeVariant.DIAMOND
        assert node.label == "Diamond Node"
        assert node.id.startswith("diamond-")
        assert 100 <= node.position.x < 600
        assert 100 <= node.position.y < 400

    def test_add_node_explicit_id_only_when_free(self, store):
        first = store.add_node(NodeVariant.BOX, node_id="1")
        second = store.add_node(NodeVariant.BOX, node_id="1")

        assert first.id == "1"
        assert second.id != "1"

    def test_add_node_rejects_unknown_variant(self, store):
        with pytest.raises(ValueError):
            store.add_node("hexagon")

    def test_returned_node_is_a_copy(self, store):
        node = store.add_node(NodeVariant.BOX, label="A")
        node.data.label = "changed"
        assert store.find_node(node.id).label == "A"

    def test_remove_node_is_idempotent(self, store, two_nodes):
        a, _ = two_nodes
        assert store.remove_node(a.id) is True
        assert store.remove_node(a.id) is False
        assert a.id not in store.node_ids()

    def test_remove_node_does_not_cascade(self, store, two_nodes):
        a, b = two_nodes
        edge = store.connect(a.id, b.id)
        store.remove_node(a.id)

        assert store.edge_ids() == [edge.id]
        assert [e.id for e in store.dangling_edges()] == [edge.id]

    def test_remove_node_cascade(self, store, two_nodes):
        a, b = two_nodes
        c = store.add_node(NodeVariant.BOX)
        e1 = store.connect(a.id, b.id)
        e2 = store.connect(c.id, a.id)
        e3 = store.connect(b.id, c.id)

        removed = store.remove_node_cascade(a.id)

        assert {e.id for e in removed} == {e1.id, e2.id}
        assert store.edge_ids() == [e3.id]
        assert a.id not in store.node_ids()

    def test_update_node_data_merges(self, store):
        node = store.add_node(NodeVariant.CONDITIONAL, label="If")
        assert store.update_node_data(node.id, {"condition": "x > 1"}) is True

        stored = store.find_node(node.id)
        assert stored.label == "If"
        assert stored.data.condition == "x > 1"

    def test_updates_on_missing_ids_are_noops(self, store):
        before = store.snapshot()
        assert store.update_node_data("ghost", {"label": "x"}) is False
        assert store.update_edge_data("ghost", {"label": "x"}) is False
        assert store.move_node("ghost", (1, 1)) is False
        assert store.remove_edge("ghost") is False
        assert store.snapshot() == before

    def test_apply_positions(self, store, two_nodes):
        store.apply_positions([(1, 2), Position(3, 4)])
        assert [n.position for n in store.snapshot().nodes] == [Position(1, 2), Position(3, 4)]
        with pytest.raises(ValueError):
            store.apply_positions([(0, 0)])


class TestEdges:

    def test_connect_uses_defaults(self, two_nodes):
        a, b = two_nodes
        store = GraphStore(path_type="step", animated=True)
        store.replace_all([a, b], [])

        edge = store.connect(a.id, b.id)

        assert edge.path_type is PathType.STEP
        assert edge.animated is True
        assert edge.label is None

    def test_connect_rejects_missing_endpoint(self, store, two_nodes):
        a, _ = two_nodes
        store.connect(a.id, a.id)
        before = store.edge_ids()

        with pytest.raises(InvalidReference) as excinfo:
            store.connect(a.id, "ghost")
        assert excinfo.value.missing == ["ghost"]

        with pytest.raises(InvalidReference):
            store.connect("nope", a.id)
        assert store.edge_ids() == before

    def test_conditional_handles_and_branch_conflicts(self, store):
        cond = store.add_node(NodeVariant.CONDITIONAL)
        yes = store.add_node(NodeVariant.BOX)
        no = store.add_node(NodeVariant.BOX)
        e1 = store.connect(cond.id, yes.id, ConditionalHandle.TRUE)
        store.connect(cond.id, no.id, ConditionalHandle.FALSE)
        assert store.branch_conflicts() == {}

        e3 = store.connect(cond.id, no.id, ConditionalHandle.TRUE)
        assert store.branch_conflicts() == {(cond.id, "true"): [e1.id, e3.id]}

    def test_graph_wide_style(self, store, two_nodes):
        a, b = two_nodes
        store.connect(a.id, b.id)
        store.set_path_type("straight")
        store.set_animated(True)
        later = store.connect(b.id, a.id)

        edges = store.snapshot().edges
        assert all(e.path_type is PathType.STRAIGHT for e in edges)
        assert all(e.animated for e in edges)
        assert later.path_type is PathType.STRAIGHT

    def test_edge_label_update(self, store, two_nodes):
        a, b = two_nodes
        edge = store.connect(a.id, b.id)
        store.update_edge_data(edge.id, {"label": "next"})
        assert store.find_edge(edge.id).label == "next"

    def test_to_networkx_skips_dangling(self, store, two_nodes):
        a, b = two_nodes
        store.connect(a.id, b.id)
        store.replace_all(store.snapshot().nodes,
                          store.snapshot().edges + [Edge(id="x", source=a.id, target="ghost")])

        G = store.to_networkx()
        assert set(G.nodes) == {a.id, b.id}
        assert G.number_of_edges() == 1


class TestBulkAndObservers:

    def test_clear(self, store, two_nodes):
        store.connect(*[n.id for n in two_nodes])
        store.clear()
        snap = store.snapshot()
        assert snap.nodes == [] and snap.edges == []

    def test_replace_all_keeps_imported_dangling_edges(self, store):
        store.replace_all([], [Edge(id="e", source="a", target="b")])
        assert store.edge_ids() == ["e"]

    def test_snapshot_is_detached(self, store, two_nodes):
        snap = store.snapshot()
        snap.nodes[0].data.label = "mutated"
        snap.nodes.clear()
        assert store.find_node(two_nodes[0].id).label == "A"

    def test_each_mutation_notifies_once(self, store):
        seen = []
        store.subscribe(lambda snap: seen.append(len(snap.nodes)))
        store.add_node(NodeVariant.BOX)
        store.add_node(NodeVariant.BOX)
        assert seen == [1, 2]

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.add_node(NodeVariant.BOX)
        assert seen == []

    def test_transaction_notifies_once(self, store):
        seen = []
        store.subscribe(seen.append)
        with store.transaction():
            store.add_node(NodeVariant.BOX)
            store.add_node(NodeVariant.BOX)
        assert len(seen) == 1
        assert len(seen[0].nodes) == 2

    def test_transaction_rolls_back_on_error(self, store, two_nodes):
        seen = []
        store.subscribe(seen.append)
        before = store.snapshot()

        with pytest.raises(InvalidReference):
            with store.transaction():
                store.remove_node(two_nodes[0].id)
                store.connect("ghost", two_nodes[1].id)

        assert store.snapshot() == before
        assert seen == []

    def test_cascade_is_a_single_notification(self, store, two_nodes):
        a, b = two_nodes
        store.connect(a.id, b.id)
        seen = []
        store.subscribe(seen.append)
        store.remove_node_cascade(a.id)
        assert len(seen) == 1


class TestEndpointAndStyleContracts:

    @pytest.mark.parametrize("target", [None, 42, ["a"]])
    def test_connect_non_string_endpoint_is_invalid_reference(self, store, two_nodes, target):
        a, _ = two_nodes
        with pytest.raises(InvalidReference) as excinfo:
            store.connect(a.id, target)
        assert excinfo.value.missing == [target]
        assert repr(target) in str(excinfo.value)
        assert store.edge_ids() == []

    def test_connect_both_endpoints_missing_reports_each_once(self, store):
        with pytest.raises(InvalidReference) as excinfo:
            store.connect(None, None)
        assert excinfo.value.missing == [None]

    def test_conditional_default_label(self, store):
        assert store.add_node(NodeVariant.CONDITIONAL).label == "If Condition"

    def test_edge_type_in_data_patch_sets_path_type(self, store, two_nodes):
        a, b = two_nodes
        edge = store.connect(a.id, b.id)
        store.update_edge_data(edge.id, {"edgeType": "step", "label": "x"})

        stored = store.find_edge(edge.id)
        assert stored.path_type is PathType.STEP
        assert stored.label == "x"
        assert stored.data.extra == {}

    def test_edge_type_in_data_patch_must_be_known(self, store, two_nodes):
        a, b = two_nodes
        edge = store.connect(a.id, b.id)
        with pytest.raises(ValueError):
            store.update_edge_data(edge.id, {"edgeType": "zigzag", "label": "x"})
        assert store.find_edge(edge.id).label is None

    def test_set_edge_style_touches_one_edge(self, store, two_nodes):
        a, b = two_nodes
        first = store.connect(a.id, b.id)
        second = store.connect(b.id, a.id)

        assert store.set_edge_style(first.id, path_type="smoothstep", animated=True) is True
        assert store.set_edge_style("ghost", animated=True) is False

        assert store.find_edge(first.id).path_type is PathType.SMOOTHSTEP
        assert store.find_edge(first.id).animated is True
        assert store.find_edge(second.id).path_type is PathType.BEZIER
        assert store.default_path_type is PathType.BEZIER

    def test_reports_tolerate_non_string_ids(self, store):
        cond = Node.from_dict({"id": ["odd"], "type": "conditional", "data": {"label": "?"}})
        box = Node.from_dict({"id": "b", "type": "box", "data": {"label": "B"}})
        store.replace_all([cond, box], [
            Edge(id=["e"], source=["odd"], target="b", source_handle="true"),
            Edge(id="e2", source="b", target="b"),
        ])

        assert [e.id for e in store.dangling_edges()] == [["e"]]
        assert store.branch_conflicts() == {}
        G = store.to_networkx()
        assert set(G.nodes) == {"b"}
        assert G.number_of_edges() == 1
        assert store.add_node(NodeVariant.BOX).id.startswith("box-")
