"""
Auto-layout for the flow canvas.

Pure functions: they take the node list (and, for the layered strategy, the
edges) and return one Position per node, in the same order. Nothing else on
the nodes is touched, and the same input always yields the same output.

Strategies:
- horizontal: one row, node i at (200*i, 100)
- vertical: one column, node i at (200, 120*i)
- tree: rows of three by collection index, odd rows shifted right by 100.
  This ignores edges entirely; it only approximates a tree.
- layered: rows by longest path from a root in the edge graph (networkx).
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

import networkx as nx

from src.constants import (
    HORIZONTAL_ROW_Y,
    HORIZONTAL_SPACING,
    TREE_COLUMN_SPACING,
    TREE_LEVEL_SIZE,
    TREE_ODD_LEVEL_OFFSET,
    TREE_ROW_SPACING,
    VERTICAL_COLUMN_X,
    VERTICAL_SPACING,
)
from src.models import Edge, Node, Position

logger = logging.getLogger(__name__)


class LayoutStrategy(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    TREE = "tree"
    LAYERED = "layered"

    @classmethod
    def parse(cls, value: Union[str, "LayoutStrategy"]) -> "LayoutStrategy":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown layout strategy: {value!r}") from None


def horizontal_layout(count: int) -> List[Position]:
    return [Position(i * HORIZONTAL_SPACING, HORIZONTAL_ROW_Y) for i in range(count)]


def vertical_layout(count: int) -> List[Position]:
    return [Position(VERTICAL_COLUMN_X, i * VERTICAL_SPACING) for i in range(count)]


def tree_layout(count: int) -> List[Position]:
    positions = []
    for i in range(count):
        level, j = divmod(i, TREE_LEVEL_SIZE)
        offset = TREE_ODD_LEVEL_OFFSET if level % 2 == 1 else 0
        positions.append(Position(j * TREE_COLUMN_SPACING + offset, level * TREE_ROW_SPACING))
    return positions


def node_levels(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[int]:
    """
    Level of each node: the longest path to it from a node with no incoming edges.

    Strongly connected components are collapsed first so cycles get a single
    level. Edges to unknown nodes and self loops are ignored.
    """
    index_of: Dict[str, int] = {}
    for i, node in enumerate(nodes):
        if isinstance(node.id, str):
            index_of.setdefault(node.id, i)

    G = nx.DiGraph()
    G.add_nodes_from(range(len(nodes)))
    for edge in edges:
        src = index_of.get(edge.source) if isinstance(edge.source, str) else None
        tgt = index_of.get(edge.target) if isinstance(edge.target, str) else None
        if src is None or tgt is None or src == tgt:
            continue
        G.add_edge(src, tgt)

    C = nx.condensation(G)
    component_level: Dict[int, int] = {}
    for component in nx.topological_sort(C):
        preds = list(C.predecessors(component))
        component_level[component] = max((component_level[p] + 1 for p in preds), default=0)

    mapping = C.graph["mapping"]
    levels = []
    for i, node in enumerate(nodes):
        # Duplicate ids share the first occurrence's level
        index = index_of.get(node.id, i) if isinstance(node.id, str) else i
        levels.append(component_level[mapping[index]])
    return levels


def layered_layout(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Position]:
    levels = node_levels(nodes, edges)
    seen_in_level: Dict[int, int] = {}
    positions = []
    for level in levels:
        j = seen_in_level.get(level, 0)
        seen_in_level[level] = j + 1
        positions.append(Position(j * TREE_COLUMN_SPACING, level * TREE_ROW_SPACING))
    return positions


def compute_layout(
    nodes: Sequence[Node],
    strategy: Union[LayoutStrategy, str],
    edges: Optional[Sequence[Edge]] = None,
) -> List[Position]:
    """
    Compute new positions for ``nodes`` under ``strategy``.

    Returns a list aligned with ``nodes``. Works for any node count, including
    zero. Only the layered strategy reads ``edges``.
    """
    strategy = LayoutStrategy.parse(strategy)
    count = len(nodes)
    logger.debug(f"Computing {strategy.value} layout for {count} nodes")
    if strategy == LayoutStrategy.HORIZONTAL:
        return horizontal_layout(count)
    if strategy == LayoutStrategy.VERTICAL:
        return vertical_layout(count)
    if strategy == LayoutStrategy.TREE:
        return tree_layout(count)
    return layered_layout(nodes, edges or [])
