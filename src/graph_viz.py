"""
Graph visualizer that produces an ECharts-compatible configuration for the
flow canvas.

Positions come straight from the store (layout: 'none'), so what the chart
shows is exactly what auto-layout and drags produced. Each node variant maps
to an ECharts symbol; each edge path type maps to a line curvature, since
ECharts graph links have no step routing.

Also hosts the helpers that turn NiceGUI chart click payloads back into node
or edge ids.
"""

from typing import Any, Dict, List, Optional, Tuple

from src.constants import DEFAULT_CONDITIONAL_LABEL
from src.graph_store import GraphSnapshot
from src.models import ConditionalHandle, Edge, Node, NodeVariant, PathType

# Event keys we request from ECharts click events
REQUESTED_EVENT_KEYS = ['componentType', 'dataType', 'name', 'value']

VARIANT_SYMBOLS = {
    NodeVariant.BOX: 'roundRect',
    NodeVariant.CIRCLE: 'circle',
    NodeVariant.DIAMOND: 'diamond',
    NodeVariant.CONDITIONAL: 'diamond',
}

VARIANT_SIZES = {
    NodeVariant.BOX: [120, 60],
    NodeVariant.CIRCLE: [80, 80],
    NodeVariant.DIAMOND: [90, 90],
    NodeVariant.CONDITIONAL: [110, 110],
}

PATH_CURVENESS = {
    PathType.BEZIER: 0.25,
    PathType.STRAIGHT: 0.0,
    PathType.STEP: 0.0,
    PathType.SMOOTHSTEP: 0.1,
}

HANDLE_COLORS = {
    ConditionalHandle.TRUE: '#22c55e',
    ConditionalHandle.FALSE: '#ef4444',
}

def _style(table: Dict[Any, Any], key: Any, default: Any) -> Any:
    # Imported documents can put any JSON value in type, edgeType or sourceHandle
    return table.get(key, default) if isinstance(key, str) else default


NODE_BORDER = '#8b5cf6'
SELECTED_BORDER = '#f59e0b'
EDGE_COLOR = '#94a3b8'


class GraphVisualizer:
    """
    Build an ECharts option dict for a flow snapshot.

    The returned dict has a single 'graph' series:
      {
        "series": [{
          "type": "graph",
          "layout": "none",
          "data": [...],   # one entry per node, name = node id
          "links": [...],  # one entry per edge, value = edge id
        }]
      }
    """

    @staticmethod
    def node_caption(node: Node) -> str:
        label = node.label or ''
        if node.variant == NodeVariant.CONDITIONAL:
            label = label or DEFAULT_CONDITIONAL_LABEL
            condition = node.data.get('condition')
            if condition:
                label = f"{label}\n{condition}"
        return label

    @staticmethod
    def node_size(node: Node) -> List[float]:
        if node.width is not None and node.height is not None:
            return [node.width, node.height]
        return list(_style(VARIANT_SIZES, node.variant, [80, 80]))

    def node_entry(self, node: Node) -> Dict[str, Any]:
        caption = self.node_caption(node)
        return {
            'id': node.id,
            'name': node.id,
            'value': caption,
            'x': node.position.x,
            'y': node.position.y,
            'symbol': _style(VARIANT_SYMBOLS, node.variant, 'circle'),
            'symbolSize': self.node_size(node),
            'itemStyle': {
                'color': '#ffffff',
                'borderColor': SELECTED_BORDER if node.selected else NODE_BORDER,
                'borderWidth': 3 if node.selected else 2,
            },
            'label': {'show': True, 'formatter': caption, 'color': '#1e293b'},
            'draggable': True,
        }

    def link_entry(self, edge: Edge) -> Dict[str, Any]:
        color = _style(HANDLE_COLORS, edge.source_handle, EDGE_COLOR)
        line_style = {
            'color': SELECTED_BORDER if edge.selected else color,
            'width': 3 if edge.selected else 2,
            'curveness': _style(PATH_CURVENESS, edge.path_type, 0.0),
            'type': 'dashed' if edge.animated else 'solid',
        }
        entry = {
            'source': edge.source,
            'target': edge.target,
            'value': edge.id,
            'lineStyle': line_style,
        }
        if edge.label:
            entry['label'] = {'show': True, 'formatter': edge.label}
        return entry

    def generate_echarts(self, snapshot: GraphSnapshot) -> Dict[str, Any]:
        """Given a store snapshot, construct the ECharts option dict."""
        data = [self.node_entry(n) for n in snapshot.nodes]
        known = {n.id for n in snapshot.nodes if isinstance(n.id, str)}
        # ECharts refuses links to unknown nodes, so dangling edges are not drawn
        links = [self.link_entry(e) for e in snapshot.edges
                 if isinstance(e.source, str) and isinstance(e.target, str)
                 and e.source in known and e.target in known]
        return {
            'animation': False,
            'tooltip': {},
            'series': [{
                'type': 'graph',
                'layout': 'none',
                'roam': True,
                'edgeSymbol': ['none', 'arrow'],
                'edgeSymbolSize': 8,
                'data': data,
                'links': links,
                'emphasis': {'focus': 'adjacency'},
            }],
        }


def build_echart_options(snapshot: GraphSnapshot) -> Dict[str, Any]:
    return GraphVisualizer().generate_echarts(snapshot)


def normalize_click_payload(raw_payload: Any) -> Dict[str, Any]:
    """Normalize NiceGUI chart click payloads into a dictionary for easier parsing."""
    if isinstance(raw_payload, dict):
        return raw_payload
    if isinstance(raw_payload, (list, tuple)):
        return {
            REQUESTED_EVENT_KEYS[i]: raw_payload[i]
            for i in range(min(len(raw_payload), len(REQUESTED_EVENT_KEYS)))
        }
    if isinstance(raw_payload, str):
        return {'name': raw_payload}
    return {}


def resolve_selection(payload: Dict[str, Any], snapshot: GraphSnapshot) -> Optional[Tuple[str, str]]:
    """
    Return ('node', id) or ('edge', id) for a normalized click payload,
    validated against the snapshot. Background clicks give None.
    """
    if not isinstance(payload, dict) or payload.get('componentType') != 'series':
        return None

    if payload.get('dataType') == 'edge':
        edge_id = payload.get('value')
        if any(e.id == edge_id for e in snapshot.edges):
            return ('edge', edge_id)
        return None

    node_id = payload.get('name')
    if not node_id:
        return None
    if any(n.id == node_id for n in snapshot.nodes):
        return ('node', node_id)
    return None
