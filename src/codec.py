"""
Persistence codec for flow documents.

Document format (JSON):
{
  "nodes": [ {node}, ... ],
  "edges": [ {edge}, ... ],
  "timestamp": "2026-01-14T12:00:00.000Z"
}

Used by three call sites: the local save slot, file export and file import.

Validation stops at the top level: the content must be a JSON object with
list-valued "nodes" and "edges" whose entries are objects. Individual nodes
and edges are taken as they are, so unknown variants or edges pointing at
missing nodes come through unchanged.
"""

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from src.constants import EXPORT_FILENAME_PATTERN
from src.errors import MalformedDocument
from src.models import Edge, Node

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def _now_iso(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return now.isoformat(timespec="milliseconds") + "Z"


def serialize(nodes: Sequence[Node], edges: Sequence[Edge], now: Optional[datetime] = None) -> Document:
    """Capture the full graph plus a generation timestamp. Pure; no I/O."""
    return {
        "nodes": [n.to_dict() for n in nodes],
        "edges": [e.to_dict() for e in edges],
        "timestamp": _now_iso(now),
    }


def _entries(document: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    if key not in document or document[key] is None:
        raise MalformedDocument(f"Document is missing '{key}'")
    entries = document[key]
    if not isinstance(entries, list):
        raise MalformedDocument(f"'{key}' must be a list, got {type(entries).__name__}")
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise MalformedDocument(f"{key}[{i}] is not an object")
    return entries


def deserialize(document: Union[Document, str, bytes]) -> Tuple[List[Node], List[Edge]]:
    """
    Turn a document (dict, JSON text or bytes) back into nodes and edges.

    Raises:
        MalformedDocument: if the content is not JSON, not an object, or lacks
            a list of nodes or edges.
    """
    if isinstance(document, (str, bytes, bytearray)):
        try:
            document = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedDocument(f"Not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise MalformedDocument(f"Expected a JSON object, got {type(document).__name__}")

    raw_nodes = _entries(document, "nodes")
    raw_edges = _entries(document, "edges")
    nodes = [Node.from_dict(n) for n in raw_nodes]
    edges = [Edge.from_dict(e) for e in raw_edges]
    logger.debug(f"Decoded document with {len(nodes)} nodes and {len(edges)} edges")
    return nodes, edges


def dumps(document: Document, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(document, indent=2, ensure_ascii=False)
    return json.dumps(document, ensure_ascii=False)


def export_filename(day: Optional[date] = None) -> str:
    """Name of the export artifact, e.g. flow-2026-01-14.json."""
    day = day or datetime.now(timezone.utc).date()
    return EXPORT_FILENAME_PATTERN.format(date=day.isoformat())
