"""Graph import/export in the JSON exchange format.

Import is all-or-nothing: if any node object in the batch is malformed the
whole batch is rejected and the graph is left untouched.
"""

import json
import uuid
from typing import Any, Dict, List, Tuple, Union

from nodeflow.core.exceptions import WorkflowValidationError
from nodeflow.core.logging import get_logger
from nodeflow.models.nodes import WorkflowNode, WorkflowEdge
from nodeflow.services.graph import GraphModel

logger = get_logger(__name__)


def new_node_id() -> str:
    return f"node_{uuid.uuid4().hex[:12]}"


def validate_node_object(node: Any) -> bool:
    """Check one imported node object against the exchange schema."""
    if not isinstance(node, dict) or not isinstance(node.get("label"), str):
        return False
    data = node.get("data")
    if not isinstance(data, dict):
        return False
    return (
        isinstance(data.get("label"), str)
        and isinstance(data.get("actionType"), str)
        and isinstance(data.get("userInput"), dict)
    )


def parse_import_payload(payload: Union[str, bytes, Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[Any]]:
    """Decode and validate an import document.

    Returns:
        ``(node_objects, edge_objects)`` from the document

    Raises:
        WorkflowValidationError: Invalid JSON, wrong top-level shape, or any
            malformed node in the batch
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise WorkflowValidationError(f"Invalid JSON: {e.msg}") from e
        except UnicodeDecodeError as e:
            raise WorkflowValidationError(f"Invalid JSON: payload is not valid {e.encoding}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("nodes"), list):
        raise WorkflowValidationError("Invalid workflow file: expected an object with a 'nodes' list")

    edges = payload.get("edges") or []
    if not isinstance(edges, list):
        raise WorkflowValidationError("Invalid workflow file: 'edges' must be a list")

    nodes = payload["nodes"]
    bad = [i for i, node in enumerate(nodes) if not validate_node_object(node)]
    if bad:
        logger.warning("Import rejected", invalid_nodes=len(bad), first_invalid_index=bad[0])
        raise WorkflowValidationError(
            f"Invalid node at position {bad[0] + 1}: each node needs a label and "
            f"data with label, actionType and userInput"
        )
    return nodes, edges


def _remap(id_map: Dict[str, str], old_id: Any):
    return id_map.get(old_id) if isinstance(old_id, str) else None


def import_graph(graph: GraphModel, payload: Union[str, bytes, Dict[str, Any]]) -> Dict[str, int]:
    """Append an imported batch to ``graph`` with fresh node ids.

    Edges are remapped through the old-to-new id map; edges referencing ids
    outside the batch are dropped silently.
    """
    node_objects, edge_objects = parse_import_payload(payload)

    id_map: Dict[str, str] = {}
    new_nodes: List[WorkflowNode] = []
    for raw in node_objects:
        new_id = new_node_id()
        old_id = raw.get("id")
        if isinstance(old_id, str):
            id_map[old_id] = new_id
        try:
            new_nodes.append(WorkflowNode.model_validate({**raw, "id": new_id}))
        except ValueError as e:
            raise WorkflowValidationError(f"Invalid node '{raw.get('label')}': {e}") from e

    new_edges: List[WorkflowEdge] = []
    for raw in edge_objects:
        if not isinstance(raw, dict):
            continue
        source = _remap(id_map, raw.get("source"))
        target = _remap(id_map, raw.get("target"))
        if source and target:
            new_edges.append(WorkflowEdge(source=source, target=target))

    for node in new_nodes:
        graph.add_node(node)
    added_edges = sum(1 for edge in new_edges if graph.add_edge(edge.source, edge.target))

    logger.info("Graph imported", nodes=len(new_nodes), edges=added_edges,
                dropped_edges=len(edge_objects) - added_edges)
    return {"nodes": len(new_nodes), "edges": added_edges}


def export_graph(graph: GraphModel) -> Dict[str, Any]:
    """Current graph in the exchange format (edge ids are not exported)."""
    return {
        "nodes": [node.to_dict() for node in graph.nodes],
        "edges": [{"source": e.source, "target": e.target} for e in graph.edges],
    }
