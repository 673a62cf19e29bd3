"""Graph Model - the in-memory current workflow graph.

Nodes and edges are created by collaborators (drag-drop, import) and mutated
through rename/mute/delete/update operations. The engine only reads them.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from nodeflow.core.exceptions import NodeNotFoundError
from nodeflow.core.logging import get_logger
from nodeflow.models.nodes import WorkflowNode, WorkflowEdge, NodeData

logger = get_logger(__name__)

NodeLike = Union[WorkflowNode, Dict[str, Any]]
EdgeLike = Union[WorkflowEdge, Dict[str, Any]]


def _edge_id(source: str, target: str) -> str:
    return f"e-{source}-{target}"


def _as_node(node: NodeLike) -> WorkflowNode:
    if isinstance(node, WorkflowNode):
        return node.model_copy(deep=True)
    return WorkflowNode.model_validate(node)


def _as_edge(edge: EdgeLike) -> WorkflowEdge:
    if isinstance(edge, WorkflowEdge):
        edge = edge.model_copy()
    else:
        edge = WorkflowEdge.model_validate(edge)
    if not edge.id:
        edge.id = _edge_id(edge.source, edge.target)
    return edge


class GraphModel:
    """Holds the current graph snapshot and answers trigger/node queries."""

    def __init__(self, name: str = "Untitled Workflow"):
        self.workflow_name = name
        self._nodes: List[WorkflowNode] = []
        self._edges: List[WorkflowEdge] = []

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    @property
    def nodes(self) -> List[WorkflowNode]:
        return list(self._nodes)

    @property
    def edges(self) -> List[WorkflowEdge]:
        return list(self._edges)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def set_graph(self, nodes: Iterable[NodeLike], edges: Iterable[EdgeLike] = ()) -> None:
        """Replace the whole graph. Edges to unknown node ids are dropped."""
        new_nodes: List[WorkflowNode] = []
        seen = set()
        for raw in nodes:
            node = _as_node(raw)
            if node.id in seen:
                logger.warning("Duplicate node id ignored", node_id=node.id)
                continue
            seen.add(node.id)
            new_nodes.append(node)

        self._nodes = new_nodes
        self._edges = []
        for raw in edges:
            self._append_edge(_as_edge(raw))

        logger.debug("Graph replaced", nodes=self.node_count, edges=self.edge_count)

    def add_node(self, node: NodeLike) -> WorkflowNode:
        node = _as_node(node)
        if self.get_node(node.id) is not None:
            raise ValueError(f"Node id already exists: {node.id}")
        self._nodes.append(node)
        return node

    def add_edge(self, source: str, target: str, edge_id: Optional[str] = None) -> Optional[WorkflowEdge]:
        """Connect two nodes. Returns None when either end is unknown."""
        edge = WorkflowEdge(id=edge_id or _edge_id(source, target), source=source, target=target)
        return self._append_edge(edge)

    def _append_edge(self, edge: WorkflowEdge) -> Optional[WorkflowEdge]:
        if self.get_node(edge.source) is None or self.get_node(edge.target) is None:
            logger.debug("Dropping edge with unknown endpoint",
                         source=edge.source, target=edge.target)
            return None
        self._edges.append(edge)
        return edge

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        return next((n for n in self._nodes if n.id == node_id), None)

    def require_node(self, node_id: str) -> WorkflowNode:
        node = self.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def find_trigger_node(self) -> Optional[WorkflowNode]:
        """The authoritative trigger: first ``isTrigger`` node in insertion order."""
        return next((n for n in self._nodes if n.is_trigger), None)

    @property
    def has_trigger_node(self) -> bool:
        return self.find_trigger_node() is not None

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def rename_node(self, node_id: str, label: str) -> WorkflowNode:
        node = self.require_node(node_id)
        node.label = label
        node.data.label = label
        return node

    def set_node_muted(self, node_id: str, muted: bool) -> WorkflowNode:
        node = self.require_node(node_id)
        node.data.muted = muted
        return node

    def update_node_data(self, node_id: str, data: Dict[str, Any]) -> WorkflowNode:
        """Shallow-merge ``data`` (wire keys) into the node's data block."""
        node = self.require_node(node_id)
        merged = {**node.data.model_dump(by_alias=True), **data}
        node.data = NodeData.model_validate(merged)
        return node

    def delete_node(self, node_id: str) -> WorkflowNode:
        """Remove a node together with every edge touching it."""
        node = self.require_node(node_id)
        self._nodes = [n for n in self._nodes if n.id != node_id]
        self._edges = [e for e in self._edges if node_id not in (e.source, e.target)]
        return node

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.workflow_name,
            "nodes": [n.to_dict() for n in self._nodes],
            "edges": [e.to_dict() for e in self._edges],
        }
