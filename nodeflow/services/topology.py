"""Topological run order for a workflow graph.

Kahn's algorithm with a FIFO queue seeded in node-list order, so nodes at the
same depth run in the order they were added to the graph.

Nodes that never reach in-degree zero (members of a cycle and everything that
depends on one) are left out of the order. The exclusion is logged, not
raised.
"""

from collections import defaultdict, deque
from typing import Dict, List, Sequence, Set

from nodeflow.core.logging import get_logger
from nodeflow.models.nodes import WorkflowNode, WorkflowEdge

logger = get_logger(__name__)


def _build_adjacency(node_ids: Sequence[str],
                     edges: Sequence[WorkflowEdge]) -> tuple:
    """Build successor lists and in-degree counts, ignoring dangling edges."""
    known = set(node_ids)
    in_degree: Dict[str, int] = {node_id: 0 for node_id in node_ids}
    adjacency: Dict[str, List[str]] = defaultdict(list)

    for edge in edges:
        if edge.source in known and edge.target in known:
            adjacency[edge.source].append(edge.target)
            in_degree[edge.target] += 1

    return adjacency, in_degree


def compute_run_order(nodes: Sequence[WorkflowNode],
                      edges: Sequence[WorkflowEdge]) -> List[str]:
    """Compute the deterministic linear run order.

    Args:
        nodes: Graph nodes in insertion order
        edges: Graph edges; edges referencing unknown ids are ignored

    Returns:
        Node ids, each appearing after every node with an edge into it
    """
    node_ids = [node.id for node in nodes]
    if not node_ids:
        return []

    adjacency, in_degree = _build_adjacency(node_ids, edges)

    queue = deque(node_id for node_id in node_ids if in_degree[node_id] == 0)
    order: List[str] = []

    while queue:
        node_id = queue.popleft()
        order.append(node_id)
        for successor in adjacency[node_id]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if len(order) < len(node_ids):
        visited = set(order)
        excluded = [node_id for node_id in node_ids if node_id not in visited]
        logger.warning("Cycle detected, nodes excluded from run order",
                       excluded=excluded)

    logger.debug("Computed run order", order=order)
    return order


def find_cycle_excluded(nodes: Sequence[WorkflowNode],
                        edges: Sequence[WorkflowEdge]) -> Set[str]:
    """Ids of nodes that ``compute_run_order`` leaves out."""
    ordered = set(compute_run_order(nodes, edges))
    return {node.id for node in nodes if node.id not in ordered}
