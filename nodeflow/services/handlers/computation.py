"""Computation node handler."""

import asyncio
from typing import Dict, Any

from nodeflow.core.exceptions import ExpressionError
from nodeflow.core.logging import get_logger
from nodeflow.models.execution import EntryStatus, NodeExecutionResult
from nodeflow.models.nodes import WorkflowNode, ComputationConfig
from nodeflow.services.expressions import evaluate_expression

logger = get_logger(__name__)


async def handle_computation(
    node: WorkflowNode,
    config: ComputationConfig,
    context: Dict[str, Any]
) -> NodeExecutionResult:
    """Evaluate the node's expression and return ``{result}``."""
    try:
        value = await asyncio.to_thread(evaluate_expression, config.expression)
    except ExpressionError as e:
        logger.warning("Expression evaluation failed", node_id=node.id,
                       expression=config.expression, error=str(e))
        return NodeExecutionResult(output={"error": str(e)}, status=EntryStatus.ERROR)

    return NodeExecutionResult(output={"result": value}, status=EntryStatus.SUCCESS)
