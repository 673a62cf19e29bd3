"""Trigger node handlers.

Trigger nodes are pass-through markers in the run order: they record which
trigger started the run and do no work.
"""

from typing import Dict, Any, Optional

from nodeflow.models.execution import EntryStatus, NodeExecutionResult
from nodeflow.models.nodes import WorkflowNode, BaseActionConfig


async def handle_trigger(
    node: WorkflowNode,
    config: Optional[BaseActionConfig],
    context: Dict[str, Any]
) -> NodeExecutionResult:
    """Handle manual and schedule trigger nodes.

    Their configuration is never validated here: it only matters to the
    trigger controller when the node is the authoritative trigger.
    """
    return NodeExecutionResult(output={"trigger": node.action_kind.value}, status=EntryStatus.SUCCESS)
