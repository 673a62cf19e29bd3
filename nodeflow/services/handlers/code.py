"""Code execution node handler - RunCode."""

import time
from typing import Dict, Any

from nodeflow.core.exceptions import ScriptExecutionError
from nodeflow.core.logging import get_logger
from nodeflow.models.execution import EntryStatus, NodeExecutionResult
from nodeflow.models.nodes import WorkflowNode, RunCodeConfig
from nodeflow.services.script_executor import ConsoleSink, ScriptExecutor

logger = get_logger(__name__)


async def handle_run_code(
    node: WorkflowNode,
    config: RunCodeConfig,
    context: Dict[str, Any],
    script_executor: ScriptExecutor,
) -> NodeExecutionResult:
    """Handle RunCode node execution.

    Runs the node's script through the configured executor with a fresh log
    sink, so concurrent runs never share captured output.

    Args:
        node: The node being executed
        config: Typed RunCode configuration
        context: Execution context
        script_executor: Executor selected by settings

    Returns:
        ``{returnedValue, consoleOutput?}`` on success, ``{error}`` on failure
    """
    start_time = time.time()
    sink = ConsoleSink()

    try:
        result = await script_executor.execute(config.code, sink)
    except ScriptExecutionError as e:
        logger.warning("Script execution failed", node_id=node.id,
                       engine=script_executor.name, error=str(e))
        return NodeExecutionResult(output={"error": str(e)}, status=EntryStatus.ERROR)

    output: Dict[str, Any] = {"returnedValue": result.returned_value}
    if result.console_output:
        output["consoleOutput"] = result.console_output

    logger.debug("Script executed", node_id=node.id, engine=script_executor.name,
                 lines=len(result.console_output),
                 execution_time=round(time.time() - start_time, 4))
    return NodeExecutionResult(output=output, status=EntryStatus.SUCCESS)
