"""Node Executor - Single node execution with handler dispatch.

Uses a registry keyed on ``ActionType`` for handler dispatch without if-else
chains. Every failure below this boundary comes back as an error result.
"""

import asyncio
import time
from functools import partial
from typing import Dict, Any, Optional, Callable, Awaitable

import httpx
from pydantic import ValidationError

from nodeflow.constants import ActionType, NO_EXECUTABLE_ACTION
from nodeflow.core.logging import get_logger
from nodeflow.models.execution import EntryStatus, NodeExecutionResult
from nodeflow.models.nodes import WorkflowNode, is_trigger_action, validate_action_config
from nodeflow.services.handlers import (
    handle_trigger, handle_run_code, handle_api_call, handle_computation,
)
from nodeflow.services.script_executor import ScriptExecutor, PythonSandboxExecutor

logger = get_logger(__name__)

Handler = Callable[..., Awaitable[NodeExecutionResult]]


def _error(message: str) -> NodeExecutionResult:
    return NodeExecutionResult(output={"error": message}, status=EntryStatus.ERROR)


class NodeExecutor:
    """Executes individual workflow nodes using registry-based dispatch."""

    def __init__(
        self,
        script_executor: Optional[ScriptExecutor] = None,
        http_timeout: float = 30.0,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.script_executor = script_executor or PythonSandboxExecutor()
        self.http_timeout = http_timeout
        self.http_transport = http_transport
        self._handlers = self._build_handler_registry()

    def _build_handler_registry(self) -> Dict[ActionType, Handler]:
        """Build handler registry with dependencies bound via partial."""
        return {
            ActionType.MANUAL_TRIGGER: handle_trigger,
            ActionType.SCHEDULE_TRIGGER: handle_trigger,
            ActionType.RUN_CODE: partial(handle_run_code, script_executor=self.script_executor),
            ActionType.API_CALL: partial(handle_api_call, timeout=self.http_timeout,
                                         transport=self.http_transport),
            ActionType.COMPUTATION: handle_computation,
        }

    async def execute(self, node: WorkflowNode,
                      context: Optional[Dict[str, Any]] = None) -> NodeExecutionResult:
        """Execute a single workflow node.

        Unknown or unset action kinds are not failures: they yield
        ``{result: "No executable action"}`` with a success status.
        """
        start_time = time.time()
        kind = node.action_kind
        handler = self._handlers.get(kind)
        if handler is None:
            return NodeExecutionResult(output={"result": NO_EXECUTABLE_ACTION},
                                       status=EntryStatus.SUCCESS)

        try:
            config = None if is_trigger_action(kind) else validate_action_config(kind, node.user_input)
            result = await handler(node, config, {**(context or {}), "start_time": start_time})
        except asyncio.CancelledError:
            raise
        except ValidationError as e:
            logger.warning("Invalid node configuration", node_id=node.id,
                           action_type=kind.value, errors=e.error_count())
            return _error(f"Invalid configuration: {e.errors()[0].get('msg', 'invalid value')}")
        except Exception as e:
            logger.error("Node execution error", node_id=node.id,
                         action_type=kind.value, error=str(e))
            return _error(str(e) or type(e).__name__)

        logger.debug("Node executed", node_id=node.id, action_type=kind.value,
                     status=result.status.value,
                     execution_time=round(time.time() - start_time, 4))
        return result
