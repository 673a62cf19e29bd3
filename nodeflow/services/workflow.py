"""Workflow Service - Facade for graph editing, runs and scheduling.

This is a thin facade that delegates to specialized modules:
- GraphModel: the current graph snapshot
- NodeExecutor: single node execution
- TriggerController: manual runs and schedule timers
- ExecutionRecorder: the current execution result
- Notifier: the single user-visible message per outcome
"""

import time
from datetime import datetime
from typing import Dict, Any, List, Optional, Union

from pydantic import ValidationError

from nodeflow.constants import (
    ActionType,
    GENERIC_FAILURE_MESSAGE,
    NODE_DISABLED_REASON,
    NO_TRIGGER_NODE_MESSAGE,
    SUCCESS_MESSAGE,
)
from nodeflow.core.exceptions import WorkflowValidationError
from nodeflow.core.logging import get_logger
from nodeflow.models.execution import (
    EntryStatus,
    Execution,
    ExecutionEntry,
    ExecutionStatus,
    now_ms,
)
from nodeflow.models.nodes import (
    Position,
    ScheduleTriggerConfig,
    WorkflowNode,
    validate_action_config,
)
from nodeflow.services import graph_io
from nodeflow.services.execution_log import ExecutionRecorder
from nodeflow.services.graph import GraphModel
from nodeflow.services.node_executor import NodeExecutor
from nodeflow.services.node_templates import build_node_config, find_template_by_name
from nodeflow.services.notifications import Notifier
from nodeflow.services.schedule import describe_trigger
from nodeflow.services.topology import compute_run_order
from nodeflow.services.triggers import TriggerController

logger = get_logger(__name__)


class WorkflowService:
    """Workflow execution and editing service.

    Thin facade delegating to specialized modules for:
    - Graph state (GraphModel, graph_io)
    - Node dispatch (NodeExecutor)
    - Run invocation and timers (TriggerController)
    - Result retention (ExecutionRecorder)
    """

    def __init__(
        self,
        graph: GraphModel,
        node_executor: NodeExecutor,
        recorder: ExecutionRecorder,
        trigger_controller: TriggerController,
        notifier: Notifier,
    ):
        self.graph = graph
        self.recorder = recorder
        self.notifier = notifier
        self._node_executor = node_executor
        self._controller = trigger_controller

    # =========================================================================
    # NODE EXECUTION
    # =========================================================================

    async def _execute_entry(self, node: WorkflowNode, context: Dict[str, Any]) -> ExecutionEntry:
        """Execute one node into an entry; muted nodes are skipped without dispatch."""
        if node.muted:
            return ExecutionEntry(
                node_id=node.id,
                node_name=node.name,
                input=dict(node.user_input),
                output={"skipped": True, "reason": NODE_DISABLED_REASON},
                duration_ms=0,
                status=EntryStatus.SKIPPED,
            )

        start = time.perf_counter()
        result = await self._node_executor.execute(node, context)
        return ExecutionEntry(
            node_id=node.id,
            node_name=node.name,
            input=dict(node.user_input),
            output=result.output,
            duration_ms=int((time.perf_counter() - start) * 1000),
            status=result.status,
        )

    def _finish(self, execution: Execution) -> Execution:
        """Record an execution and emit its single notification."""
        self.recorder.set_execution(execution)
        if execution.status == ExecutionStatus.ERROR:
            self.notifier.error(execution.first_error or GENERIC_FAILURE_MESSAGE)
        else:
            self.notifier.success(SUCCESS_MESSAGE)
        return execution

    async def execute_single_node(self, node_id: str) -> ExecutionEntry:
        """Execute one node and record it as a one-entry execution.

        Raises:
            NodeNotFoundError: If ``node_id`` is not in the current graph
        """
        node = self.graph.require_node(node_id).model_copy(deep=True)
        started_at = now_ms()
        start = time.perf_counter()

        entry = await self._execute_entry(node, {"mode": "single"})
        status = ExecutionStatus.ERROR if entry.status == EntryStatus.ERROR else ExecutionStatus.SUCCESS
        self._finish(Execution(
            started_at=started_at,
            duration_ms=int((time.perf_counter() - start) * 1000),
            status=status,
            entries=[entry],
            trigger_description=f"Single node: {node.name}",
        ))
        logger.info("Single node executed", node_id=node.id, status=entry.status.value)
        return entry

    # =========================================================================
    # RUN ASSEMBLY
    # =========================================================================

    async def run_pass(self, kind: ActionType,
                       config: Optional[ScheduleTriggerConfig] = None) -> Execution:
        """Run every node of the current graph once, strictly in run order.

        Entry errors do not stop the pass; the execution is marked as an
        error if any entry failed.
        """
        nodes = [n.model_copy(deep=True) for n in self.graph.nodes]
        edges = self.graph.edges
        by_id = {n.id: n for n in nodes}
        order = compute_run_order(nodes, edges)

        started_at = now_ms()
        start = time.perf_counter()
        context = {"mode": "workflow", "trigger": kind.value, "started_at": started_at}
        logger.info("Workflow run started", trigger=kind.value, nodes=len(order))

        entries: List[ExecutionEntry] = []
        for node_id in order:
            entries.append(await self._execute_entry(by_id[node_id], context))

        failed = any(e.status == EntryStatus.ERROR for e in entries)
        execution = Execution(
            started_at=started_at,
            duration_ms=int((time.perf_counter() - start) * 1000),
            status=ExecutionStatus.ERROR if failed else ExecutionStatus.SUCCESS,
            entries=entries,
            trigger_description=describe_trigger(kind, started_at, config),
        )
        logger.info("Workflow run finished", execution_id=execution.id,
                    status=execution.status.value, entries=len(entries),
                    duration_ms=execution.duration_ms)
        return self._finish(execution)

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    async def run_workflow(self) -> Dict[str, Any]:
        """Start the workflow according to its trigger node.

        Manual trigger: one pass now. Schedule trigger: arm timers (possibly
        running the first pass now). Without a trigger node nothing runs and
        nothing is recorded.
        """
        start_time = time.time()
        trigger = self.graph.find_trigger_node()
        if trigger is None:
            self.notifier.error(NO_TRIGGER_NODE_MESSAGE)
            return self._error_result(NO_TRIGGER_NODE_MESSAGE, start_time)

        if trigger.action_kind == ActionType.SCHEDULE_TRIGGER:
            try:
                config = validate_action_config(trigger.action_kind, trigger.user_input)
            except ValidationError as e:
                message = f"Invalid schedule configuration: {e.errors()[0].get('msg', 'invalid value')}"
                self.notifier.error(message)
                return self._error_result(message, start_time)

            schedule = await self._controller.arm_schedule(config, self.run_pass)
            return {
                "success": True,
                "mode": "schedule",
                "trigger_node_id": trigger.id,
                **schedule,
                **self._run_summary(start_time),
            }

        execution = await self._controller.run_once(self.run_pass)
        result = {
            "success": True,
            "mode": "manual",
            "trigger_node_id": trigger.id,
            **self._run_summary(start_time),
        }
        if execution is None:
            result["skipped"] = True
        return result

    def abort(self) -> bool:
        """Cancel armed timers. A pass already running completes."""
        was_armed = self._controller.abort()
        if was_armed:
            self.notifier.notify("Workflow schedule aborted")
        return was_armed

    def shutdown(self) -> None:
        self._controller.shutdown()

    @property
    def is_trigger_armed(self) -> bool:
        return self._controller.is_trigger_armed

    @property
    def state(self) -> str:
        return self._controller.state.value

    @property
    def execution(self) -> Optional[Execution]:
        return self.recorder.execution

    @property
    def selected_entry(self) -> Optional[ExecutionEntry]:
        return self.recorder.selected_entry

    def get_status(self) -> Dict[str, Any]:
        status = self._controller.get_status()
        status.update({
            "has_trigger_node": self.graph.has_trigger_node,
            "node_count": self.graph.node_count,
            "edge_count": self.graph.edge_count,
            "has_execution": self.recorder.has_execution,
        })
        last = self.notifier.last
        status["last_notification"] = last.to_dict() if last else None
        return status

    # =========================================================================
    # GRAPH OPERATIONS
    # =========================================================================

    def set_graph(self, nodes: List[Any], edges: List[Any]) -> Dict[str, Any]:
        self.graph.set_graph(nodes, edges)
        return self.graph.to_dict()

    def rename_node(self, node_id: str, label: str) -> WorkflowNode:
        return self.graph.rename_node(node_id, label)

    def set_node_muted(self, node_id: str, muted: bool) -> WorkflowNode:
        return self.graph.set_node_muted(node_id, muted)

    def update_node_data(self, node_id: str, data: Dict[str, Any]) -> WorkflowNode:
        return self.graph.update_node_data(node_id, data)

    def delete_node(self, node_id: str) -> WorkflowNode:
        return self.graph.delete_node(node_id)

    def add_node_from_template(self, name: str, values: Optional[Dict[str, Any]] = None,
                               position: Optional[Dict[str, float]] = None) -> WorkflowNode:
        """Create a node from a catalog template with the given field values.

        Raises:
            WorkflowValidationError: If no template has that name
        """
        if find_template_by_name(name) is None:
            raise WorkflowValidationError(f"Unknown node template: {name}")
        node = WorkflowNode(
            id=graph_io.new_node_id(),
            label=name,
            position=Position(**(position or {})),
            data=build_node_config(name, values),
        )
        return self.graph.add_node(node)

    def import_graph(self, payload: Union[str, bytes, Dict[str, Any]]) -> Dict[str, int]:
        """Append an exported graph; reports the failure through the notifier too."""
        try:
            counts = graph_io.import_graph(self.graph, payload)
        except WorkflowValidationError as e:
            self.notifier.error(str(e))
            raise
        self.notifier.success(f"Imported {counts['nodes']} nodes")
        return counts

    def export_graph(self) -> Dict[str, Any]:
        return graph_io.export_graph(self.graph)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _run_summary(self, start_time: float) -> Dict[str, Any]:
        execution = self.recorder.execution
        return {
            "state": self.state,
            "is_trigger_armed": self.is_trigger_armed,
            "execution": execution.to_dict() if execution else None,
            "execution_time": time.time() - start_time,
            "timestamp": datetime.now().isoformat(),
        }

    def _error_result(self, error: str, start_time: float) -> Dict[str, Any]:
        """Build error result."""
        return {
            "success": False,
            "error": error,
            "execution_time": time.time() - start_time,
            "timestamp": datetime.now().isoformat(),
        }
