"""Data models for graphs, action configuration and execution logs."""

from .nodes import (
    Position,
    NodeData,
    WorkflowNode,
    WorkflowEdge,
    BaseActionConfig,
    ManualTriggerConfig,
    ScheduleTriggerConfig,
    RunCodeConfig,
    ApiCallConfig,
    ComputationConfig,
    UnknownActionConfig,
    validate_action_config,
    is_trigger_action,
)
from .execution import (
    EntryStatus,
    ExecutionStatus,
    NodeExecutionResult,
    ExecutionEntry,
    Execution,
)

__all__ = [
    # Graph
    "Position",
    "NodeData",
    "WorkflowNode",
    "WorkflowEdge",
    # Action configuration
    "BaseActionConfig",
    "ManualTriggerConfig",
    "ScheduleTriggerConfig",
    "RunCodeConfig",
    "ApiCallConfig",
    "ComputationConfig",
    "UnknownActionConfig",
    "validate_action_config",
    "is_trigger_action",
    # Execution
    "EntryStatus",
    "ExecutionStatus",
    "NodeExecutionResult",
    "ExecutionEntry",
    "Execution",
]
