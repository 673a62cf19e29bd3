"""Engine exception hierarchy."""


class NodeflowError(Exception):
    """Base exception for all engine errors."""


class WorkflowValidationError(NodeflowError):
    """The request cannot run: missing trigger, malformed import, unknown node.

    Surfaced to the caller immediately; no execution is recorded.
    """


class NodeNotFoundError(WorkflowValidationError):
    """A node id does not exist in the current graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class ExecutionError(NodeflowError):
    """An action failed while executing a single node.

    Never escapes the node executor; converted to an ``{error}`` entry.
    """


class ScriptExecutionError(ExecutionError):
    """A RunCode script raised, timed out, or could not be started."""

    def __init__(self, message: str, console_output: list = None):
        self.console_output = console_output or []
        super().__init__(message)


class ExpressionError(ExecutionError):
    """A Computation expression could not be parsed or evaluated."""

    def __init__(self, message: str, expression: str = ""):
        self.expression = expression
        super().__init__(message)
