"""Execution recorder.

Holds the current (and only) execution and the entry selected for
inspection. A new execution replaces the previous one; there is no history.
"""

from typing import List, Optional

from nodeflow.core.logging import get_logger
from nodeflow.models.execution import Execution, ExecutionEntry

logger = get_logger(__name__)


class ExecutionRecorder:
    """In-memory owner of the current execution result."""

    def __init__(self):
        self._execution: Optional[Execution] = None
        self._selected_entry_id: Optional[str] = None

    @property
    def execution(self) -> Optional[Execution]:
        return self._execution

    @property
    def has_execution(self) -> bool:
        return self._execution is not None

    @property
    def entries(self) -> List[ExecutionEntry]:
        return list(self._execution.entries) if self._execution else []

    @property
    def selected_entry(self) -> Optional[ExecutionEntry]:
        if self._execution is None or self._selected_entry_id is None:
            return None
        return self._execution.get_entry(self._selected_entry_id)

    def set_execution(self, execution: Execution) -> None:
        """Replace the current execution and select its first entry."""
        self._execution = execution
        self._selected_entry_id = execution.entries[0].id if execution.entries else None
        logger.debug("Execution recorded", execution_id=execution.id,
                     status=execution.status.value, entries=len(execution.entries))

    def clear_execution(self) -> None:
        self._execution = None
        self._selected_entry_id = None

    def select_entry(self, entry_id: str) -> Optional[ExecutionEntry]:
        """Select an entry of the current execution.

        Returns the selected entry, or None (selection unchanged) when the id
        does not belong to the current execution.
        """
        if self._execution is None:
            return None
        entry = self._execution.get_entry(entry_id)
        if entry is not None:
            self._selected_entry_id = entry.id
        return entry
