"""Execution log state models.

One ``Execution`` per run, holding an ordered list of ``ExecutionEntry``
records, one per node visited. All models serialize to the camelCase shape
the log viewer consumes.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


class EntryStatus(str, Enum):
    """Status of a single node inside a run."""
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class ExecutionStatus(str, Enum):
    """Aggregate status of a run."""
    SUCCESS = "success"
    ERROR = "error"


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class NodeExecutionResult:
    """What the node executor returns for one node."""
    output: Dict[str, Any]
    status: EntryStatus

    @property
    def success(self) -> bool:
        return self.status == EntryStatus.SUCCESS

    @property
    def error(self) -> Optional[str]:
        if self.status != EntryStatus.ERROR:
            return None
        return self.output.get("error")

    def to_dict(self) -> Dict[str, Any]:
        return {"output": self.output, "status": self.status.value}


@dataclass
class ExecutionEntry:
    """Result of one node inside a run."""
    node_id: str
    node_name: str
    input: Dict[str, Any]
    output: Dict[str, Any]
    duration_ms: int
    status: EntryStatus
    id: str = field(default_factory=lambda: new_id("entry"))

    @property
    def error(self) -> Optional[str]:
        if self.status != EntryStatus.ERROR:
            return None
        error = self.output.get("error") if isinstance(self.output, dict) else None
        return str(error) if error else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "nodeId": self.node_id,
            "nodeName": self.node_name,
            "input": self.input,
            "output": self.output,
            "durationMs": self.duration_ms,
            "status": self.status.value,
        }


@dataclass
class Execution:
    """Record of one full run (or one single-node run)."""
    started_at: int
    duration_ms: int
    status: ExecutionStatus
    entries: List[ExecutionEntry] = field(default_factory=list)
    trigger_description: Optional[str] = None
    id: str = field(default_factory=lambda: new_id("exec"))

    @property
    def first_error(self) -> Optional[str]:
        """The error message of the first failed entry, if any carries one."""
        for entry in self.entries:
            if entry.error:
                return entry.error
        return None

    def get_entry(self, entry_id: str) -> Optional[ExecutionEntry]:
        return next((e for e in self.entries if e.id == entry_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "startedAt": self.started_at,
            "durationMs": self.duration_ms,
            "status": self.status.value,
            "triggerDescription": self.trigger_description,
            "entries": [e.to_dict() for e in self.entries],
        }
