"""Centralized constants for action kinds, field keys and schedule units.

Single source of truth for the string values that travel over the wire in
exported graphs and HTTP payloads.
"""

from enum import Enum
from typing import Dict, FrozenSet


class ActionType(str, Enum):
    """Action kind of a node (wire value of ``data.actionType``)."""
    MANUAL_TRIGGER = "manual_trigger"
    SCHEDULE_TRIGGER = "schedule_trigger"
    RUN_CODE = "run_code"
    API_CALL = "api_call"
    COMPUTATION = "computation"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "ActionType":
        """Map a free-form action type string to a known kind (UNKNOWN otherwise)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


TRIGGER_ACTION_TYPES: FrozenSet[ActionType] = frozenset([
    ActionType.MANUAL_TRIGGER,
    ActionType.SCHEDULE_TRIGGER,
])

# =============================================================================
# USER INPUT FIELD KEYS
# =============================================================================

JAVASCRIPT_CODE = "JAVASCRIPT_CODE"
URL = "URL"
METHOD = "METHOD"
HEADERS = "HEADERS"
BODY = "BODY"
EXPRESSION_CODE = "EXPRESSION_CODE"
TRIGGER_ON = "TRIGGER_ON"
INTERVAL_BETWEEN_TRIGGER = "INTERVAL_BETWEEN_TRIGGER"
TIME_TO_TRIGGER = "TIME_TO_TRIGGER"

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")

# =============================================================================
# SCHEDULE UNITS
# =============================================================================

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

# "month" is a fixed 30-day approximation, not calendar aware
SCHEDULE_UNIT_MS: Dict[str, int] = {
    "sec": SECOND_MS,
    "min": MINUTE_MS,
    "hour": HOUR_MS,
    "day": DAY_MS,
    "week": 7 * DAY_MS,
    "month": 30 * DAY_MS,
}

DEFAULT_SCHEDULE_UNIT = "min"
DEFAULT_TIME_TO_TRIGGER = "00:00"

# Keeps the longest interval (10000 months) inside datetime's range
MAX_INTERVAL_BETWEEN_TRIGGER = 10_000

# =============================================================================
# RESULT MESSAGES
# =============================================================================

NO_EXECUTABLE_ACTION = "No executable action"
NODE_DISABLED_REASON = "Node is disabled"
NO_TRIGGER_NODE_MESSAGE = "Add a trigger node to run the workflow"
GENERIC_FAILURE_MESSAGE = "Workflow execution failed"
SUCCESS_MESSAGE = "Workflow executed successfully"
