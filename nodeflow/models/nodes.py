"""Pydantic models for graph nodes, edges and per-action configuration.

Action configuration uses a Pydantic v2 discriminated union keyed on the
action type, so each action kind gets its own strongly-typed model instead of
an untyped field-key mapping. The raw ``userInput`` mapping stays on the node:
it is what the execution log shows as the entry input and what round-trips
through import/export.
"""

from typing import Literal, Union, Annotated, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from nodeflow.constants import (
    ActionType,
    TRIGGER_ACTION_TYPES,
    DEFAULT_SCHEDULE_UNIT,
    DEFAULT_TIME_TO_TRIGGER,
    MAX_INTERVAL_BETWEEN_TRIGGER,
)


# =============================================================================
# GRAPH MODELS
# =============================================================================

class Position(BaseModel):
    """Canvas position; carried through, irrelevant to execution."""
    x: float = 0.0
    y: float = 0.0


class NodeData(BaseModel):
    """The ``data`` block of a node as exchanged with the UI."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    label: str = ""
    is_trigger: bool = Field(default=False, alias="isTrigger")
    action_type: str = Field(default="", alias="actionType")
    user_input: Dict[str, Any] = Field(default_factory=dict, alias="userInput")
    executable_code: str = Field(default="", alias="executableCode")
    muted: bool = False


class WorkflowNode(BaseModel):
    """A node in the workflow graph."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str = ""
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)

    @property
    def name(self) -> str:
        return self.data.label or self.label or self.id

    @property
    def action_kind(self) -> ActionType:
        return ActionType.parse(self.data.action_type)

    @property
    def is_trigger(self) -> bool:
        return self.data.is_trigger

    @property
    def muted(self) -> bool:
        return self.data.muted

    @property
    def user_input(self) -> Dict[str, Any]:
        return self.data.user_input

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class WorkflowEdge(BaseModel):
    """A directed edge between two nodes."""
    id: str = ""
    source: str
    target: str

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


# =============================================================================
# ACTION CONFIGURATION MODELS
# =============================================================================

class BaseActionConfig(BaseModel):
    """Base class for all action configurations."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_fields(cls, data):
        # Empty form fields arrive as None; let the field defaults apply
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ManualTriggerConfig(BaseActionConfig):
    """Manual trigger: no configuration."""
    type: Literal["manual_trigger"]


class ScheduleTriggerConfig(BaseActionConfig):
    """Schedule trigger: recurring interval with a time-of-day for the first fire."""
    type: Literal["schedule_trigger"]
    trigger_on: str = Field(default=DEFAULT_SCHEDULE_UNIT, alias="TRIGGER_ON")
    interval_between_trigger: int = Field(default=1, alias="INTERVAL_BETWEEN_TRIGGER",
                                          le=MAX_INTERVAL_BETWEEN_TRIGGER)
    time_to_trigger: str = Field(default=DEFAULT_TIME_TO_TRIGGER, alias="TIME_TO_TRIGGER")

    @field_validator("interval_between_trigger", mode="before")
    @classmethod
    def _parse_interval(cls, value):
        """Form strings and numbers both truncate to a whole multiplier."""
        if isinstance(value, str):
            value = value.strip() or "1"
        if isinstance(value, (str, float)):
            try:
                return int(float(value))
            except (OverflowError, ValueError):
                raise ValueError(f"Invalid interval: {value!r}")
        return value


class RunCodeConfig(BaseActionConfig):
    """Run code: a script executed by the configured script executor."""
    type: Literal["run_code"]
    code: str = Field(default="", alias="JAVASCRIPT_CODE")


class ApiCallConfig(BaseActionConfig):
    """API call: a single HTTP request."""
    type: Literal["api_call"]
    url: str = Field(default="", alias="URL")
    method: str = Field(default="GET", alias="METHOD")
    headers: str = Field(default="", alias="HEADERS")
    body: str = Field(default="", alias="BODY")

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value):
        return str(value or "GET").strip().upper() or "GET"

    @field_validator("url", "headers", "body", mode="before")
    @classmethod
    def _stringify(cls, value):
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class ComputationConfig(BaseActionConfig):
    """Computation: a single expression."""
    type: Literal["computation"]
    expression: str = Field(default="", alias="EXPRESSION_CODE")

    @field_validator("expression", mode="before")
    @classmethod
    def _stringify(cls, value):
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class UnknownActionConfig(BaseActionConfig):
    """Fallback for unset or unrecognised action types."""
    type: Literal["unknown"]


ActionConfig = Annotated[
    Union[
        ManualTriggerConfig,
        ScheduleTriggerConfig,
        RunCodeConfig,
        ApiCallConfig,
        ComputationConfig,
        UnknownActionConfig,
    ],
    Field(discriminator="type")
]


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

_action_config_adapter = TypeAdapter(ActionConfig)


def validate_action_config(action_type: Any, user_input: Optional[Dict[str, Any]]) -> BaseActionConfig:
    """Build the typed configuration for an action from its raw user input.

    Unrecognised action types resolve to ``UnknownActionConfig``.

    Raises:
        pydantic.ValidationError: If the user input cannot be coerced
    """
    kind = ActionType.parse(action_type)
    params = {**(user_input or {}), "type": kind.value}
    return _action_config_adapter.validate_python(params)


def is_trigger_action(action_type: Any) -> bool:
    """Check whether an action type is one of the trigger kinds."""
    return ActionType.parse(action_type) in TRIGGER_ACTION_TYPES
