"""Node template catalog and node configuration building.

The catalog lists the trigger and action templates the editor offers, with
their configuration fields and defaults. ``build_node_config`` turns a
template name plus submitted field values into the ``data`` block of a new
node.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from nodeflow.constants import (
    ActionType,
    JAVASCRIPT_CODE,
    URL,
    METHOD,
    HEADERS,
    BODY,
    EXPRESSION_CODE,
    TRIGGER_ON,
    INTERVAL_BETWEEN_TRIGGER,
    TIME_TO_TRIGGER,
    HTTP_METHODS,
)
from nodeflow.models.nodes import NodeData


class FieldOption(BaseModel):
    label: str
    value: str


class ConfigField(BaseModel):
    """One configuration field of a template."""
    type: str
    label: str
    label_type: Optional[str] = Field(default=None, alias="labelType")
    default: Any = None
    required: bool = False
    description: str = ""
    options: List[FieldOption] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def key(self) -> str:
        """Key under which the field value is stored in ``userInput``."""
        return self.label_type or self.label

    def default_value(self) -> Any:
        """Default value, unwrapping ``{label, value}`` select defaults."""
        if self.default is not None:
            if isinstance(self.default, dict) and "value" in self.default:
                return self.default["value"]
            return self.default
        return 0 if self.type == "number" else ""


class NodeTemplate(BaseModel):
    name: str
    action_type: ActionType = Field(alias="actionType")
    description: str = ""
    is_trigger: bool = Field(default=False, alias="isTrigger")
    configuration: List[ConfigField] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


TRIGGER_TEMPLATES: List[NodeTemplate] = [
    NodeTemplate(
        name="Manual Trigger",
        action_type=ActionType.MANUAL_TRIGGER,
        is_trigger=True,
        description="Start the workflow manually from the UI or another explicit user action.",
    ),
    NodeTemplate(
        name="Schedule Trigger",
        action_type=ActionType.SCHEDULE_TRIGGER,
        is_trigger=True,
        description="Run the workflow automatically on a schedule, such as every hour or every day.",
        configuration=[
            ConfigField(
                type="select", label_type=TRIGGER_ON, label="Trigger on", required=True,
                description="The schedule to run the workflow on.",
                default={"label": "Every minute", "value": "min"},
                options=[
                    FieldOption(label="Every second", value="sec"),
                    FieldOption(label="Every minute", value="min"),
                    FieldOption(label="Every hour", value="hour"),
                    FieldOption(label="Every day", value="day"),
                    FieldOption(label="Every week", value="week"),
                    FieldOption(label="Every month", value="month"),
                ],
            ),
            ConfigField(
                type="number", label_type=INTERVAL_BETWEEN_TRIGGER, label="Interval between triggers",
                required=True, description="The time between triggers.", default="1",
            ),
            ConfigField(
                type="time", label_type=TIME_TO_TRIGGER, label="Time", required=True,
                description="The time to trigger the workflow at.", default="00:00",
            ),
        ],
    ),
]

ACTION_TEMPLATES: List[NodeTemplate] = [
    NodeTemplate(
        name="Run Code",
        action_type=ActionType.RUN_CODE,
        description="Run custom code logic directly within the workflow when this node is executed.",
        configuration=[
            ConfigField(
                type="textarea", label_type=JAVASCRIPT_CODE, label="Code", required=True,
                description=("The code to run. Restricted Python by default; "
                             "JavaScript when the server runs with SCRIPT_ENGINE=node."),
                default='log("Hello, world!")',
            ),
        ],
    ),
    NodeTemplate(
        name="API Call",
        action_type=ActionType.API_CALL,
        description="Call an external HTTP API endpoint and use its response in the workflow.",
        configuration=[
            ConfigField(type="text", label_type=URL, label="URL", required=True,
                        description="The URL to call.", default="https://api.example.com"),
            ConfigField(type="text", label_type=HEADERS, label="Headers",
                        description="The headers of the request.", default=""),
            ConfigField(type="select", label_type=METHOD, label="Method", required=True,
                        description="The HTTP method to use.", default="GET",
                        options=[FieldOption(label=m, value=m) for m in HTTP_METHODS]),
            ConfigField(type="textarea", label_type=BODY, label="Body",
                        description="The body of the request.", default=""),
        ],
    ),
    NodeTemplate(
        name="Computation",
        action_type=ActionType.COMPUTATION,
        description="Perform mathematical calculations, string manipulations, or other data transformations.",
        configuration=[
            ConfigField(type="text", label_type=EXPRESSION_CODE, label="Expression Code", required=True,
                        description="The expression to evaluate.", default="1 + 1"),
        ],
    ),
]


def all_templates() -> List[NodeTemplate]:
    return TRIGGER_TEMPLATES + ACTION_TEMPLATES


def find_template_by_name(name: str) -> Optional[NodeTemplate]:
    return next((t for t in all_templates() if t.name == name), None)


def is_trigger_template(name: str) -> bool:
    return any(t.name == name for t in TRIGGER_TEMPLATES)


def parse_headers(raw: Any) -> Dict[str, str]:
    """Parse a JSON header string; anything unparseable becomes an empty set."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw) if isinstance(raw, str) else raw
    except (json.JSONDecodeError, TypeError):
        return {}
    if not isinstance(parsed, dict):
        return {}
    return {str(k): str(v) for k, v in parsed.items()}


def build_user_input(configuration: List[ConfigField],
                     values: Optional[Dict[str, Any]] = None,
                     action_type: Optional[ActionType] = None) -> Dict[str, Any]:
    """Build ``userInput`` from submitted values, falling back to field defaults.

    For API calls the BODY field is left out entirely when the method is GET.
    """
    values = values or {}
    method_value = None
    if action_type == ActionType.API_CALL:
        method_field = next((f for f in configuration if f.key == METHOD), None)
        if method_field is not None:
            raw = values.get(METHOD)
            method_value = str(raw if raw is not None else method_field.default_value()).upper()

    user_input: Dict[str, Any] = {}
    for config_field in configuration:
        key = config_field.key
        if key == BODY and method_value == "GET":
            continue
        if values.get(key) is not None:
            user_input[key] = values[key]
        else:
            user_input[key] = config_field.default_value()
    return user_input


def generate_executable_code(action_type: ActionType, user_input: Dict[str, Any]) -> str:
    """Render a read-only preview of what the node will execute."""
    if action_type == ActionType.RUN_CODE:
        return str(user_input.get(JAVASCRIPT_CODE) or "")

    if action_type == ActionType.API_CALL:
        url = str(user_input.get(URL) or "")
        method = str(user_input.get(METHOD) or "GET").upper()
        headers = json.dumps(parse_headers(user_input.get(HEADERS)))
        if method == "GET":
            return f"request({json.dumps(method)}, {json.dumps(url)}, headers={headers})"
        body = str(user_input.get(BODY) or "")
        body_expr = json.dumps(body) if body else "None"
        return f"request({json.dumps(method)}, {json.dumps(url)}, headers={headers}, content={body_expr})"

    if action_type == ActionType.COMPUTATION:
        return str(user_input.get(EXPRESSION_CODE) or "")

    return ""


def build_node_config(name: str, values: Optional[Dict[str, Any]] = None) -> NodeData:
    """Build the ``data`` block of a node created from template ``name``."""
    template = find_template_by_name(name)
    action_type = template.action_type if template else ActionType.UNKNOWN
    configuration = template.configuration if template else []

    user_input = build_user_input(configuration, values, action_type)
    return NodeData(
        label=name,
        is_trigger=is_trigger_template(name),
        action_type=action_type.value if template else "",
        user_input=user_input,
        executable_code=generate_executable_code(action_type, user_input),
    )

