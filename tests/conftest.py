"""Shared fixtures and graph builders."""

from typing import Any, Dict, Optional

import httpx
import pytest
import pytest_asyncio

from nodeflow.constants import ActionType
from nodeflow.models import is_trigger_action
from nodeflow.services.execution_log import ExecutionRecorder
from nodeflow.services.graph import GraphModel
from nodeflow.services.node_executor import NodeExecutor
from nodeflow.services.notifications import Notifier
from nodeflow.services.triggers import TriggerController
from nodeflow.services.workflow import WorkflowService


def make_node(node_id: str, action_type: Any, user_input: Optional[Dict[str, Any]] = None,
              muted: bool = False, label: Optional[str] = None) -> Dict[str, Any]:
    """Node in the exchange format."""
    kind = ActionType.parse(action_type)
    return {
        "id": node_id,
        "label": label or node_id,
        "position": {"x": 0, "y": 0},
        "data": {
            "label": label or node_id,
            "isTrigger": is_trigger_action(kind),
            "actionType": action_type.value if isinstance(action_type, ActionType) else action_type,
            "userInput": user_input or {},
            "executableCode": "",
            "muted": muted,
        },
    }


def make_edge(source: str, target: str) -> Dict[str, str]:
    return {"source": source, "target": target}


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Mock transport handler that reflects the request back as JSON."""
    return httpx.Response(200, json={
        "method": request.method,
        "url": str(request.url),
        "body": request.content.decode(),
        "headers": dict(request.headers),
    })


@pytest.fixture
def graph():
    return GraphModel()


@pytest.fixture
def recorder():
    return ExecutionRecorder()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def node_executor():
    return NodeExecutor(http_transport=httpx.MockTransport(echo_handler))


@pytest_asyncio.fixture
async def controller():
    controller = TriggerController(immediate_threshold_ms=1000)
    yield controller
    controller.shutdown()


@pytest.fixture
def service(graph, node_executor, recorder, controller, notifier):
    return WorkflowService(
        graph=graph,
        node_executor=node_executor,
        recorder=recorder,
        trigger_controller=controller,
        notifier=notifier,
    )
