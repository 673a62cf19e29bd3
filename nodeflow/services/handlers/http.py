"""HTTP node handler - API Call."""

import time
from typing import Any, Dict, Optional

import httpx

from nodeflow.core.logging import get_logger, log_execution_time
from nodeflow.models.execution import EntryStatus, NodeExecutionResult
from nodeflow.models.nodes import WorkflowNode, ApiCallConfig
from nodeflow.services.node_templates import parse_headers

logger = get_logger(__name__)


def build_request_kwargs(config: ApiCallConfig) -> Dict[str, Any]:
    """Build ``httpx`` request arguments from the node configuration.

    GET requests never carry a body: ``config.body`` is not read for them.
    """
    kwargs: Dict[str, Any] = {
        'method': config.method,
        'url': config.url,
        'headers': parse_headers(config.headers),
    }
    if config.method == 'GET':
        return kwargs

    if config.body:
        kwargs['content'] = config.body
    return kwargs


def _response_payload(response: httpx.Response) -> Any:
    """Decoded JSON when the response has it, else a summary of the raw response."""
    try:
        return response.json()
    except ValueError:
        return {
            "status": response.status_code,
            "headers": dict(response.headers),
            "url": str(response.url),
            "body": response.text,
        }


async def handle_api_call(
    node: WorkflowNode,
    config: ApiCallConfig,
    context: Dict[str, Any],
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> NodeExecutionResult:
    """Handle API Call node execution.

    Args:
        node: The node being executed
        config: Typed API call configuration
        context: Execution context
        timeout: Request timeout in seconds
        transport: Optional transport override (tests, proxies)

    Returns:
        ``{response: payload}`` on success, ``{error}`` on transport failure
    """
    start_time = time.time()

    if not config.url:
        return NodeExecutionResult(output={"error": "URL is required"}, status=EntryStatus.ERROR)

    kwargs = build_request_kwargs(config)
    logger.info("[API Call] Executing", node_id=node.id, method=config.method, url=config.url)

    client_kwargs: Dict[str, Any] = {"timeout": timeout}
    if transport is not None:
        client_kwargs["transport"] = transport

    try:
        async with httpx.AsyncClient(**client_kwargs) as client:
            response = await client.request(**kwargs)
            payload = _response_payload(response)
    except httpx.TimeoutException:
        logger.error("API call timed out", node_id=node.id, url=config.url)
        return NodeExecutionResult(
            output={"error": f"Request timed out after {timeout} seconds"},
            status=EntryStatus.ERROR,
        )
    except httpx.HTTPError as e:
        logger.error("API call failed", node_id=node.id, url=config.url, error=str(e))
        return NodeExecutionResult(
            output={"error": str(e) or type(e).__name__},
            status=EntryStatus.ERROR,
        )

    log_execution_time(logger, "api_call", start_time, time.time(),
                       node_id=node.id, status=response.status_code)
    return NodeExecutionResult(output={"response": payload}, status=EntryStatus.SUCCESS)
