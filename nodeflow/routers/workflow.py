"""Workflow routes: graph editing, runs, schedule control and the execution log."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from nodeflow.core.container import container
from nodeflow.core.exceptions import NodeNotFoundError, WorkflowValidationError
from nodeflow.core.logging import get_logger
from nodeflow.services.node_templates import all_templates
from nodeflow.services.workflow import WorkflowService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/workflow", tags=["workflow"])


class GraphRequest(BaseModel):
    nodes: List[Dict[str, Any]] = []
    edges: List[Dict[str, Any]] = []


class NodeUpdateRequest(BaseModel):
    label: Optional[str] = None
    muted: Optional[bool] = None
    data: Optional[Dict[str, Any]] = None


class TemplateNodeRequest(BaseModel):
    template: str
    values: Dict[str, Any] = {}
    position: Optional[Dict[str, float]] = None


def _validation_error(e: WorkflowValidationError) -> JSONResponse:
    code = status.HTTP_404_NOT_FOUND if isinstance(e, NodeNotFoundError) else status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=code, content={"success": False, "error": str(e)})


def get_workflow_service() -> WorkflowService:
    return container.workflow_service()


# =============================================================================
# GRAPH
# =============================================================================

@router.get("/graph")
async def get_graph(workflow_service: WorkflowService = Depends(get_workflow_service)):
    """Current graph snapshot."""
    return workflow_service.graph.to_dict()


@router.put("/graph")
async def set_graph(
    request: GraphRequest,
    workflow_service: WorkflowService = Depends(get_workflow_service)
):
    """Replace the current graph. Edges to unknown nodes are dropped."""
    try:
        return {"success": True, **workflow_service.set_graph(request.nodes, request.edges)}
    except ValueError as e:
        logger.warning("Rejected graph", error=str(e))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content={"success": False, "error": str(e)})


@router.post("/import")
async def import_graph(request: Request,
                       workflow_service: WorkflowService = Depends(get_workflow_service)):
    """Append an exported workflow document to the graph (all-or-nothing)."""
    body = await request.body()
    try:
        counts = workflow_service.import_graph(body)
    except WorkflowValidationError as e:
        return _validation_error(e)
    return {"success": True, "imported": counts}


@router.get("/export")
async def export_graph(workflow_service: WorkflowService = Depends(get_workflow_service)):
    return workflow_service.export_graph()


@router.get("/templates")
async def list_templates():
    """Node template catalog with configuration fields and defaults."""
    return {"templates": [t.model_dump(by_alias=True) for t in all_templates()]}


@router.post("/nodes")
async def add_node(
    request: TemplateNodeRequest,
    workflow_service: WorkflowService = Depends(get_workflow_service)
):
    """Create a node from a template."""
    try:
        node = workflow_service.add_node_from_template(request.template, request.values, request.position)
    except WorkflowValidationError as e:
        return _validation_error(e)
    return {"success": True, "node": node.to_dict()}


@router.patch("/nodes/{node_id}")
async def update_node(
    node_id: str,
    request: NodeUpdateRequest,
    workflow_service: WorkflowService = Depends(get_workflow_service)
):
    """Rename, mute/unmute or update the data block of a node."""
    try:
        node = workflow_service.graph.require_node(node_id)
        if request.data is not None:
            node = workflow_service.update_node_data(node_id, request.data)
        if request.label is not None:
            node = workflow_service.rename_node(node_id, request.label)
        if request.muted is not None:
            node = workflow_service.set_node_muted(node_id, request.muted)
    except WorkflowValidationError as e:
        return _validation_error(e)
    except ValueError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content={"success": False, "error": str(e)})
    return {"success": True, "node": node.to_dict()}


@router.delete("/nodes/{node_id}")
async def delete_node(node_id: str,
                      workflow_service: WorkflowService = Depends(get_workflow_service)):
    try:
        workflow_service.delete_node(node_id)
    except WorkflowValidationError as e:
        return _validation_error(e)
    return {"success": True, "node_id": node_id}


# =============================================================================
# EXECUTION
# =============================================================================

@router.post("/nodes/{node_id}/execute")
async def execute_node(node_id: str,
                       workflow_service: WorkflowService = Depends(get_workflow_service)):
    """Execute a single node and record it as a one-entry execution."""
    try:
        entry = await workflow_service.execute_single_node(node_id)
    except WorkflowValidationError as e:
        return _validation_error(e)
    return {"success": entry.status.value != "error", "entry": entry.to_dict()}


@router.post("/run")
async def run_workflow(workflow_service: WorkflowService = Depends(get_workflow_service)):
    """Run according to the trigger node: manual runs now, schedules arm timers."""
    result = await workflow_service.run_workflow()
    if not result.get("success"):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=result)
    return result


@router.post("/abort")
async def abort_workflow(workflow_service: WorkflowService = Depends(get_workflow_service)):
    """Cancel schedule timers; a run in progress is not interrupted."""
    was_armed = workflow_service.abort()
    return {"success": True, "was_armed": was_armed, "state": workflow_service.state}


@router.get("/status")
async def get_status(workflow_service: WorkflowService = Depends(get_workflow_service)):
    return workflow_service.get_status()


@router.get("/execution")
async def get_execution(workflow_service: WorkflowService = Depends(get_workflow_service)):
    """Current execution and the selected entry (both null when nothing ran)."""
    execution = workflow_service.execution
    selected = workflow_service.selected_entry
    return {
        "execution": execution.to_dict() if execution else None,
        "selected_entry": selected.to_dict() if selected else None,
    }


@router.delete("/execution")
async def clear_execution(workflow_service: WorkflowService = Depends(get_workflow_service)):
    workflow_service.recorder.clear_execution()
    return {"success": True}


@router.put("/execution/selected/{entry_id}")
async def select_entry(entry_id: str,
                       workflow_service: WorkflowService = Depends(get_workflow_service)):
    entry = workflow_service.recorder.select_entry(entry_id)
    if entry is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND,
                            content={"success": False, "error": f"Entry not found: {entry_id}"})
    return {"success": True, "selected_entry": entry.to_dict()}


@router.get("/health")
async def workflow_health_check():
    """Workflow service health check."""
    return {
        "status": "OK",
        "service": "workflow"
    }
