"""Workflow CRUD API endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from workflow.engine.graph import WorkflowGraph, validate_workflow
from workflow.logging_config import get_api_logger
from workflow.storage import WorkflowRecord

from ..dependencies import Services, get_services
from ..models.schemas import (
    CreateWorkflowRequest,
    GraphRequest,
    UpdateWorkflowRequest,
    WorkflowResponse,
)

router = APIRouter(prefix="/api/workflows", tags=["workflows"])

logger = get_api_logger()


# --- Helper functions ---


def _workflow_to_response(wf: WorkflowRecord, include_graph: bool = True) -> WorkflowResponse:
    return WorkflowResponse(**wf.to_dict(include_graph=include_graph))


def _parse_graph(services: Services, body: GraphRequest) -> WorkflowGraph:
    """Build and validate a graph; any error becomes a 422."""
    try:
        graph = WorkflowGraph.from_dict(body.to_wire())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = validate_workflow(graph, services.node_registry)
    if not result.valid:
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Invalid workflow graph",
                "errors": [issue.to_dict() for issue in result.errors],
            },
        )
    return graph


async def _require_workflow(services: Services, workflow_id: int) -> WorkflowRecord:
    workflow = await services.storage.get_workflow(workflow_id)
    if workflow is None:
        raise HTTPException(status_code=404, detail=f"Workflow with ID {workflow_id} not found")
    return workflow


# --- Endpoints ---


@router.post("", response_model=WorkflowResponse, status_code=201)
async def create_workflow(
    body: CreateWorkflowRequest,
    services: Services = Depends(get_services),
):
    """Create a workflow, optionally with an initial graph."""
    if body.agent_id is not None and await services.storage.get_agent(body.agent_id) is None:
        raise HTTPException(status_code=404, detail=f"Agent with ID {body.agent_id} not found")

    fields = body.model_dump(exclude={"name", "graph"})
    if body.graph is not None:
        fields["graph"] = _parse_graph(services, body.graph)

    workflow = await services.storage.create_workflow(body.name, **fields)
    logger.info(f"Created workflow {workflow.id} ({workflow.name})")
    return _workflow_to_response(workflow)


@router.get("", response_model=List[WorkflowResponse])
async def list_workflows(
    type: Optional[str] = Query(None),
    agent_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    """List workflows without their graphs."""
    workflows = await services.storage.list_workflows(type=type, agent_id=agent_id)
    if status:
        workflows = [w for w in workflows if w.status == status]
    return [_workflow_to_response(w, include_graph=False) for w in workflows]


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(workflow_id: int, services: Services = Depends(get_services)):
    return _workflow_to_response(await _require_workflow(services, workflow_id))


@router.patch("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: int,
    body: UpdateWorkflowRequest,
    services: Services = Depends(get_services),
):
    """Update workflow metadata."""
    await _require_workflow(services, workflow_id)
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    if changes.get("agent_id") is not None and await services.storage.get_agent(changes["agent_id"]) is None:
        raise HTTPException(status_code=404, detail=f"Agent with ID {changes['agent_id']} not found")

    workflow = await services.storage.update_workflow(workflow_id, **changes)
    return _workflow_to_response(workflow)


@router.put("/{workflow_id}/graph", response_model=WorkflowResponse)
async def replace_graph(
    workflow_id: int,
    body: GraphRequest,
    services: Services = Depends(get_services),
):
    """Replace the workflow's graph. Invalid graphs are rejected with 422."""
    await _require_workflow(services, workflow_id)
    graph = _parse_graph(services, body)
    workflow = await services.storage.update_graph(workflow_id, graph)
    logger.info(f"Workflow {workflow_id} graph replaced ({len(graph.nodes)} nodes, {len(graph.edges)} edges)")
    return _workflow_to_response(workflow)


@router.delete("/{workflow_id}", status_code=204)
async def delete_workflow(workflow_id: int, services: Services = Depends(get_services)):
    if not await services.storage.delete_workflow(workflow_id):
        raise HTTPException(status_code=404, detail=f"Workflow with ID {workflow_id} not found")
    return Response(status_code=204)
