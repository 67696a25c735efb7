"""Workflow execution and run log endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from workflow.logging_config import get_api_logger

from ..dependencies import Services, get_services
from ..models.schemas import ExecuteRequest, ExecuteResponse, LogResponse

router = APIRouter(prefix="/api/workflows", tags=["execution"])

logger = get_api_logger()


@router.post("/{workflow_id}/execute", response_model=ExecuteResponse, response_model_exclude_none=True)
async def execute_workflow(
    workflow_id: int,
    payload: ExecuteRequest,
    services: Services = Depends(get_services),
):
    """Run a workflow to completion and return its outcome.

    A run that fails is still a 200; its ``status`` is ``error``.
    """
    workflow = await services.storage.get_workflow(workflow_id)
    if workflow is None:
        raise HTTPException(status_code=404, detail=f"Workflow with ID {workflow_id} not found")

    source = payload.metadata.get("source", "api")
    result = await services.engine.execute_workflow(
        workflow_id,
        payload.input,
        trigger_type=payload.metadata.get("triggerType"),
        source=source,
    )
    logger.info(f"Run {result.run_id} of workflow {workflow_id} finished: {result.status}")
    return ExecuteResponse(**result.to_response())


@router.get("/{workflow_id}/logs", response_model=List[LogResponse])
async def list_logs(
    workflow_id: int,
    limit: int = Query(20, ge=1, le=200),
    services: Services = Depends(get_services),
):
    """Most recent runs first."""
    logs = await services.storage.list_logs(workflow_id=workflow_id, limit=limit)
    return [LogResponse(**log.to_dict()) for log in logs]
