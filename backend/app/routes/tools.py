"""Tool and node type endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from workflow.logging_config import get_api_logger
from workflow.tools import ToolResult

from ..dependencies import Services, get_services
from ..models.schemas import ToolInvokeRequest

router = APIRouter(prefix="/api", tags=["tools"])

logger = get_api_logger()


@router.get("/node-types")
async def list_node_types(
    category: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    registry = services.node_registry
    definitions = registry.list_node_types_by_category(category) if category else registry.list_node_types()
    return [definition.to_dict() for definition in definitions]


@router.get("/tools")
async def list_tools(
    context: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    """Tool descriptions; context and category filters compose."""
    registry = services.tool_registry
    tools = registry.tools_by_context(context) if context else registry.all_tools()
    if category and category != "all":
        tools = [tool for tool in tools if tool.category == category]
    return [tool.describe(include_parameters=True) for tool in tools]


@router.post("/tools/{name}", response_model=ToolResult)
async def invoke_tool(
    name: str,
    body: Optional[ToolInvokeRequest] = None,
    services: Services = Depends(get_services),
):
    """Invoke a tool. Tool failures are reported in the body, not the status."""
    if name not in services.tool_registry:
        raise HTTPException(status_code=404, detail=f"Tool '{name}' not found")
    body = body or ToolInvokeRequest()
    options = {"source": "api", **body.options}
    result = await services.tool_registry.execute(name, body.params, options)
    if not result.success:
        logger.info(f"Tool {name} failed: {result.error}")
    return result
