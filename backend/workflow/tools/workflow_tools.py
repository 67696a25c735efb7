"""Workflow tools: createWorkflow, listWorkflows, getWorkflowDetails,
updateWorkflow, executeWorkflow."""

from __future__ import annotations

from collections import Counter
from functools import partial
from typing import Any, Dict, List

from ..errors import ToolValidationError
from ..storage import WORKFLOW_STATUSES, WorkflowRecord
from .agent_tools import require_agent
from .registry import Tool, ToolContext, ToolResult

_INPUT_CATEGORIES = ("input", "trigger")
_OUTPUT_CATEGORIES = ("output",)


async def require_workflow(ctx: ToolContext, workflow_id: int) -> WorkflowRecord:
    workflow = await ctx.storage.get_workflow(workflow_id)
    if workflow is None:
        raise ToolValidationError(f"Workflow with ID {workflow_id} not found")
    return workflow


async def create_workflow(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    agent_id = params.get("agentId")
    if agent_id is not None:
        await require_agent(ctx, agent_id)

    workflow = await ctx.storage.create_workflow(
        params["name"],
        description=params.get("description", ""),
        type=params.get("type", "custom"),
        status=params.get("status", "draft"),
        agent_id=agent_id,
    )
    return ToolResult.ok(f'Created workflow "{workflow.name}" successfully', workflow.to_dict())


async def list_workflows(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    workflow_type = params.get("type")
    agent_id = params.get("agentId")
    workflows = await ctx.storage.list_workflows(type=workflow_type, agent_id=agent_id)
    if not params.get("includeInactive", False):
        workflows = [w for w in workflows if w.status != "inactive"]

    message = f"Found {len(workflows)} workflows"
    if workflow_type:
        message += f' of type "{workflow_type}"'
    if agent_id is not None:
        message += f" for agent ID {agent_id}"
    return ToolResult.ok(message, [w.to_dict(include_graph=False) for w in workflows])


def _node_category(ctx: ToolContext, node_type: str) -> str:
    definition = ctx.node_registry.get_definition(node_type) if ctx.node_registry else None
    if definition is not None:
        return definition.category
    for category in _INPUT_CATEGORIES + _OUTPUT_CATEGORIES:
        if category in node_type:
            return category
    return "processing"


async def get_workflow_details(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    workflow = await require_workflow(ctx, params["workflowId"])
    graph = workflow.graph

    structure = {"input_nodes": 0, "output_nodes": 0, "processing_nodes": 0,
                 "connection_count": len(graph.edges)}
    for node in graph.nodes:
        category = _node_category(ctx, node.type)
        if category in _INPUT_CATEGORIES:
            structure["input_nodes"] += 1
        elif category in _OUTPUT_CATEGORIES:
            structure["output_nodes"] += 1
        else:
            structure["processing_nodes"] += 1

    result = workflow.to_dict(include_graph=False)
    result["structure"] = structure
    result["node_types"] = dict(Counter(node.type for node in graph.nodes))
    result["stats"] = {"total_nodes": len(graph.nodes), "total_connections": len(graph.edges)}

    if params.get("includeNodes", True):
        result["nodes"] = [n.to_dict() for n in graph.nodes]
        result["edges"] = [e.to_dict() for e in graph.edges]

    return ToolResult.ok(f'Retrieved workflow details for "{workflow.name}"', result)


async def update_workflow(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    workflow = await require_workflow(ctx, params["workflowId"])

    changes: Dict[str, Any] = {}
    for key in ("name", "description", "type", "status"):
        if key in params:
            changes[key] = params[key]
    if "agentId" in params:
        if params["agentId"] is not None:
            await require_agent(ctx, params["agentId"])
        changes["agent_id"] = params["agentId"]

    if not changes:
        return ToolResult.fail("No fields to update")

    updated = await ctx.storage.update_workflow(workflow.id, **changes)
    return ToolResult.ok(
        f"Workflow {workflow.id} updated ({', '.join(sorted(changes))})",
        updated.to_dict(include_graph=False),
    )


async def execute_workflow(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    if ctx.engine is None:
        return ToolResult.fail("Workflow execution is not available")

    workflow = await require_workflow(ctx, params["workflowId"])
    if workflow.status != "active":
        return ToolResult.fail(
            f"Workflow with ID {workflow.id} is not active (status: {workflow.status})"
        )

    result = await ctx.engine.execute_workflow(
        workflow.id,
        params.get("input", {}),
        trigger_type=params.get("triggerType"),
        source=options.get("source", "tool"),
    )

    data = result.to_response()
    if params.get("debug", False):
        data["node_states"] = [state.to_dict() for state in result.node_states]

    if result.succeeded:
        return ToolResult(
            success=True,
            message=f'Executed workflow "{workflow.name}" successfully',
            data=data,
        )
    return ToolResult(
        success=False,
        message=f'Workflow "{workflow.name}" failed',
        data=data,
        error=result.error,
    )


def workflow_tools(ctx: ToolContext) -> List[Tool]:
    workflow_id = {"type": "integer", "description": "The ID of the workflow"}
    return [
        Tool(
            name="createWorkflow",
            description="Creates a new, empty workflow, optionally owned by an agent",
            category="workflow",
            parameters={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1, "description": "The name of the workflow"},
                    "description": {"type": "string", "description": "A description of the workflow"},
                    "type": {"type": "string", "description": 'The type of workflow (e.g., "custom", "template")'},
                    "agentId": {"type": "integer", "description": "The ID of the agent this workflow belongs to"},
                    "status": {"type": "string", "enum": list(WORKFLOW_STATUSES)},
                },
                "required": ["name"],
            },
            execute=partial(create_workflow, ctx),
        ),
        Tool(
            name="listWorkflows",
            description="Lists workflows, optionally filtered by type or agent",
            category="workflow",
            parameters={
                "type": "object",
                "properties": {
                    "type": {"type": "string", "description": "Filter workflows by type"},
                    "agentId": {"type": "integer", "description": "Filter workflows by owning agent"},
                    "includeInactive": {
                        "type": "boolean",
                        "description": "Whether to include inactive workflows in the results",
                    },
                },
            },
            execute=partial(list_workflows, ctx),
        ),
        Tool(
            name="getWorkflowDetails",
            description="Get detailed information about a specific workflow",
            category="workflow",
            parameters={
                "type": "object",
                "properties": {
                    "workflowId": workflow_id,
                    "includeNodes": {
                        "type": "boolean",
                        "default": True,
                        "description": "Whether to include nodes and edges in the result",
                    },
                },
                "required": ["workflowId"],
            },
            execute=partial(get_workflow_details, ctx),
        ),
        Tool(
            name="updateWorkflow",
            description="Update a workflow's name, description, type, status or agent",
            category="workflow",
            parameters={
                "type": "object",
                "properties": {
                    "workflowId": workflow_id,
                    "name": {"type": "string", "minLength": 1},
                    "description": {"type": "string"},
                    "type": {"type": "string"},
                    "status": {"type": "string", "enum": list(WORKFLOW_STATUSES)},
                    "agentId": {"type": ["integer", "null"]},
                },
                "required": ["workflowId"],
            },
            execute=partial(update_workflow, ctx),
        ),
        Tool(
            name="executeWorkflow",
            description="Execute an active workflow with the provided input",
            category="workflow",
            parameters={
                "type": "object",
                "properties": {
                    "workflowId": workflow_id,
                    "input": {"description": "The input data for the workflow", "default": {}},
                    "triggerType": {
                        "type": "string",
                        "description": "Node type used to find the entry node (default: trigger)",
                    },
                    "debug": {
                        "type": "boolean",
                        "default": False,
                        "description": "Whether to include per-node states in the result",
                    },
                },
                "required": ["workflowId"],
            },
            execute=partial(execute_workflow, ctx),
        ),
    ]
