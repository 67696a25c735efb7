"""Canvas tools: addNode, updateNodeParameters, connectNodes, removeNode,
validateWorkflow.

These mutate a workflow's graph and are only offered in the ``canvas`` and
``workflow`` contexts.
"""

from __future__ import annotations

import uuid
from functools import partial
from typing import Any, Dict, List

from ..engine.graph import GraphEdge, GraphNode, Position, validate_workflow
from ..errors import ToolValidationError
from .registry import Tool, ToolContext, ToolResult
from .workflow_tools import require_workflow

CANVAS_CONTEXTS = ["canvas", "workflow"]

DEFAULT_POSITION = {"x": 100, "y": 100}


def _check_node_type(ctx: ToolContext, node_type: str) -> None:
    if ctx.node_registry is None or ctx.node_registry.is_registered(node_type):
        return
    available = ", ".join(ctx.node_registry.node_types())
    raise ToolValidationError(
        f'Invalid node type: "{node_type}". Must be one of the available node types: {available}'
    )


async def add_node(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    node_type = params["nodeType"]
    _check_node_type(ctx, node_type)
    workflow = await require_workflow(ctx, params["workflowId"])

    definition = ctx.node_registry.get_definition(node_type) if ctx.node_registry else None
    data = dict(definition.default_data) if definition else {}
    data.update(params.get("data") or {})

    node = GraphNode(
        id=params.get("nodeId") or f"{node_type}_{uuid.uuid4().hex[:8]}",
        type=node_type,
        position=Position.from_dict(params.get("position") or DEFAULT_POSITION),
        data=data,
    )
    try:
        await ctx.storage.add_node(workflow.id, node)
    except ValueError as e:
        raise ToolValidationError(str(e)) from e

    return ToolResult.ok(
        f"Node {node.id} ({node_type}) added to workflow {workflow.id}",
        node.to_dict(),
    )


async def update_node_parameters(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    workflow = await require_workflow(ctx, params["workflowId"])
    node_id = params["nodeId"]
    if workflow.graph.get_node(node_id) is None:
        return ToolResult.fail(f"Node with ID {node_id} not found")

    parameters = dict(params["parameters"])
    new_type = parameters.pop("type", None)
    if new_type is not None:
        _check_node_type(ctx, new_type)

    node = await ctx.storage.update_node(workflow.id, node_id, data=parameters, type=new_type)
    if node is None:
        return ToolResult.fail(f"Failed to update node {node_id}")

    reason = params.get("reason")
    message = f"Node {node_id} parameters updated"
    if reason:
        message += f" (Reason: {reason})"
    return ToolResult.ok(message, node.to_dict())


async def connect_nodes(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    workflow = await require_workflow(ctx, params["workflowId"])
    source, target = params["source"], params["target"]
    source_handle = params.get("sourceHandle")

    source_node = workflow.graph.get_node(source)
    if source_node is None:
        return ToolResult.fail(f"Node with ID {source} not found")
    if workflow.graph.get_node(target) is None:
        return ToolResult.fail(f"Node with ID {target} not found")

    definition = ctx.node_registry.get_definition(source_node.type) if ctx.node_registry else None
    if source_handle and definition and source_handle not in definition.output_ports:
        return ToolResult.fail(
            f'Node type "{source_node.type}" has no output port "{source_handle}" '
            f"(ports: {', '.join(definition.output_ports)})"
        )

    edge = GraphEdge(
        id=params.get("edgeId") or f"e-{source}-{source_handle or 'default'}-{target}",
        source=source,
        target=target,
        source_handle=source_handle,
        target_handle=params.get("targetHandle"),
    )
    try:
        await ctx.storage.add_edge(workflow.id, edge)
    except ValueError as e:
        raise ToolValidationError(str(e)) from e

    return ToolResult.ok(f"Connected {source} to {target}", edge.to_dict())


async def remove_node(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    workflow = await require_workflow(ctx, params["workflowId"])
    node_id = params["nodeId"]
    if not await ctx.storage.remove_node(workflow.id, node_id):
        return ToolResult.fail(f"Node with ID {node_id} not found")
    return ToolResult.ok(f"Node {node_id} removed from workflow {workflow.id}")


async def validate_workflow_tool(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    workflow = await require_workflow(ctx, params["workflowId"])
    result = validate_workflow(workflow.graph, ctx.node_registry)
    if result.valid:
        message = f"Workflow {workflow.id} is valid"
    else:
        message = f"Workflow {workflow.id} has {len(result.errors)} error(s)"
    return ToolResult.ok(message, result.to_dict())


def canvas_tools(ctx: ToolContext) -> List[Tool]:
    workflow_id = {"type": "integer", "description": "The ID of the workflow"}
    node_id = {"type": "string", "description": "The ID of the node within the workflow"}
    return [
        Tool(
            name="addNode",
            description="Add a node of a registered type to a workflow",
            category="canvas",
            contexts=CANVAS_CONTEXTS,
            parameters={
                "type": "object",
                "properties": {
                    "workflowId": workflow_id,
                    "nodeType": {"type": "string", "description": "The registered node type to add"},
                    "nodeId": {"type": "string", "description": "Node ID (generated when omitted)"},
                    "position": {
                        "type": "object",
                        "properties": {"x": {"type": "number"}, "y": {"type": "number"}},
                        "required": ["x", "y"],
                    },
                    "data": {"type": "object", "description": "Configuration merged over the type's defaults"},
                },
                "required": ["workflowId", "nodeType"],
            },
            execute=partial(add_node, ctx),
        ),
        Tool(
            name="updateNodeParameters",
            description="Merge parameters into a node's data. Changing the node type is "
                        "only allowed to a registered type.",
            category="canvas",
            contexts=CANVAS_CONTEXTS,
            parameters={
                "type": "object",
                "properties": {
                    "workflowId": workflow_id,
                    "nodeId": node_id,
                    "parameters": {"type": "object", "description": "Fields to merge into the node data"},
                    "reason": {"type": "string", "description": "Why the parameters are changing"},
                },
                "required": ["workflowId", "nodeId", "parameters"],
            },
            execute=partial(update_node_parameters, ctx),
        ),
        Tool(
            name="connectNodes",
            description="Connect an output port of one node to another node",
            category="canvas",
            contexts=CANVAS_CONTEXTS,
            parameters={
                "type": "object",
                "properties": {
                    "workflowId": workflow_id,
                    "source": {"type": "string"},
                    "target": {"type": "string"},
                    "sourceHandle": {"type": "string", "description": "Output port (default port when omitted)"},
                    "targetHandle": {"type": "string", "description": "Input port (input when omitted)"},
                    "edgeId": {"type": "string"},
                },
                "required": ["workflowId", "source", "target"],
            },
            execute=partial(connect_nodes, ctx),
        ),
        Tool(
            name="removeNode",
            description="Remove a node and its edges from a workflow",
            category="canvas",
            contexts=CANVAS_CONTEXTS,
            parameters={
                "type": "object",
                "properties": {"workflowId": workflow_id, "nodeId": node_id},
                "required": ["workflowId", "nodeId"],
            },
            execute=partial(remove_node, ctx),
        ),
        Tool(
            name="validateWorkflow",
            description="Check a workflow's graph for structural and configuration problems",
            category="canvas",
            contexts=CANVAS_CONTEXTS,
            parameters={
                "type": "object",
                "properties": {"workflowId": workflow_id},
                "required": ["workflowId"],
            },
            execute=partial(validate_workflow_tool, ctx),
        ),
    ]
