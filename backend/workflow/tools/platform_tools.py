"""Platform tools: getConfig, getTools, listNodeTypes."""

from __future__ import annotations

from functools import partial
from typing import Any, Dict, List

from .. import settings
from .registry import Tool, ToolContext, ToolResult


async def get_config(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    engine = ctx.engine
    config = {
        "engine": {
            "available": engine is not None,
            "max_steps": engine.max_steps if engine else settings.ENGINE_MAX_STEPS,
            "node_timeout": engine.node_timeout if engine else settings.ENGINE_NODE_TIMEOUT,
            "default_trigger": engine.default_trigger if engine else settings.DEFAULT_TRIGGER_TYPE,
        },
        "sandbox": {
            "max_operations": settings.SANDBOX_MAX_OPERATIONS,
            "timeout": settings.SANDBOX_TIMEOUT,
            "expression_max_length": settings.EXPRESSION_MAX_LENGTH,
            "script_max_length": settings.SCRIPT_MAX_LENGTH,
        },
        "node_types": ctx.node_registry.node_types() if ctx.node_registry else [],
        "tool_count": len(ctx.tool_registry) if ctx.tool_registry else 0,
    }
    return ToolResult.ok("Platform configuration", config)


async def get_tools(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    if ctx.tool_registry is None:
        return ToolResult.fail("Tool registry is not available")

    category = params.get("category")
    context = params.get("context")

    tools = ctx.tool_registry.tools_by_context(context) if context else ctx.tool_registry.all_tools()
    if category and category != "all":
        tools = [tool for tool in tools if tool.category == category]

    include_parameters = params.get("includeParameters", True)
    message = f"Found {len(tools)} tools"
    if category and category != "all":
        message += f' in category "{category}"'
    if context:
        message += f' for context "{context}"'
    return ToolResult.ok(message, [tool.describe(include_parameters) for tool in tools])


async def list_node_types(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    if ctx.node_registry is None:
        return ToolResult.fail("Node registry is not available")

    category = params.get("category")
    if category:
        definitions = ctx.node_registry.list_node_types_by_category(category)
    else:
        definitions = ctx.node_registry.list_node_types()
    return ToolResult.ok(
        f"Found {len(definitions)} node types",
        [definition.to_dict() for definition in definitions],
    )


def platform_tools(ctx: ToolContext) -> List[Tool]:
    return [
        Tool(
            name="getConfig",
            description="Gets platform configuration information",
            category="platform",
            execute=partial(get_config, ctx),
        ),
        Tool(
            name="getTools",
            description="Lists available tools, optionally filtered by category and context",
            category="platform",
            parameters={
                "type": "object",
                "properties": {
                    "category": {"type": "string", "description": 'Tool category, or "all"'},
                    "context": {"type": "string", "description": "Only tools offered in this context"},
                    "includeParameters": {"type": "boolean", "default": True},
                },
            },
            execute=partial(get_tools, ctx),
        ),
        Tool(
            name="listNodeTypes",
            description="Lists the node types that can be added to a workflow",
            category="platform",
            parameters={
                "type": "object",
                "properties": {"category": {"type": "string"}},
            },
            execute=partial(list_node_types, ctx),
        ),
    ]
