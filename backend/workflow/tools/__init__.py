"""Tool System: registry and built-in agent, workflow, canvas and platform tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .agent_tools import agent_tools
from .canvas_tools import canvas_tools
from .platform_tools import platform_tools
from .registry import Tool, ToolContext, ToolRegistry, ToolResult
from .workflow_tools import workflow_tools

if TYPE_CHECKING:
    from ..engine.executor import WorkflowEngine
    from ..nodes.registry import NodeExecutorRegistry
    from ..storage import WorkflowStorage


def create_tool_registry(
    storage: "WorkflowStorage",
    engine: Optional["WorkflowEngine"] = None,
    node_registry: Optional["NodeExecutorRegistry"] = None,
) -> ToolRegistry:
    """Build a registry holding every built-in tool bound to the given collaborators."""
    registry = ToolRegistry()
    if node_registry is None and engine is not None:
        node_registry = engine.registry
    ctx = ToolContext(
        storage=storage,
        engine=engine,
        node_registry=node_registry,
        tool_registry=registry,
    )
    for tool in agent_tools(ctx) + workflow_tools(ctx) + canvas_tools(ctx) + platform_tools(ctx):
        registry.register(tool)
    return registry


__all__ = [
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "ToolResult",
    "create_tool_registry",
]
