"""Agent tools: createAgent, listAgents, getAgentDetails."""

from __future__ import annotations

from functools import partial
from typing import Any, Dict, List

from ..errors import ToolValidationError
from .registry import Tool, ToolContext, ToolResult

AGENT_STATUSES = ["active", "inactive", "draft"]


async def require_agent(ctx: ToolContext, agent_id: int):
    agent = await ctx.storage.get_agent(agent_id)
    if agent is None:
        raise ToolValidationError(f"Agent with ID {agent_id} not found")
    return agent


async def create_agent(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    agent = await ctx.storage.create_agent(
        params["name"],
        description=params.get("description", ""),
        type=params.get("type", "custom"),
        icon=params.get("icon", "brain"),
        status=params.get("status", "active"),
    )
    return ToolResult.ok(f'Created agent "{agent.name}" successfully', agent.to_dict())


async def list_agents(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    agent_type = params.get("type")
    agents = await ctx.storage.list_agents()
    if agent_type:
        agents = [a for a in agents if a.type == agent_type]
    if not params.get("includeInactive", False):
        agents = [a for a in agents if a.status != "inactive"]

    message = f"Found {len(agents)} agents"
    if agent_type:
        message += f' of type "{agent_type}"'
    return ToolResult.ok(message, [a.to_dict() for a in agents])


async def get_agent_details(ctx: ToolContext, params: Dict[str, Any], options: Dict[str, Any]) -> ToolResult:
    agent = await require_agent(ctx, params["agentId"])
    result = agent.to_dict()

    if params.get("includeWorkflows", True):
        workflows = await ctx.storage.list_workflows(agent_id=agent.id)
        result["workflows"] = [w.to_dict(include_graph=False) for w in workflows]

    if params.get("includeLogs", False):
        logs = await ctx.storage.list_logs(agent_id=agent.id, limit=params.get("logLimit", 10))
        result["recent_logs"] = [
            {
                "run_id": log.run_id,
                "workflow_id": log.workflow_id,
                "status": log.status,
                "input": log.input,
                "output": log.output,
                "error": log.error,
                "started_at": log.started_at.isoformat(),
                "completed_at": log.completed_at.isoformat() if log.completed_at else None,
            }
            for log in logs
        ]

    return ToolResult.ok(f'Retrieved agent details for "{agent.name}"', result)


def agent_tools(ctx: ToolContext) -> List[Tool]:
    return [
        Tool(
            name="createAgent",
            description="Creates a new agent in the platform",
            category="agent",
            parameters={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1, "description": "Name of the agent"},
                    "description": {"type": "string", "description": "Description of the agent"},
                    "type": {"type": "string", "description": "Type of the agent (default: custom)"},
                    "icon": {"type": "string", "description": "Icon for the agent (default: brain)"},
                    "status": {
                        "type": "string",
                        "enum": AGENT_STATUSES,
                        "description": "Initial status of the agent (default: active)",
                    },
                },
                "required": ["name"],
            },
            execute=partial(create_agent, ctx),
        ),
        Tool(
            name="listAgents",
            description="Lists agents in the system, optionally filtered by type",
            category="agent",
            parameters={
                "type": "object",
                "properties": {
                    "type": {"type": "string", "description": "Filter agents by type"},
                    "includeInactive": {
                        "type": "boolean",
                        "description": "Whether to include inactive agents in the results",
                    },
                },
            },
            execute=partial(list_agents, ctx),
        ),
        Tool(
            name="getAgentDetails",
            description="Get detailed information about a specific agent",
            category="agent",
            parameters={
                "type": "object",
                "properties": {
                    "agentId": {"type": "integer", "description": "The ID of the agent to retrieve"},
                    "includeWorkflows": {
                        "type": "boolean",
                        "default": True,
                        "description": "Whether to include associated workflows",
                    },
                    "includeLogs": {
                        "type": "boolean",
                        "default": False,
                        "description": "Whether to include recent run logs",
                    },
                    "logLimit": {
                        "type": "integer",
                        "minimum": 1,
                        "default": 10,
                        "description": "Maximum number of logs to include",
                    },
                },
                "required": ["agentId"],
            },
            execute=partial(get_agent_details, ctx),
        ),
    ]
