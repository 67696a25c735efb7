"""Storage Collaborator

Entity records and the async storage interface consumed by the engine and
the tool layer, plus an in-memory implementation.

The SQL implementation lives in ``app/storage.py`` and implements the same
protocol. Nodes and edges are stored inside their workflow's graph, so node
and edge operations are written once (``GraphEditingMixin``) on top of
``get_workflow`` / ``update_graph``.
"""

from __future__ import annotations

import copy
import itertools
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from .engine.graph import GraphEdge, GraphNode, Position, WorkflowGraph

WORKFLOW_STATUSES = ("active", "inactive", "draft")
LOG_STATUSES = ("running", "success", "error")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class AgentRecord:
    id: int
    name: str
    description: Optional[str] = None
    type: str = "custom"
    icon: Optional[str] = None
    status: str = "active"
    configuration: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "icon": self.icon,
            "status": self.status,
            "configuration": self.configuration,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class WorkflowRecord:
    id: int
    name: str
    description: Optional[str] = None
    type: str = "custom"
    icon: Optional[str] = None
    status: str = "draft"
    agent_id: Optional[int] = None
    graph: WorkflowGraph = field(default_factory=WorkflowGraph)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self, include_graph: bool = True) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "icon": self.icon,
            "status": self.status,
            "agent_id": self.agent_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_graph:
            result["graph"] = self.graph.to_dict()
        return result


@dataclass
class LogRecord:
    """One run of one workflow. Keyed by run id, never by workflow id."""

    run_id: str
    workflow_id: Optional[int] = None
    agent_id: Optional[int] = None
    status: str = "running"
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    execution_path: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workflow_id": self.workflow_id,
            "agent_id": self.agent_id,
            "status": self.status,
            "input": self.input,
            "output": self.output,
            "error": self.error,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "execution_path": self.execution_path,
        }


class WorkflowStorage(Protocol):
    """Async CRUD for agents, workflows (with their nodes and edges) and logs."""

    # Agents
    async def create_agent(self, name: str, **fields: Any) -> AgentRecord: ...
    async def get_agent(self, agent_id: int) -> Optional[AgentRecord]: ...
    async def list_agents(self) -> List[AgentRecord]: ...
    async def update_agent(self, agent_id: int, **fields: Any) -> Optional[AgentRecord]: ...

    # Workflows
    async def create_workflow(self, name: str, **fields: Any) -> WorkflowRecord: ...
    async def get_workflow(self, workflow_id: int) -> Optional[WorkflowRecord]: ...
    async def list_workflows(
        self, type: Optional[str] = None, agent_id: Optional[int] = None
    ) -> List[WorkflowRecord]: ...
    async def update_workflow(self, workflow_id: int, **fields: Any) -> Optional[WorkflowRecord]: ...
    async def update_graph(self, workflow_id: int, graph: WorkflowGraph) -> Optional[WorkflowRecord]: ...
    async def delete_workflow(self, workflow_id: int) -> bool: ...

    # Nodes / edges
    async def add_node(self, workflow_id: int, node: GraphNode) -> Optional[GraphNode]: ...
    async def get_node(self, workflow_id: int, node_id: str) -> Optional[GraphNode]: ...
    async def update_node(self, workflow_id: int, node_id: str, **changes: Any) -> Optional[GraphNode]: ...
    async def remove_node(self, workflow_id: int, node_id: str) -> bool: ...
    async def add_edge(self, workflow_id: int, edge: GraphEdge) -> Optional[GraphEdge]: ...
    async def remove_edge(self, workflow_id: int, edge_id: str) -> bool: ...

    # Logs
    async def create_log(
        self,
        workflow_id: Optional[int],
        agent_id: Optional[int] = None,
        input: Any = None,
        run_id: Optional[str] = None,
    ) -> LogRecord: ...
    async def get_log(self, run_id: str) -> Optional[LogRecord]: ...
    async def update_log(self, run_id: str, **fields: Any) -> Optional[LogRecord]: ...
    async def list_logs(
        self,
        workflow_id: Optional[int] = None,
        agent_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[LogRecord]: ...


class GraphEditingMixin:
    """Node and edge operations expressed through whole-graph updates."""

    async def add_node(self, workflow_id: int, node: GraphNode) -> Optional[GraphNode]:
        workflow = await self.get_workflow(workflow_id)
        if workflow is None:
            return None
        if workflow.graph.get_node(node.id) is not None:
            raise ValueError(f"Node '{node.id}' already exists in workflow {workflow_id}")
        workflow.graph.nodes.append(node)
        await self.update_graph(workflow_id, workflow.graph)
        return node

    async def get_node(self, workflow_id: int, node_id: str) -> Optional[GraphNode]:
        workflow = await self.get_workflow(workflow_id)
        if workflow is None:
            return None
        return workflow.graph.get_node(node_id)

    async def update_node(
        self,
        workflow_id: int,
        node_id: str,
        data: Optional[Dict[str, Any]] = None,
        position: Optional[Dict[str, Any]] = None,
        type: Optional[str] = None,
    ) -> Optional[GraphNode]:
        """Merge ``data`` into the node's data; replace position / type if given."""
        workflow = await self.get_workflow(workflow_id)
        if workflow is None:
            return None
        node = workflow.graph.get_node(node_id)
        if node is None:
            return None
        if data:
            node.data = {**node.data, **data}
        if position is not None:
            node.position = Position.from_dict(position)
        if type:
            node.type = type
        await self.update_graph(workflow_id, workflow.graph)
        return node

    async def remove_node(self, workflow_id: int, node_id: str) -> bool:
        workflow = await self.get_workflow(workflow_id)
        if workflow is None or workflow.graph.get_node(node_id) is None:
            return False
        graph = workflow.graph
        graph.nodes = [n for n in graph.nodes if n.id != node_id]
        graph.edges = [e for e in graph.edges if node_id not in (e.source, e.target)]
        await self.update_graph(workflow_id, graph)
        return True

    async def add_edge(self, workflow_id: int, edge: GraphEdge) -> Optional[GraphEdge]:
        workflow = await self.get_workflow(workflow_id)
        if workflow is None:
            return None
        graph = workflow.graph
        for endpoint in (edge.source, edge.target):
            if graph.get_node(endpoint) is None:
                raise ValueError(f"Node '{endpoint}' not found in workflow {workflow_id}")
        if any(e.id == edge.id for e in graph.edges):
            raise ValueError(f"Edge '{edge.id}' already exists in workflow {workflow_id}")
        graph.edges.append(edge)
        await self.update_graph(workflow_id, graph)
        return edge

    async def remove_edge(self, workflow_id: int, edge_id: str) -> bool:
        workflow = await self.get_workflow(workflow_id)
        if workflow is None:
            return False
        graph = workflow.graph
        remaining = [e for e in graph.edges if e.id != edge_id]
        if len(remaining) == len(graph.edges):
            return False
        graph.edges = remaining
        await self.update_graph(workflow_id, graph)
        return True


AGENT_FIELDS = {"name", "description", "type", "icon", "status", "configuration"}
WORKFLOW_FIELDS = {"name", "description", "type", "icon", "status", "agent_id"}
LOG_FIELDS = {"status", "output", "error", "completed_at", "execution_path"}


def apply_fields(record: Any, fields: Dict[str, Any], allowed: set) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
    for key, value in fields.items():
        setattr(record, key, value)


class InMemoryStorage(GraphEditingMixin):
    """Process-local storage. Returned records are copies."""

    def __init__(self):
        self._agents: Dict[int, AgentRecord] = {}
        self._workflows: Dict[int, WorkflowRecord] = {}
        self._logs: Dict[str, LogRecord] = {}
        self._agent_ids = itertools.count(1)
        self._workflow_ids = itertools.count(1)

    # ── Agents ──

    async def create_agent(self, name: str, **fields: Any) -> AgentRecord:
        agent = AgentRecord(id=next(self._agent_ids), name=name)
        apply_fields(agent, fields, AGENT_FIELDS)
        self._agents[agent.id] = agent
        return copy.deepcopy(agent)

    async def get_agent(self, agent_id: int) -> Optional[AgentRecord]:
        agent = self._agents.get(agent_id)
        return copy.deepcopy(agent) if agent else None

    async def list_agents(self) -> List[AgentRecord]:
        return [copy.deepcopy(a) for a in self._agents.values()]

    async def update_agent(self, agent_id: int, **fields: Any) -> Optional[AgentRecord]:
        agent = self._agents.get(agent_id)
        if agent is None:
            return None
        apply_fields(agent, fields, AGENT_FIELDS)
        agent.updated_at = _utcnow()
        return copy.deepcopy(agent)

    # ── Workflows ──

    async def create_workflow(self, name: str, **fields: Any) -> WorkflowRecord:
        graph = fields.pop("graph", None)
        workflow = WorkflowRecord(id=next(self._workflow_ids), name=name)
        apply_fields(workflow, fields, WORKFLOW_FIELDS)
        if graph is not None:
            workflow.graph = copy.deepcopy(graph)
        self._workflows[workflow.id] = workflow
        return copy.deepcopy(workflow)

    async def get_workflow(self, workflow_id: int) -> Optional[WorkflowRecord]:
        workflow = self._workflows.get(workflow_id)
        return copy.deepcopy(workflow) if workflow else None

    async def list_workflows(
        self, type: Optional[str] = None, agent_id: Optional[int] = None
    ) -> List[WorkflowRecord]:
        return [
            copy.deepcopy(w)
            for w in self._workflows.values()
            if (type is None or w.type == type)
            and (agent_id is None or w.agent_id == agent_id)
        ]

    async def update_workflow(self, workflow_id: int, **fields: Any) -> Optional[WorkflowRecord]:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return None
        apply_fields(workflow, fields, WORKFLOW_FIELDS)
        workflow.updated_at = _utcnow()
        return copy.deepcopy(workflow)

    async def update_graph(self, workflow_id: int, graph: WorkflowGraph) -> Optional[WorkflowRecord]:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return None
        workflow.graph = copy.deepcopy(graph)
        workflow.updated_at = _utcnow()
        return copy.deepcopy(workflow)

    async def delete_workflow(self, workflow_id: int) -> bool:
        return self._workflows.pop(workflow_id, None) is not None

    # ── Logs ──

    async def create_log(
        self,
        workflow_id: Optional[int],
        agent_id: Optional[int] = None,
        input: Any = None,
        run_id: Optional[str] = None,
    ) -> LogRecord:
        log = LogRecord(
            run_id=run_id or str(uuid.uuid4()),
            workflow_id=workflow_id,
            agent_id=agent_id,
            input=copy.deepcopy(input),
        )
        if log.run_id in self._logs:
            raise ValueError(f"Log for run {log.run_id} already exists")
        self._logs[log.run_id] = log
        return copy.deepcopy(log)

    async def get_log(self, run_id: str) -> Optional[LogRecord]:
        log = self._logs.get(run_id)
        return copy.deepcopy(log) if log else None

    async def update_log(self, run_id: str, **fields: Any) -> Optional[LogRecord]:
        log = self._logs.get(run_id)
        if log is None:
            return None
        apply_fields(log, copy.deepcopy(fields), LOG_FIELDS)
        return copy.deepcopy(log)

    async def list_logs(
        self,
        workflow_id: Optional[int] = None,
        agent_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[LogRecord]:
        # Dict order is creation order; newest first
        logs = [
            log for log in reversed(list(self._logs.values()))
            if (workflow_id is None or log.workflow_id == workflow_id)
            and (agent_id is None or log.agent_id == agent_id)
        ]
        if limit is not None:
            logs = logs[:limit]
        return [copy.deepcopy(log) for log in logs]
