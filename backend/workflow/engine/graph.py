"""Workflow Graph Model

Pure data describing a workflow: nodes, edges and the ports edges attach to,
plus structural validation used before a graph is saved or executed.

Key Components:
- GraphNode / GraphEdge / WorkflowGraph: dataclasses mirroring the JSON
  exchange format ``{nodes: [...], edges: [...]}``
- validate_workflow: structured validation (errors and warnings)
- detect_cycles / detect_dangling_nodes: graph analysis helpers
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from .. import settings
from ..errors import DanglingEdgeError, GraphIntegrityError

if TYPE_CHECKING:
    from ..nodes.registry import NodeExecutorRegistry

logger = logging.getLogger(__name__)

DEFAULT_PORT = "default"
ERROR_PORT = "error"
INPUT_PORT = "input"


@dataclass
class Position:
    """Canvas position. Layout only, never read by the engine."""

    x: float = 0
    y: float = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Position":
        data = data or {}
        return cls(x=data.get("x", 0), y=data.get("y", 0))

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y}


@dataclass
class GraphNode:
    """A configured instance of a registered node type.

    Attributes:
        id: Identifier, unique within its workflow
        type: Registered node type name
        position: Canvas position
        data: Free-form configuration consumed only by the node's executor
    """

    id: str
    type: str
    position: Position = field(default_factory=Position)
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            raise ValueError("node id cannot be empty")
        if not self.type:
            raise ValueError("node type cannot be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphNode":
        return cls(
            id=str(data.get("id") or ""),
            type=data.get("type") or "",
            position=Position.from_dict(data.get("position")),
            data=dict(data.get("data") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": self.data,
        }


@dataclass
class GraphEdge:
    """A directed connection from a source port to a target port.

    An edge without ``source_handle`` attaches to the source's default port.
    """

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    type: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("edge id cannot be empty")
        if not self.source:
            raise ValueError("source node cannot be empty")
        if not self.target:
            raise ValueError("target node cannot be empty")

    @property
    def port(self) -> str:
        """Output port on the source node this edge leaves from."""
        return self.source_handle or DEFAULT_PORT

    @property
    def input_port(self) -> str:
        """Input port on the target node this edge feeds."""
        return self.target_handle or INPUT_PORT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphEdge":
        return cls(
            id=str(data.get("id") or ""),
            source=str(data.get("source") or ""),
            target=str(data.get("target") or ""),
            source_handle=data.get("sourceHandle"),
            target_handle=data.get("targetHandle"),
            type=data.get("type"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
        }
        if self.source_handle is not None:
            result["sourceHandle"] = self.source_handle
        if self.target_handle is not None:
            result["targetHandle"] = self.target_handle
        if self.type is not None:
            result["type"] = self.type
        return result


@dataclass
class WorkflowGraph:
    """Nodes and edges of one workflow. Node order is graph order."""

    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "WorkflowGraph":
        data = data or {}
        return cls(
            nodes=[GraphNode.from_dict(n) for n in data.get("nodes") or []],
            edges=[GraphEdge.from_dict(e) for e in data.get("edges") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edges_from(self, node_id: str, port: Optional[str] = None) -> List[GraphEdge]:
        """Outgoing edges of a node, optionally restricted to one output port."""
        return [
            e for e in self.edges
            if e.source == node_id and (port is None or e.port == port)
        ]

    def edges_to(self, node_id: str) -> List[GraphEdge]:
        return [e for e in self.edges if e.target == node_id]

    def find_trigger(self, selector: str) -> Optional[GraphNode]:
        """First node, in graph order, whose type contains ``selector``."""
        for node in self.nodes:
            if selector in node.type:
                return node
        return None

    def integrity_errors(self) -> List[GraphIntegrityError]:
        """Structural problems that make the graph unexecutable."""
        errors: List[GraphIntegrityError] = []

        seen: Set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                errors.append(
                    GraphIntegrityError(f"Duplicate node id: {node.id}", node_ids=[node.id])
                )
            seen.add(node.id)

        for edge in self.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in seen:
                    errors.append(DanglingEdgeError(edge.id, endpoint))

        return errors


class ValidationIssue:
    """Workflow validation error or warning.

    Attributes:
        code: Issue code (e.g. DANGLING_EDGE)
        message: Human-readable message
        severity: "error" or "warning"
        node_ids: Affected node IDs
        context: Additional issue context
    """

    def __init__(
        self,
        code: str,
        message: str,
        severity: str,
        node_ids: List[str],
        context: Dict[str, Any],
    ):
        self.code = code
        self.message = message
        self.severity = severity
        self.node_ids = node_ids
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "node_ids": self.node_ids,
            "context": self.context,
        }


class ValidationResult:
    """Workflow validation result."""

    def __init__(self, valid: bool, errors: List[ValidationIssue], warnings: List[ValidationIssue]):
        self.valid = valid
        self.errors = errors
        self.warnings = warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


def validate_workflow(
    graph: WorkflowGraph,
    registry: Optional["NodeExecutorRegistry"] = None,
) -> ValidationResult:
    """Validate a workflow graph.

    Checks performed:
    - Duplicate node IDs and edges referencing unknown nodes
    - Node types registered in ``registry`` (when given)
    - Node data accepted by the node type's executor
    - Cycles (the engine refuses to revisit a node)
    - Dangling nodes and a missing trigger (warnings)

    Args:
        graph: Graph to validate
        registry: Node executor registry used for type and data checks

    Returns:
        ValidationResult containing validation status and errors/warnings
    """
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []

    # 1. Unique node ids
    counts: Dict[str, int] = defaultdict(int)
    for node in graph.nodes:
        counts[node.id] += 1
    for node_id, count in counts.items():
        if count > 1:
            errors.append(
                ValidationIssue(
                    code="DUPLICATE_NODE_ID",
                    message=f"Node id '{node_id}' is used {count} times",
                    severity="error",
                    node_ids=[node_id],
                    context={"count": count},
                )
            )

    # 2. Edges must reference existing nodes
    for edge in graph.edges:
        missing = [nid for nid in (edge.source, edge.target) if nid not in counts]
        if missing:
            errors.append(
                ValidationIssue(
                    code="DANGLING_EDGE",
                    message=f"Edge {edge.id} references unknown node(s): {', '.join(missing)}",
                    severity="error",
                    node_ids=missing,
                    context={"edge_id": edge.id},
                )
            )

    # 3. Node types and data
    if registry is not None:
        for node in graph.nodes:
            executor = registry.get(node.type)
            if executor is None:
                errors.append(
                    ValidationIssue(
                        code="INVALID_NODE_TYPE",
                        message=f"Node {node.id} has unregistered type '{node.type}'",
                        severity="error",
                        node_ids=[node.id],
                        context={"node_type": node.type},
                    )
                )
                continue
            data_errors = executor.validate_data(node.data)
            if data_errors:
                errors.append(
                    ValidationIssue(
                        code="INVALID_NODE_DATA",
                        message=f"Node {node.id} has invalid data",
                        severity="error",
                        node_ids=[node.id],
                        context={
                            "node_type": node.type,
                            "validation_errors": data_errors,
                        },
                    )
                )

    # 4. Cycles
    for cycle in detect_cycles(graph):
        errors.append(
            ValidationIssue(
                code="CYCLE",
                message=f"Cycle detected: {' -> '.join(cycle)}",
                severity="error",
                node_ids=cycle[:-1],
                context={"cycle_path": cycle},
            )
        )

    # 5. Dangling nodes
    if len(graph.nodes) > 1:
        for node_id in detect_dangling_nodes(graph):
            warnings.append(
                ValidationIssue(
                    code="DANGLING_NODE",
                    message=f"Node {node_id} is not connected to the workflow",
                    severity="warning",
                    node_ids=[node_id],
                    context={},
                )
            )

    # 6. Trigger
    if graph.nodes and graph.find_trigger(settings.DEFAULT_TRIGGER_TYPE) is None:
        warnings.append(
            ValidationIssue(
                code="NO_TRIGGER",
                message=f"No node of type '{settings.DEFAULT_TRIGGER_TYPE}' to start a run from",
                severity="warning",
                node_ids=[],
                context={"trigger_type": settings.DEFAULT_TRIGGER_TYPE},
            )
        )

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def detect_cycles(graph: WorkflowGraph) -> List[List[str]]:
    """Detect cycles using DFS.

    Returns:
        One path per distinct cycle, with the first node repeated at the end
    """
    adjacency: Dict[str, List[str]] = defaultdict(list)
    for edge in graph.edges:
        adjacency[edge.source].append(edge.target)

    cycles: List[List[str]] = []
    found: Set[tuple] = set()
    visited: Set[str] = set()
    path: List[str] = []
    path_set: Set[str] = set()

    def dfs(node_id: str):
        if node_id in path_set:
            cycle = path[path.index(node_id):] + [node_id]
            key = tuple(sorted(cycle[:-1]))
            if key not in found:
                found.add(key)
                cycles.append(cycle)
            return
        if node_id in visited:
            return

        visited.add(node_id)
        path.append(node_id)
        path_set.add(node_id)

        for neighbor in adjacency[node_id]:
            dfs(neighbor)

        path.pop()
        path_set.remove(node_id)

    for node in graph.nodes:
        if node.id not in visited:
            dfs(node.id)

    return cycles


def detect_dangling_nodes(graph: WorkflowGraph) -> List[str]:
    """Nodes with no incoming or outgoing edges, in graph order."""
    connected: Set[str] = set()
    for edge in graph.edges:
        connected.add(edge.source)
        connected.add(edge.target)
    return [node.id for node in graph.nodes if node.id not in connected]
