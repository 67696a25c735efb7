"""Conftest for engine, node and tool tests.

Everything runs against InMemoryStorage and freshly built registries.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from workflow.engine import WorkflowEngine, WorkflowGraph
from workflow.nodes import create_node_registry
from workflow.storage import InMemoryStorage
from workflow.tools import create_tool_registry


def make_graph(nodes: List[Dict[str, Any]], edges: Optional[List[Dict[str, Any]]] = None) -> WorkflowGraph:
    """Build a graph from compact node/edge dicts.

    Nodes: {"id", "type", "data"?}; edges: (source, target) or
    (source, target, sourceHandle).
    """
    wire_nodes = [
        {"id": n["id"], "type": n["type"], "position": {"x": 0, "y": 0}, "data": n.get("data", {})}
        for n in nodes
    ]
    wire_edges = []
    for i, edge in enumerate(edges or []):
        source, target = edge[0], edge[1]
        wire = {"id": f"e{i}", "source": source, "target": target}
        if len(edge) > 2:
            wire["sourceHandle"] = edge[2]
        wire_edges.append(wire)
    return WorkflowGraph.from_dict({"nodes": wire_nodes, "edges": wire_edges})


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def node_registry():
    return create_node_registry()


@pytest.fixture
def engine(node_registry, storage) -> WorkflowEngine:
    return WorkflowEngine(node_registry, storage)


@pytest.fixture
def tool_registry(storage, engine, node_registry):
    return create_tool_registry(storage, engine, node_registry)


@pytest.fixture
def greeting_graph() -> WorkflowGraph:
    """trigger -> template -> decision --true--> function -> output."""
    return make_graph(
        [
            {"id": "start", "type": "trigger"},
            {"id": "greet", "type": "text_template", "data": {"template": "Hello, {{name}}!"}},
            {"id": "check", "type": "decision", "data": {"condition": '"Hello" in value'}},
            {"id": "shout", "type": "function", "data": {"code": "return input.upper()"}},
            {"id": "done", "type": "output"},
        ],
        [
            ("start", "greet"),
            ("greet", "check"),
            ("check", "shout", "true"),
            ("shout", "done"),
        ],
    )


@pytest.fixture
def build_graph():
    """The ``make_graph`` helper, for tests that assemble their own graphs."""
    return make_graph
