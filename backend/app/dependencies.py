"""Service wiring for the HTTP surface.

One ``Services`` container holds the storage, node registry, engine and
tool registry. It is built once per app and read by routes through the
``get_services`` dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import async_sessionmaker

from workflow.engine import WorkflowEngine
from workflow.nodes import NodeExecutorRegistry, create_node_registry
from workflow.storage import WorkflowStorage
from workflow.tools import ToolRegistry, create_tool_registry

from .storage import SqlAlchemyStorage


@dataclass
class Services:
    storage: WorkflowStorage
    node_registry: NodeExecutorRegistry
    engine: WorkflowEngine
    tool_registry: ToolRegistry


def build_services(
    storage: Optional[WorkflowStorage] = None,
    session_factory: Optional[async_sessionmaker] = None,
) -> Services:
    """Wire the collaborators. Defaults to SQL storage on the app database."""
    if storage is None:
        if session_factory is None:
            from .database import async_session_factory as session_factory
        storage = SqlAlchemyStorage(session_factory)

    node_registry = create_node_registry()
    engine = WorkflowEngine(node_registry, storage)
    tool_registry = create_tool_registry(storage, engine, node_registry)
    return Services(
        storage=storage,
        node_registry=node_registry,
        engine=engine,
        tool_registry=tool_registry,
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the app's service container."""
    return request.app.state.services
