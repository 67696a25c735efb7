"""SQL implementation of the workflow storage protocol.

Each operation runs in its own session from the injected factory and
returns plain records, so callers never hold ORM objects across sessions.
Node and edge operations come from ``GraphEditingMixin`` and go through
``update_graph``.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workflow.engine.graph import WorkflowGraph
from workflow.storage import (
    AgentRecord,
    GraphEditingMixin,
    LogRecord,
    WorkflowRecord,
    AGENT_FIELDS,
    LOG_FIELDS,
    WORKFLOW_FIELDS,
    apply_fields,
)

from .models.db import AgentModel, LogModel, WorkflowModel


def _agent_record(model: AgentModel) -> AgentRecord:
    return AgentRecord(
        id=model.id,
        name=model.name,
        description=model.description,
        type=model.type,
        icon=model.icon,
        status=model.status,
        configuration=dict(model.configuration or {}),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _workflow_record(model: WorkflowModel) -> WorkflowRecord:
    return WorkflowRecord(
        id=model.id,
        name=model.name,
        description=model.description,
        type=model.type,
        icon=model.icon,
        status=model.status,
        agent_id=model.agent_id,
        graph=WorkflowGraph.from_dict(model.graph or {}),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _log_record(model: LogModel) -> LogRecord:
    return LogRecord(
        run_id=model.run_id,
        workflow_id=model.workflow_id,
        agent_id=model.agent_id,
        status=model.status,
        input=model.input,
        output=model.output,
        error=model.error,
        started_at=model.started_at,
        completed_at=model.completed_at,
        execution_path=list(model.execution_path or []),
    )


class SqlAlchemyStorage(GraphEditingMixin):
    """Workflow storage backed by async SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # ── Agents ──

    async def create_agent(self, name: str, **fields: Any) -> AgentRecord:
        async with self._session() as session:
            agent = AgentModel(name=name, configuration={})
            apply_fields(agent, fields, AGENT_FIELDS)
            session.add(agent)
            await session.flush()
            await session.refresh(agent)
            return _agent_record(agent)

    async def get_agent(self, agent_id: int) -> Optional[AgentRecord]:
        async with self._session() as session:
            agent = await session.get(AgentModel, agent_id)
            return _agent_record(agent) if agent else None

    async def list_agents(self) -> List[AgentRecord]:
        async with self._session() as session:
            result = await session.execute(select(AgentModel).order_by(AgentModel.id))
            return [_agent_record(a) for a in result.scalars().all()]

    async def update_agent(self, agent_id: int, **fields: Any) -> Optional[AgentRecord]:
        async with self._session() as session:
            agent = await session.get(AgentModel, agent_id)
            if agent is None:
                return None
            apply_fields(agent, fields, AGENT_FIELDS)
            await session.flush()
            await session.refresh(agent)
            return _agent_record(agent)

    # ── Workflows ──

    async def create_workflow(self, name: str, **fields: Any) -> WorkflowRecord:
        graph = fields.pop("graph", None)
        async with self._session() as session:
            workflow = WorkflowModel(
                name=name,
                graph=graph.to_dict() if graph is not None else {"nodes": [], "edges": []},
            )
            apply_fields(workflow, fields, WORKFLOW_FIELDS)
            session.add(workflow)
            await session.flush()
            await session.refresh(workflow)
            return _workflow_record(workflow)

    async def get_workflow(self, workflow_id: int) -> Optional[WorkflowRecord]:
        async with self._session() as session:
            workflow = await session.get(WorkflowModel, workflow_id)
            return _workflow_record(workflow) if workflow else None

    async def list_workflows(
        self, type: Optional[str] = None, agent_id: Optional[int] = None
    ) -> List[WorkflowRecord]:
        query = select(WorkflowModel)
        if type is not None:
            query = query.where(WorkflowModel.type == type)
        if agent_id is not None:
            query = query.where(WorkflowModel.agent_id == agent_id)
        async with self._session() as session:
            result = await session.execute(query.order_by(WorkflowModel.id))
            return [_workflow_record(w) for w in result.scalars().all()]

    async def update_workflow(self, workflow_id: int, **fields: Any) -> Optional[WorkflowRecord]:
        async with self._session() as session:
            workflow = await session.get(WorkflowModel, workflow_id)
            if workflow is None:
                return None
            apply_fields(workflow, fields, WORKFLOW_FIELDS)
            await session.flush()
            await session.refresh(workflow)
            return _workflow_record(workflow)

    async def update_graph(self, workflow_id: int, graph: WorkflowGraph) -> Optional[WorkflowRecord]:
        async with self._session() as session:
            workflow = await session.get(WorkflowModel, workflow_id)
            if workflow is None:
                return None
            # Assign a fresh dict; in-place JSON mutation is not tracked
            workflow.graph = graph.to_dict()
            await session.flush()
            await session.refresh(workflow)
            return _workflow_record(workflow)

    async def delete_workflow(self, workflow_id: int) -> bool:
        async with self._session() as session:
            workflow = await session.get(WorkflowModel, workflow_id)
            if workflow is None:
                return False
            await session.delete(workflow)
            return True

    # ── Logs ──

    async def create_log(
        self,
        workflow_id: Optional[int],
        agent_id: Optional[int] = None,
        input: Any = None,
        run_id: Optional[str] = None,
    ) -> LogRecord:
        run_id = run_id or str(uuid.uuid4())
        async with self._session() as session:
            if await session.get(LogModel, run_id) is not None:
                raise ValueError(f"Log for run {run_id} already exists")
            last_seq = await session.scalar(select(func.max(LogModel.seq)))
            log = LogModel(
                run_id=run_id,
                seq=(last_seq or 0) + 1,
                workflow_id=workflow_id,
                agent_id=agent_id,
                status="running",
                input=input,
                execution_path=[],
            )
            session.add(log)
            await session.flush()
            await session.refresh(log)
            return _log_record(log)

    async def get_log(self, run_id: str) -> Optional[LogRecord]:
        async with self._session() as session:
            log = await session.get(LogModel, run_id)
            return _log_record(log) if log else None

    async def update_log(self, run_id: str, **fields: Any) -> Optional[LogRecord]:
        async with self._session() as session:
            log = await session.get(LogModel, run_id)
            if log is None:
                return None
            apply_fields(log, fields, LOG_FIELDS)
            await session.flush()
            await session.refresh(log)
            return _log_record(log)

    async def list_logs(
        self,
        workflow_id: Optional[int] = None,
        agent_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[LogRecord]:
        query = select(LogModel)
        if workflow_id is not None:
            query = query.where(LogModel.workflow_id == workflow_id)
        if agent_id is not None:
            query = query.where(LogModel.agent_id == agent_id)
        query = query.order_by(LogModel.seq.desc())
        if limit is not None:
            query = query.limit(limit)
        async with self._session() as session:
            result = await session.execute(query)
            return [_log_record(log) for log in result.scalars().all()]
