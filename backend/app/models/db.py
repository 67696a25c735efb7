"""SQLAlchemy ORM models for the workflow API.

Tables:
- agents: Agents that own workflows
- workflows: Workflow definitions; the graph (nodes + edges) is stored as JSON
- workflow_logs: One row per run, keyed by run id
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _empty_graph() -> Dict[str, Any]:
    return {"nodes": [], "edges": []}


# ─── Agent ───────────────────────────────────────────────────────────


class AgentModel(Base):
    __tablename__ = "agents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False, default="custom")
    icon: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="active",
        comment="active | inactive | draft",
    )
    configuration: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )


# ─── Workflow Definition ─────────────────────────────────────────────


class WorkflowModel(Base):
    """Persistent workflow definition.

    The full graph is stored as JSON in its wire format,
    ``{"nodes": [...], "edges": [...]}``.
    """

    __tablename__ = "workflows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False, default="custom")
    icon: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="draft",
        comment="active | inactive | draft",
    )
    agent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("agents.id", ondelete="SET NULL"), nullable=True,
    )

    graph: Mapped[Dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=_empty_graph, comment="{nodes, edges}",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    __table_args__ = (
        Index("ix_workflows_status", "status"),
        Index("ix_workflows_agent_id", "agent_id"),
    )


# ─── Run Log ─────────────────────────────────────────────────────────


class LogModel(Base):
    """Record of a single workflow run.

    Rows outlive their workflow, so ``workflow_id`` is a plain column.
    """

    __tablename__ = "workflow_logs"

    run_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Insertion order; used to list newest runs first
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    workflow_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    agent_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="running",
        comment="running | success | error",
    )

    input: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    output: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    execution_path: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    __table_args__ = (
        Index("ix_workflow_logs_workflow_id", "workflow_id"),
        Index("ix_workflow_logs_agent_id", "agent_id"),
        Index("ix_workflow_logs_seq", "seq"),
    )
