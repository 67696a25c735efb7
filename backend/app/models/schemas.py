"""Pydantic request/response models for the workflow API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PositionModel(BaseModel):
    x: float = 0
    y: float = 0


class NodeModel(BaseModel):
    """Node in React Flow format."""
    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    position: PositionModel = Field(default_factory=PositionModel)
    data: Dict[str, Any] = Field(default_factory=dict)


class EdgeModel(BaseModel):
    """Edge in React Flow format; handles name the source/target ports."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    type: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class GraphRequest(BaseModel):
    """Full graph for create/replace."""
    nodes: List[NodeModel] = Field(default_factory=list)
    edges: List[EdgeModel] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "nodes": [n.model_dump() for n in self.nodes],
            "edges": [e.to_wire() for e in self.edges],
        }


class CreateWorkflowRequest(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    type: str = "custom"
    icon: Optional[str] = None
    status: str = Field(default="draft", pattern="^(active|inactive|draft)$")
    agent_id: Optional[int] = None
    graph: Optional[GraphRequest] = None


class UpdateWorkflowRequest(BaseModel):
    """Request to update workflow metadata. Only fields sent are changed."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    type: Optional[str] = None
    icon: Optional[str] = None
    status: Optional[str] = Field(default=None, pattern="^(active|inactive|draft)$")
    agent_id: Optional[int] = None


class WorkflowResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    type: str
    icon: Optional[str] = None
    status: str
    agent_id: Optional[int] = None
    graph: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ExecuteRequest(BaseModel):
    input: Any = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ExecuteResponse(BaseModel):
    """Terminal outcome of a run; ``output`` on success, ``error`` otherwise."""
    model_config = ConfigDict(extra="allow")

    status: str
    run_id: str
    output: Any = None
    error: Optional[str] = None


class LogResponse(BaseModel):
    run_id: str
    workflow_id: Optional[int] = None
    agent_id: Optional[int] = None
    status: str
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    execution_path: List[Dict[str, Any]] = Field(default_factory=list)


class ToolInvokeRequest(BaseModel):
    params: Dict[str, Any] = Field(default_factory=dict)
    options: Dict[str, Any] = Field(default_factory=dict)
