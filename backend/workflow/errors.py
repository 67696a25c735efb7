"""Workflow Exceptions

Error taxonomy shared by the engine, the node registry and the tool layer.

Only graph-integrity failures abort a run outright. Executor failures are
turned into ``error`` port values, tool failures into ``ToolResult`` values,
and registration failures are logged and refused.
"""

from __future__ import annotations

from typing import List, Optional


class WorkflowEngineError(Exception):
    """Base exception for workflow engine errors."""
    pass


class WorkflowNotFound(WorkflowEngineError):
    """Raised when a workflow id does not resolve to a stored workflow."""

    def __init__(self, workflow_id):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow with ID {workflow_id} not found")


class GraphIntegrityError(WorkflowEngineError):
    """Raised when a workflow graph cannot be executed as described."""

    def __init__(self, message: str, node_ids: Optional[List[str]] = None):
        self.node_ids = node_ids or []
        super().__init__(message)


class NoTriggerFound(GraphIntegrityError):
    """Raised when no node matches the requested trigger selector."""

    def __init__(self, trigger_type: str):
        self.trigger_type = trigger_type
        super().__init__(f"No trigger node found for type: {trigger_type}")


class DanglingEdgeError(GraphIntegrityError):
    """Raised when an edge references a node that is not in the graph."""

    def __init__(self, edge_id: str, missing_node_id: str):
        self.edge_id = edge_id
        self.missing_node_id = missing_node_id
        super().__init__(
            f"Edge {edge_id} references unknown node '{missing_node_id}'",
            node_ids=[missing_node_id],
        )


class CycleDetected(GraphIntegrityError):
    """Raised when traversal would visit the same node twice in one run."""

    def __init__(self, path: List[str]):
        self.path = path
        super().__init__(
            f"Cycle detected: {' -> '.join(path)}",
            node_ids=list(path),
        )


class StepLimitExceeded(GraphIntegrityError):
    """Raised when a run exceeds the configured step ceiling."""

    def __init__(self, max_steps: int):
        self.max_steps = max_steps
        super().__init__(f"Run exceeded maximum of {max_steps} steps")


class ExecutorError(WorkflowEngineError):
    """Raised (internally) when a node executor fails or times out."""

    def __init__(self, node_id: str, message: str):
        self.node_id = node_id
        super().__init__(message)


class ToolValidationError(WorkflowEngineError):
    """Raised inside tool bodies for bad parameters or missing entities.

    The tool registry translates it into ``ToolResult(success=False)``.
    """
    pass


class RegistrationError(WorkflowEngineError):
    """Raised when a node executor or tool fails validation at registration."""
    pass


class InvalidStateTransition(WorkflowEngineError):
    """Raised when a node state change violates the tracker lifecycle."""

    def __init__(self, node_id: str, current: Optional[str], requested: str):
        self.node_id = node_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Node '{node_id}' cannot move from {current or 'unreported'} to {requested}"
        )
