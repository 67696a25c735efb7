"""Workflow Engine: graph model, execution, state tracking, and safe evaluation."""

from .graph import (
    DEFAULT_PORT,
    ERROR_PORT,
    INPUT_PORT,
    GraphEdge,
    GraphNode,
    Position,
    ValidationIssue,
    ValidationResult,
    WorkflowGraph,
    detect_cycles,
    detect_dangling_nodes,
    validate_workflow,
)
from .safe_eval import (
    SafeEvalError,
    SandboxLimitExceeded,
    SandboxTimeout,
    run_function,
    safe_eval,
    validate_condition_expression,
    validate_function_code,
)
from .state import ExecutionTracker, NodeExecutionState, NodeStatus, RunStatus
from .executor import WorkflowEngine, WorkflowRunResult

__all__ = [
    "DEFAULT_PORT",
    "ERROR_PORT",
    "INPUT_PORT",
    "GraphEdge",
    "GraphNode",
    "Position",
    "ValidationIssue",
    "ValidationResult",
    "WorkflowGraph",
    "detect_cycles",
    "detect_dangling_nodes",
    "validate_workflow",
    "SafeEvalError",
    "SandboxLimitExceeded",
    "SandboxTimeout",
    "run_function",
    "safe_eval",
    "validate_condition_expression",
    "validate_function_code",
    "ExecutionTracker",
    "NodeExecutionState",
    "NodeStatus",
    "RunStatus",
    "WorkflowEngine",
    "WorkflowRunResult",
]
