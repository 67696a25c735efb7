"""Workflow Executor

Drives one run of a workflow graph: resolve the trigger node, invoke each
node's executor, follow the edge leaving the populated output port, and
repeat until no edge matches or a node fails.

Traversal is an explicit loop with a visited set and a step ceiling, so
malformed (cyclic) graphs fail with ``CycleDetected`` instead of looping.
Executors are awaited one at a time; a run visits a single deterministic
path for a given graph and input.
"""

from __future__ import annotations

import asyncio
import copy
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .. import settings
from ..errors import (
    CycleDetected,
    ExecutorError,
    GraphIntegrityError,
    NoTriggerFound,
    StepLimitExceeded,
    WorkflowEngineError,
    WorkflowNotFound,
)
from ..logging_config import get_engine_logger
from ..nodes.registry import NodeExecutorRegistry, NodeResult
from .graph import ERROR_PORT, INPUT_PORT, GraphNode, WorkflowGraph
from .state import (
    CompletionListener,
    ExecutionTracker,
    NodeExecutionState,
    NodeStateListener,
    RunStatus,
)

if TYPE_CHECKING:
    from ..storage import WorkflowStorage

logger = get_engine_logger()

ON_ERROR_STOP = "stop"
ON_ERROR_ROUTE = "route"


def _json_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _populated_port(result: Dict[str, Any]) -> Tuple[str, Any]:
    """First port carrying a value; the first port when every value is None."""
    for port, value in result.items():
        if value is not None:
            return port, value
    return next(iter(result.items()))


def to_json_safe(value: Any) -> Any:
    """Return ``value`` reduced to plain JSON types for persistence in a Log."""
    return json.loads(json.dumps(value, default=_json_default))


@dataclass
class WorkflowRunResult:
    """Terminal outcome of one run. ``status`` is "completed" or "error"."""

    run_id: str
    workflow_id: Any
    status: str
    output: Any = None
    error: Optional[str] = None
    node_states: List[NodeExecutionState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"

    @property
    def visited(self) -> List[str]:
        return [state.node_id for state in self.node_states]

    def to_response(self) -> Dict[str, Any]:
        response: Dict[str, Any] = {"status": self.status, "run_id": self.run_id}
        if self.succeeded:
            response["output"] = self.output
        else:
            response["error"] = self.error
        return response


class WorkflowEngine:
    """Executes workflow graphs using an injected node executor registry.

    Args:
        registry: Node executor registry used to resolve node types
        storage: Storage collaborator; required by ``execute_workflow`` only
        max_steps: Ceiling on node invocations per run
        node_timeout: Seconds allowed for a single executor call
        default_trigger: Trigger selector used when a run names none
    """

    def __init__(
        self,
        registry: NodeExecutorRegistry,
        storage: Optional["WorkflowStorage"] = None,
        *,
        max_steps: Optional[int] = None,
        node_timeout: Optional[float] = None,
        default_trigger: Optional[str] = None,
    ):
        self.registry = registry
        self.storage = storage
        self.max_steps = settings.ENGINE_MAX_STEPS if max_steps is None else max_steps
        self.node_timeout = settings.ENGINE_NODE_TIMEOUT if node_timeout is None else node_timeout
        self.default_trigger = default_trigger or settings.DEFAULT_TRIGGER_TYPE

    async def execute_workflow(
        self,
        workflow_id: int,
        input: Any = None,
        *,
        trigger_type: Optional[str] = None,
        source: str = "api",
        run_id: Optional[str] = None,
        on_node_state_change: Optional[NodeStateListener] = None,
        on_complete: Optional[CompletionListener] = None,
    ) -> WorkflowRunResult:
        """Load a stored workflow, run it, and record the run in its Log.

        The Log is created (status ``running``) before the first node runs and
        always finalized with ``success`` or ``error`` and ``completed_at``.
        """
        if self.storage is None:
            raise WorkflowEngineError("WorkflowEngine has no storage configured")

        run_id = run_id or str(uuid.uuid4())
        logger.info(f"Executing workflow {workflow_id} from {source}, run_id={run_id}")

        workflow = await self.storage.get_workflow(workflow_id)
        if workflow is None:
            error = str(WorkflowNotFound(workflow_id))
            logger.warning(error)
            return WorkflowRunResult(run_id=run_id, workflow_id=workflow_id, status="error", error=error)

        await self.storage.create_log(
            workflow_id=workflow.id,
            agent_id=workflow.agent_id,
            input=to_json_safe(input),
            run_id=run_id,
        )

        tracker = ExecutionTracker(
            run_id,
            workflow.id,
            on_node_state_change=on_node_state_change,
            on_complete=on_complete,
        )

        try:
            result = await self.run_graph(
                workflow.graph, input, trigger_type=trigger_type, tracker=tracker
            )
        except Exception as e:
            logger.exception(f"Run {run_id} of workflow {workflow_id} crashed")
            tracker.complete(RunStatus.FAILED, error=f"{type(e).__name__}: {e}")
            result = self._result(tracker)

        await self._finalize_log(result, tracker)
        return result

    async def _finalize_log(self, result: WorkflowRunResult, tracker: ExecutionTracker) -> None:
        """Write the terminal status of a run. A Log is never left ``running``."""
        try:
            await self.storage.update_log(
                result.run_id,
                status="success" if result.succeeded else "error",
                output=to_json_safe(result.output),
                error=result.error,
                completed_at=datetime.now(timezone.utc),
                execution_path=to_json_safe(tracker.execution_path()),
            )
        except Exception as e:
            logger.exception(f"Failed to record run {result.run_id}; marking it as failed")
            result.status = "error"
            result.error = f"Failed to record run result: {type(e).__name__}: {e}"
            await self.storage.update_log(
                result.run_id,
                status="error",
                output=None,
                error=result.error,
                completed_at=datetime.now(timezone.utc),
            )

    async def run_graph(
        self,
        graph: WorkflowGraph,
        input: Any = None,
        *,
        trigger_type: Optional[str] = None,
        tracker: Optional[ExecutionTracker] = None,
    ) -> WorkflowRunResult:
        """Run a graph without touching storage.

        Graph-integrity failures end the run with status ``error``; they are
        reported through the result rather than raised.
        """
        tracker = tracker or ExecutionTracker(str(uuid.uuid4()))
        selector = trigger_type or self.default_trigger

        try:
            output, error = await self._traverse(graph, input, selector, tracker)
        except GraphIntegrityError as e:
            logger.warning(f"Run {tracker.run_id} aborted: {e}")
            tracker.complete(RunStatus.FAILED, error=str(e))
            return self._result(tracker)

        if error is not None:
            logger.info(f"Run {tracker.run_id} failed: {error}")
            tracker.complete(RunStatus.FAILED, error=error)
        else:
            logger.info(f"Run {tracker.run_id} completed after {len(tracker.node_states)} node(s)")
            tracker.complete(RunStatus.COMPLETED, output=output)
        return self._result(tracker)

    async def _traverse(
        self,
        graph: WorkflowGraph,
        run_input: Any,
        selector: str,
        tracker: ExecutionTracker,
    ) -> Tuple[Any, Optional[str]]:
        """Walk the graph from the trigger. Returns (output, error message)."""
        problems = graph.integrity_errors()
        if problems:
            raise problems[0]

        trigger = graph.find_trigger(selector)
        if trigger is None:
            raise NoTriggerFound(selector)

        logger.debug(f"Run {tracker.run_id} starting from trigger node {trigger.id}")

        path: List[str] = []
        output: Any = None
        current: Optional[Tuple[GraphNode, Dict[str, Any]]] = (trigger, {INPUT_PORT: run_input})

        while current is not None:
            node, inputs = current
            if node.id in path:
                raise CycleDetected(path + [node.id])
            if len(path) >= self.max_steps:
                raise StepLimitExceeded(self.max_steps)
            path.append(node.id)

            result = await self._invoke(node, inputs, tracker)
            if not result:
                return output, None

            if result.get(ERROR_PORT) is not None:
                port, value = ERROR_PORT, result[ERROR_PORT]
                if node.data.get("onError", ON_ERROR_STOP) != ON_ERROR_ROUTE:
                    return None, str(value)
                if not graph.edges_from(node.id, ERROR_PORT):
                    return None, str(value)
            else:
                port, value = _populated_port(result)
            output = value

            edges = graph.edges_from(node.id, port)
            if not edges:
                return output, None

            edge = edges[0]
            logger.debug(f"{node.id} --{port}--> {edge.target}")
            current = (graph.get_node(edge.target), {edge.input_port: value})

        return output, None

    async def _invoke(
        self,
        node: GraphNode,
        inputs: Dict[str, Any],
        tracker: ExecutionTracker,
    ) -> NodeResult:
        tracker.node_waiting(node.id, node.type, inputs)
        tracker.node_running(node.id)

        try:
            result = await self._call_executor(node, inputs)
        except ExecutorError as failure:
            logger.error(f"Executor for node {node.id} ({node.type}) failed: {failure}")
            result = {ERROR_PORT: str(failure)}

        if result.get(ERROR_PORT) is not None:
            tracker.node_failed(node.id, str(result[ERROR_PORT]))
        else:
            tracker.node_completed(node.id, result)
        return result

    async def _call_executor(self, node: GraphNode, inputs: Dict[str, Any]) -> NodeResult:
        """Await the node's executor; every failure surfaces as ``ExecutorError``."""
        executor = self.registry.get(node.type)
        if executor is None:
            raise ExecutorError(node.id, f"Unsupported node type: {node.type}")
        try:
            result = await asyncio.wait_for(
                executor.execute(copy.deepcopy(node.data), dict(inputs)),
                timeout=self.node_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExecutorError(node.id, f"Node {node.id} timed out after {self.node_timeout}s") from e
        except Exception as e:
            raise ExecutorError(node.id, f"{type(e).__name__}: {e}") from e
        if not isinstance(result, dict):
            raise ExecutorError(
                node.id,
                f"Executor for '{node.type}' returned {type(result).__name__}, not a mapping",
            )
        return result

    @staticmethod
    def _result(tracker: ExecutionTracker) -> WorkflowRunResult:
        return WorkflowRunResult(
            run_id=tracker.run_id,
            workflow_id=tracker.workflow_id,
            status="completed" if tracker.status == RunStatus.COMPLETED else "error",
            output=tracker.output,
            error=tracker.error,
            node_states=tracker.node_states,
        )
