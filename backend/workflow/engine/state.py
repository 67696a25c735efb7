"""Execution State Tracker

Per-run record of node status transitions and the final run result.

Every node that is actually invoked moves through exactly
``waiting -> running -> {completed | error}``; nodes that are never visited
are never reported. Listeners are notified synchronously on each change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..errors import InvalidStateTransition

logger = logging.getLogger(__name__)


class NodeStatus(str, Enum):
    WAITING = "waiting"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class RunStatus(str, Enum):
    RESOLVING = "resolving"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    None: {NodeStatus.WAITING},
    NodeStatus.WAITING: {NodeStatus.RUNNING},
    NodeStatus.RUNNING: {NodeStatus.COMPLETED, NodeStatus.ERROR},
    NodeStatus.COMPLETED: set(),
    NodeStatus.ERROR: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NodeExecutionState:
    node_id: str
    node_type: str
    status: NodeStatus = NodeStatus.WAITING
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def duration_ms(self) -> Optional[int]:
        if self.start_time is None or self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "node_type": self.node_type,
            "status": self.status.value,
            "input": self.input,
            "output": self.output,
            "error": self.error,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_ms": self.duration_ms,
        }


@dataclass
class RunSummary:
    """Final state handed to ``on_complete`` listeners."""

    run_id: str
    workflow_id: Any
    status: RunStatus
    output: Any = None
    error: Optional[str] = None
    node_states: List[NodeExecutionState] = field(default_factory=list)


NodeStateListener = Callable[[str, NodeExecutionState], None]
CompletionListener = Callable[[RunSummary], None]


class ExecutionTracker:
    """Authoritative state of one run.

    Each run owns its tracker; trackers are never shared between runs.
    """

    def __init__(
        self,
        run_id: str,
        workflow_id: Any = None,
        on_node_state_change: Optional[NodeStateListener] = None,
        on_complete: Optional[CompletionListener] = None,
    ):
        self.run_id = run_id
        self.workflow_id = workflow_id
        self.status = RunStatus.RESOLVING
        self.output: Any = None
        self.error: Optional[str] = None
        self._states: Dict[str, NodeExecutionState] = {}
        self._order: List[str] = []
        self._node_listeners: List[NodeStateListener] = []
        self._complete_listeners: List[CompletionListener] = []
        if on_node_state_change is not None:
            self._node_listeners.append(on_node_state_change)
        if on_complete is not None:
            self._complete_listeners.append(on_complete)

    def add_node_listener(self, listener: NodeStateListener) -> None:
        self._node_listeners.append(listener)

    def add_completion_listener(self, listener: CompletionListener) -> None:
        self._complete_listeners.append(listener)

    @property
    def is_complete(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.FAILED)

    def get(self, node_id: str) -> Optional[NodeExecutionState]:
        return self._states.get(node_id)

    @property
    def node_states(self) -> List[NodeExecutionState]:
        """States in visit order."""
        return [self._states[node_id] for node_id in self._order]

    # ── Transitions ──

    def node_waiting(self, node_id: str, node_type: str, node_input: Any = None) -> NodeExecutionState:
        self._check(node_id, NodeStatus.WAITING)
        state = NodeExecutionState(node_id=node_id, node_type=node_type, input=node_input)
        self._states[node_id] = state
        self._order.append(node_id)
        self.status = RunStatus.RUNNING
        self._notify(state)
        return state

    def node_running(self, node_id: str) -> NodeExecutionState:
        state = self._transition(node_id, NodeStatus.RUNNING)
        state.start_time = _utcnow()
        self._notify(state)
        return state

    def node_completed(self, node_id: str, output: Any) -> NodeExecutionState:
        state = self._transition(node_id, NodeStatus.COMPLETED)
        state.output = output
        state.end_time = _utcnow()
        self._notify(state)
        return state

    def node_failed(self, node_id: str, error: str) -> NodeExecutionState:
        state = self._transition(node_id, NodeStatus.ERROR)
        state.error = error
        state.end_time = _utcnow()
        self._notify(state)
        return state

    def complete(self, status: RunStatus, output: Any = None, error: Optional[str] = None) -> RunSummary:
        """Record the final result. Only the first call takes effect."""
        if self.is_complete:
            logger.warning(f"Run {self.run_id} already completed, ignoring {status.value}")
            return self.summary()
        if status not in (RunStatus.COMPLETED, RunStatus.FAILED):
            raise ValueError(f"Run cannot complete with status {status.value}")

        self.status = status
        self.output = output
        self.error = error
        summary = self.summary()
        for listener in self._complete_listeners:
            try:
                listener(summary)
            except Exception as e:
                logger.error(f"Completion listener failed for run {self.run_id}: {e}")
        return summary

    def summary(self) -> RunSummary:
        return RunSummary(
            run_id=self.run_id,
            workflow_id=self.workflow_id,
            status=self.status,
            output=self.output,
            error=self.error,
            node_states=self.node_states,
        )

    def execution_path(self) -> List[Dict[str, Any]]:
        """Node states in visit order, serialised for the run log."""
        return [state.to_dict() for state in self.node_states]

    # ── Internals ──

    def _check(self, node_id: str, requested: NodeStatus) -> None:
        if self.is_complete:
            raise InvalidStateTransition(node_id, "run completed", requested.value)
        state = self._states.get(node_id)
        current = state.status if state else None
        if requested not in _ALLOWED_TRANSITIONS[current]:
            raise InvalidStateTransition(
                node_id, current.value if current else None, requested.value
            )

    def _transition(self, node_id: str, requested: NodeStatus) -> NodeExecutionState:
        self._check(node_id, requested)
        state = self._states[node_id]
        state.status = requested
        return state

    def _notify(self, state: NodeExecutionState) -> None:
        for listener in self._node_listeners:
            try:
                listener(state.node_id, state)
            except Exception as e:
                logger.error(f"Node state listener failed for {state.node_id}: {e}")
