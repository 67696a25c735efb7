"""Tests for the per-run execution state tracker."""

import pytest

from workflow.engine.state import ExecutionTracker, NodeStatus, RunStatus
from workflow.errors import InvalidStateTransition


class TestNodeTransitions:
    def test_happy_path(self):
        tracker = ExecutionTracker("run-1", workflow_id=7)
        tracker.node_waiting("a", "trigger", {"input": 1})
        tracker.node_running("a")
        state = tracker.node_completed("a", {"default": 1})

        assert state.status == NodeStatus.COMPLETED
        assert state.input == {"input": 1}
        assert state.output == {"default": 1}
        assert state.start_time is not None and state.end_time is not None
        assert state.duration_ms >= 0
        assert tracker.status == RunStatus.RUNNING

    def test_failure(self):
        tracker = ExecutionTracker("run-1")
        tracker.node_waiting("a", "function")
        tracker.node_running("a")
        state = tracker.node_failed("a", "boom")

        assert state.status == NodeStatus.ERROR
        assert state.error == "boom"

    def test_cannot_skip_running(self):
        tracker = ExecutionTracker("run-1")
        tracker.node_waiting("a", "trigger")
        with pytest.raises(InvalidStateTransition):
            tracker.node_completed("a", {})

    def test_cannot_restart_finished_node(self):
        tracker = ExecutionTracker("run-1")
        tracker.node_waiting("a", "trigger")
        tracker.node_running("a")
        tracker.node_completed("a", {})
        with pytest.raises(InvalidStateTransition):
            tracker.node_waiting("a", "trigger")

    def test_unknown_node(self):
        tracker = ExecutionTracker("run-1")
        with pytest.raises(InvalidStateTransition):
            tracker.node_running("ghost")

    def test_no_transitions_after_completion(self):
        tracker = ExecutionTracker("run-1")
        tracker.complete(RunStatus.COMPLETED, output=1)
        with pytest.raises(InvalidStateTransition):
            tracker.node_waiting("a", "trigger")

    def test_visit_order(self):
        tracker = ExecutionTracker("run-1")
        for node_id in ("c", "a", "b"):
            tracker.node_waiting(node_id, "output")
            tracker.node_running(node_id)
            tracker.node_completed(node_id, {})

        assert [s.node_id for s in tracker.node_states] == ["c", "a", "b"]
        assert [entry["node_id"] for entry in tracker.execution_path()] == ["c", "a", "b"]
        assert tracker.get("a").status == NodeStatus.COMPLETED
        assert tracker.get("zzz") is None


class TestListeners:
    def test_node_listener_sees_every_transition(self):
        seen = []
        tracker = ExecutionTracker(
            "run-1", on_node_state_change=lambda node_id, state: seen.append((node_id, state.status))
        )
        tracker.node_waiting("a", "trigger")
        tracker.node_running("a")
        tracker.node_completed("a", {})

        assert seen == [
            ("a", NodeStatus.WAITING),
            ("a", NodeStatus.RUNNING),
            ("a", NodeStatus.COMPLETED),
        ]

    def test_failing_listener_does_not_break_tracking(self):
        def broken(node_id, state):
            raise RuntimeError("listener down")

        tracker = ExecutionTracker("run-1", on_node_state_change=broken)
        tracker.node_waiting("a", "trigger")
        tracker.node_running("a")
        assert tracker.get("a").status == NodeStatus.RUNNING

    def test_completion_fires_once(self):
        summaries = []
        tracker = ExecutionTracker("run-1", workflow_id=3)
        tracker.add_completion_listener(summaries.append)

        tracker.complete(RunStatus.FAILED, error="first")
        summary = tracker.complete(RunStatus.COMPLETED, output="second")

        assert len(summaries) == 1
        assert summaries[0].status == RunStatus.FAILED
        assert summaries[0].workflow_id == 3
        assert summary.error == "first"
        assert tracker.output is None

    def test_complete_rejects_non_terminal_status(self):
        tracker = ExecutionTracker("run-1")
        with pytest.raises(ValueError):
            tracker.complete(RunStatus.RUNNING)
        assert not tracker.is_complete
