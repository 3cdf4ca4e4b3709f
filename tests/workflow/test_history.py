"""Snapshot undo/redo."""

import pytest

from agentflow.workflow.history import HistoryManager
from agentflow.workflow.workflow_graph import WorkflowGraph
from agentflow.workflow.workflow_model import NodeKind


def _ids(graph):
    return [n.id for n in graph.nodes]


class TestHistoryManager:
    """Linear history over a live graph"""

    def test_undo_then_redo_restores_state(self):
        graph = WorkflowGraph()
        history = HistoryManager(graph)

        history.snapshot()
        a = graph.add_node(NodeKind.SERVICE)
        history.snapshot()
        b = graph.add_node(NodeKind.DATA)
        after = _ids(graph)

        assert history.undo()
        assert _ids(graph) == [a.id]
        assert history.redo()
        assert _ids(graph) == after == [a.id, b.id]

    def test_undo_on_empty_history_is_noop(self):
        graph = WorkflowGraph()
        history = HistoryManager(graph)
        assert history.undo() is False
        assert history.redo() is False
        assert graph.nodes == []

    def test_new_snapshot_clears_redo(self):
        graph = WorkflowGraph()
        history = HistoryManager(graph)
        history.snapshot()
        graph.add_node(NodeKind.SERVICE)
        history.undo()
        assert history.can_redo

        history.snapshot()
        graph.add_node(NodeKind.DATA)
        assert not history.can_redo

    def test_limit_evicts_oldest(self):
        graph = WorkflowGraph()
        history = HistoryManager(graph, limit=3)
        for _ in range(5):
            history.snapshot()
            graph.add_node(NodeKind.SERVICE)

        assert history.undo_depth == 3
        while history.undo():
            pass
        # Two oldest snapshots were evicted
        assert len(graph.nodes) == 2

    def test_snapshots_are_isolated_from_live_graph(self):
        graph = WorkflowGraph()
        history = HistoryManager(graph)
        node = graph.add_node(NodeKind.SERVICE, payload={"label": "before"})
        history.snapshot()
        graph.update_node(node.id, {"label": "after"})
        history.undo()
        assert graph.get_node(node.id).label == "before"

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            HistoryManager(WorkflowGraph(), limit=0)
