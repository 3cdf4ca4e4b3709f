"""
Undo/Redo History — bounded snapshot stacks over a ``WorkflowGraph``.

Linear-history discipline: ``snapshot()`` must be taken *before* a
mutation and invalidates the redo path. ``undo``/``redo`` swap the
whole live graph with a stored snapshot, so they never partially
apply.
"""

from __future__ import annotations

from collections import deque
from logging import getLogger
from typing import Deque

from agentflow.workflow.workflow_graph import GraphSnapshot, WorkflowGraph

logger = getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryManager:
    """Two bounded stacks of graph snapshots (oldest evicted first)."""

    def __init__(self, graph: WorkflowGraph, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self._graph = graph
        self._limit = limit
        self._undo: Deque[GraphSnapshot] = deque(maxlen=limit)
        self._redo: Deque[GraphSnapshot] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def can_undo(self) -> bool:
        return len(self._undo) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo) > 0

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def snapshot(self) -> None:
        """Record the current graph state; call BEFORE mutating."""
        self.record(self._graph.snapshot())

    def record(self, snapshot: GraphSnapshot) -> None:
        """Push a state taken earlier (before a mutation that succeeded)."""
        self._undo.append(snapshot)
        self._redo.clear()

    def undo(self) -> bool:
        """Restore the previous state. Returns False when there is none."""
        if not self._undo:
            return False
        previous = self._undo.pop()
        self._redo.append(self._graph.snapshot())
        self._graph.restore(previous)
        logger.debug(f"Undo applied ({len(self._undo)} left)")
        return True

    def redo(self) -> bool:
        """Re-apply the last undone state. Returns False when there is none."""
        if not self._redo:
            return False
        following = self._redo.pop()
        self._undo.append(self._graph.snapshot())
        self._graph.restore(following)
        logger.debug(f"Redo applied ({len(self._redo)} left)")
        return True

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
