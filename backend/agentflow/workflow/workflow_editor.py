"""
Workflow Editor — one editing session over a stored workflow.

All structural mutations go through ``_dispatch``, which takes the
undo snapshot *before* applying the change. Callers never have to
remember to snapshot; a compound action (e.g. dragging a connection
onto the empty canvas, which creates a node *and* an edge) records a
single history step.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple, TypeVar

from agentflow.workflow.history import DEFAULT_HISTORY_LIMIT, HistoryManager
from agentflow.workflow.inheritance import resolve_effective_input, resolve_injected_data
from agentflow.workflow.schema_utils import SchemaDoc, format_schema, parse_schema_lenient
from agentflow.workflow.workflow_graph import WorkflowGraph
from agentflow.workflow.workflow_model import (
    NodeKind,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)

if TYPE_CHECKING:
    from agentflow.generation.client import NodeDraft
    from agentflow.workflow.workflow_store import WorkflowStore

logger = getLogger(__name__)

R = TypeVar("R")

_SCHEMA_FIELDS = ("input_schema", "output_schema", "inputSchema", "outputSchema")


class WorkflowEditor:
    """Graph + history + persistence for a single workflow."""

    def __init__(
        self,
        workflow: WorkflowDefinition,
        store: Optional["WorkflowStore"] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._workflow = workflow
        self._store = store
        self.graph = WorkflowGraph.from_definition(workflow)
        self.history = HistoryManager(self.graph, limit=history_limit)

    @classmethod
    def open(
        cls,
        store: "WorkflowStore",
        workflow_id: str,
        history_limit: Optional[int] = None,
    ) -> Optional["WorkflowEditor"]:
        """Open a stored workflow; ``None`` when it does not exist.

        ``history_limit`` defaults to ``EditorConfig.history_limit``.
        """
        workflow = store.load(workflow_id)
        if workflow is None:
            return None
        if history_limit is None:
            from agentflow.config import EditorConfig
            history_limit = EditorConfig.get_default_instance().history_limit
        return cls(workflow, store=store, history_limit=history_limit)

    @property
    def workflow_id(self) -> str:
        return self._workflow.id

    # ── Mutation dispatch ──

    def _dispatch(self, action: str, fn: Callable[[], R]) -> R:
        before = self.graph.snapshot()
        try:
            result = fn()
        except Exception:
            self.graph.restore(before)
            raise
        self.history.record(before)
        logger.debug(f"[{self._workflow.id}] {action}")
        return result

    def add_node(
        self,
        kind: NodeKind,
        position: Optional[Dict[str, float]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> WorkflowNode:
        return self._dispatch(
            "add_node",
            lambda: self.graph.add_node(kind, position, _parse_schema_fields(payload or {})),
        )

    def update_node(self, node_id: str, partial: Dict[str, Any]) -> WorkflowNode:
        """Commit an edit; schema text is parsed leniently."""
        return self._dispatch(
            "update_node",
            lambda: self.graph.update_node(node_id, _parse_schema_fields(partial)),
        )

    def move_node(self, node_id: str, position: Dict[str, float]) -> WorkflowNode:
        return self._dispatch(
            "move_node",
            lambda: self.graph.update_node(node_id, {"position": dict(position)}),
        )

    def remove_node(self, node_id: str) -> WorkflowNode:
        return self._dispatch("remove_node", lambda: self.graph.remove_node(node_id))

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> WorkflowEdge:
        return self._dispatch(
            "connect",
            lambda: self.graph.add_edge(source, target, source_handle, target_handle),
        )

    def disconnect(self, edge_id: str) -> WorkflowEdge:
        return self._dispatch("disconnect", lambda: self.graph.remove_edge(edge_id))

    def connect_to_new_node(
        self,
        source_id: str,
        source_handle: Optional[str] = None,
        position: Optional[Dict[str, float]] = None,
    ) -> Tuple[WorkflowNode, WorkflowEdge]:
        """Create a Service node fed by ``source_id``.

        The new node starts with the source's output schema as its
        input schema.
        """

        def _apply() -> Tuple[WorkflowNode, WorkflowEdge]:
            source = self.graph.get_node(source_id)
            node = self.graph.add_node(
                NodeKind.SERVICE,
                position,
                {"input_schema": dict(source.output_schema)},
            )
            edge = self.graph.add_edge(source_id, node.id, source_handle=source_handle)
            return node, edge

        return self._dispatch("connect_to_new_node", _apply)

    def apply_draft(self, node_id: str, draft: "NodeDraft") -> WorkflowNode:
        """Fill a node from an AI-assist draft."""
        node = self.graph.get_node(node_id)
        partial: Dict[str, Any] = {
            "label": draft.label,
            "definition": draft.definition,
            "input_schema": {} if node.is_data else draft.input_schema,
            "output_schema": draft.output_schema,
        }
        if draft.widget_bindings:
            partial["widget_bindings"] = list(draft.widget_bindings)
        return self._dispatch("apply_draft", lambda: self.graph.update_node(node_id, partial))

    # ── History ──

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    # ── Derived views ──

    def effective_input(self, node_id: str, *, tag_provenance: bool = False) -> SchemaDoc:
        self.graph.get_node(node_id)
        return resolve_effective_input(
            node_id, self.graph.nodes, self.graph.edges, tag_provenance=tag_provenance,
        )

    def injected_data(self, node_id: str) -> SchemaDoc:
        self.graph.get_node(node_id)
        return resolve_injected_data(node_id, self.graph.nodes, self.graph.edges)

    def generation_context(self, node_id: str) -> str:
        """Effective input as text, the context of an AI-assist request."""
        return format_schema(self.effective_input(node_id))

    # ── Persistence ──

    def to_definition(self) -> WorkflowDefinition:
        return self.graph.to_definition(self._workflow)

    def save(self) -> WorkflowDefinition:
        if self._store is None:
            raise RuntimeError("Editor has no store attached")
        self._workflow = self.to_definition()
        self._store.save(self._workflow)
        return self._workflow


def _parse_schema_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    parsed = dict(payload)
    for key in _SCHEMA_FIELDS:
        if isinstance(parsed.get(key), str):
            parsed[key] = parse_schema_lenient(parsed[key])
    return parsed
