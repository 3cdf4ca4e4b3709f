"""
Workflow Graph — the mutable node/edge container behind the editor.

``WorkflowGraph`` is the single source of truth while a workflow is
being edited. It exposes the mutation primitives (add/update/remove
node, add/remove edge) and the read primitives (incoming/outgoing
edges, neighbours, root detection) the resolver and runner rely on.

The graph itself does not record history; ``WorkflowEditor`` wraps
every mutation with a ``HistoryManager.snapshot()``.
"""

from __future__ import annotations

import copy
import random
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Dict, List, Optional, Tuple

from agentflow.workflow.errors import EdgeNotFoundError, NodeNotFoundError, NoRootFoundError
from agentflow.workflow.workflow_model import (
    NodeKind,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)

logger = getLogger(__name__)

# Fields ``update_node`` may touch. ``id`` and ``kind`` are immutable.
_PAYLOAD_FIELDS = (
    "label",
    "definition",
    "input_schema",
    "output_schema",
    "widget_bindings",
    "position",
)
_IMMUTABLE_FIELDS = ("id", "kind")

_CAMEL_TO_FIELD = {
    "inputSchema": "input_schema",
    "outputSchema": "output_schema",
    "widgetBindings": "widget_bindings",
}


@dataclass
class GraphSnapshot:
    """Deep-copied ``{nodes, edges}`` pair."""
    nodes: List[WorkflowNode] = field(default_factory=list)
    edges: List[WorkflowEdge] = field(default_factory=list)


class WorkflowGraph:
    """Node/edge state container.

    Node order is creation order; edge order is insertion order. Both
    orders are observable (root detection, inheritance precedence,
    the runner's "first outgoing edge").
    """

    def __init__(
        self,
        nodes: Optional[List[WorkflowNode]] = None,
        edges: Optional[List[WorkflowEdge]] = None,
    ) -> None:
        self._nodes: List[WorkflowNode] = list(nodes or [])
        self._edges: List[WorkflowEdge] = list(edges or [])

    @classmethod
    def from_definition(cls, workflow: WorkflowDefinition) -> "WorkflowGraph":
        return cls(
            [n.model_copy(deep=True) for n in workflow.nodes],
            [e.model_copy(deep=True) for e in workflow.edges],
        )

    def to_definition(self, workflow: WorkflowDefinition) -> WorkflowDefinition:
        """Return ``workflow`` with this graph's nodes and edges."""
        return workflow.model_copy(
            update={
                "nodes": [n.model_copy(deep=True) for n in self._nodes],
                "edges": [e.model_copy(deep=True) for e in self._edges],
            }
        )

    # ── Read primitives ──

    @property
    def nodes(self) -> List[WorkflowNode]:
        return list(self._nodes)

    @property
    def edges(self) -> List[WorkflowEdge]:
        return list(self._edges)

    def get_node(self, node_id: str) -> WorkflowNode:
        for n in self._nodes:
            if n.id == node_id:
                return n
        raise NodeNotFoundError(node_id)

    def has_node(self, node_id: str) -> bool:
        return any(n.id == node_id for n in self._nodes)

    def get_edge(self, edge_id: str) -> WorkflowEdge:
        for e in self._edges:
            if e.id == edge_id:
                return e
        raise EdgeNotFoundError(edge_id)

    def incoming_edges(self, node_id: str) -> List[WorkflowEdge]:
        return [e for e in self._edges if e.target == node_id]

    def outgoing_edges(self, node_id: str) -> List[WorkflowEdge]:
        return [e for e in self._edges if e.source == node_id]

    def neighbors(self, node_id: str) -> Tuple[List[str], List[str]]:
        """Return ``(upstream_ids, downstream_ids)`` without duplicates."""
        upstream = list(dict.fromkeys(e.source for e in self.incoming_edges(node_id)))
        downstream = list(dict.fromkeys(e.target for e in self.outgoing_edges(node_id)))
        return upstream, downstream

    def find_root(self) -> WorkflowNode:
        """Return the first node (creation order) without incoming edges.

        Raises:
            NoRootFoundError: Every node has at least one incoming edge,
                or the graph is empty.
        """
        targets = {e.target for e in self._edges}
        for n in self._nodes:
            if n.id not in targets:
                return n
        raise NoRootFoundError()

    # ── Mutation primitives ──

    def add_node(
        self,
        kind: NodeKind,
        position: Optional[Dict[str, float]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> WorkflowNode:
        """Append a new node and return it."""
        data: Dict[str, Any] = dict(payload or {})
        data["kind"] = NodeKind(kind)
        data["position"] = position or {
            "x": random.random() * 400,
            "y": random.random() * 400,
        }
        node = WorkflowNode.model_validate(data)
        if self.has_node(node.id):
            raise ValueError(f"Duplicate node id: {node.id}")
        self._nodes.append(node)
        logger.debug(f"Node added: {node.label} ({node.id}, {node.kind.value})")
        return node

    def update_node(self, node_id: str, partial: Dict[str, Any]) -> WorkflowNode:
        """Shallow-merge ``partial`` into the node payload.

        Fields not present in ``partial`` are kept as they are.
        """
        current = self.get_node(node_id)
        changes = {_CAMEL_TO_FIELD.get(k, k): v for k, v in partial.items()}

        for key in _IMMUTABLE_FIELDS:
            if key in changes and changes[key] != getattr(current, key):
                raise ValueError(f"Node field '{key}' is immutable")
            changes.pop(key, None)
        unknown = set(changes) - set(_PAYLOAD_FIELDS)
        if unknown:
            raise ValueError(f"Unknown node fields: {', '.join(sorted(unknown))}")

        data = current.model_dump()
        data.update(changes)
        updated = WorkflowNode.model_validate(data)

        index = self._nodes.index(current)
        self._nodes[index] = updated
        return updated

    def remove_node(self, node_id: str) -> WorkflowNode:
        """Remove a node and every edge referencing it."""
        node = self.get_node(node_id)
        self._nodes.remove(node)
        before = len(self._edges)
        self._edges = [
            e for e in self._edges if e.source != node_id and e.target != node_id
        ]
        logger.debug(
            f"Node removed: {node.label} ({node_id}), "
            f"{before - len(self._edges)} edge(s) dropped"
        )
        return node

    def add_edge(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> WorkflowEdge:
        self.get_node(source)
        self.get_node(target)
        edge = WorkflowEdge(
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        self._edges.append(edge)
        return edge

    def remove_edge(self, edge_id: str) -> WorkflowEdge:
        edge = self.get_edge(edge_id)
        self._edges.remove(edge)
        return edge

    # ── Snapshots ──

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(
            nodes=copy.deepcopy(self._nodes),
            edges=copy.deepcopy(self._edges),
        )

    def restore(self, snapshot: GraphSnapshot) -> None:
        self._nodes = copy.deepcopy(snapshot.nodes)
        self._edges = copy.deepcopy(snapshot.edges)
