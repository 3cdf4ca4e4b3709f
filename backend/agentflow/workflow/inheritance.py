"""
Schema Inheritance — compute a node's effective input contract.

The effective input of a node is the merge of what flows into it:

* A **Data** source contributes its output schema as *injected* data
  and is transparent: whatever *it* inherits from further upstream
  Data nodes passes through as well.
* A **Service** source contributes its declared output schema as
  *standard* upstream output. Traversal stops there; a Service node's
  own inputs are never inherited by its consumers.

Contributions are ordered by traversal (incoming edges in stored order,
depth-first through Data chains) and merged with "last wins"
precedence.

A Data chain that loops back onto itself is truncated at the repeated
node. The cycle is logged and reported on the ``Resolution`` but never
raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import Dict, Iterable, List, Set, Tuple

from agentflow.workflow.schema_utils import (
    Provenance,
    SchemaContribution,
    SchemaDoc,
    merge_schemas,
)
from agentflow.workflow.workflow_model import NodeKind, WorkflowEdge, WorkflowNode

logger = getLogger(__name__)


@dataclass
class Resolution:
    """Ordered contributions plus any cycles met along the way."""
    node_id: str
    contributions: List[SchemaContribution] = field(default_factory=list)
    cycles: List[Tuple[str, ...]] = field(default_factory=list)

    def merged(self, *, tag_provenance: bool = False) -> SchemaDoc:
        return merge_schemas(self.contributions, tag_provenance=tag_provenance)


def collect_contributions(
    node_id: str,
    nodes: Iterable[WorkflowNode],
    edges: Iterable[WorkflowEdge],
    *,
    data_only: bool = False,
) -> Resolution:
    """Walk incoming edges of ``node_id`` and gather schema contributions.

    Args:
        data_only: Skip Service sources wired directly into ``node_id``
            (the "injected data" view of a node). Service outputs reached
            through a Data chain are still collected.
    """
    node_map: Dict[str, WorkflowNode] = {n.id: n for n in nodes}
    incoming: Dict[str, List[WorkflowEdge]] = {}
    for edge in edges:
        incoming.setdefault(edge.target, []).append(edge)

    resolution = Resolution(node_id=node_id)
    # Ids currently on the recursion path
    on_path: List[str] = [node_id]
    on_path_set: Set[str] = {node_id}

    def _walk(target_id: str) -> None:
        for edge in incoming.get(target_id, []):
            source = node_map.get(edge.source)
            if source is None:
                logger.debug(f"Skipping edge {edge.id}: unknown source {edge.source}")
                continue

            if source.kind == NodeKind.SERVICE:
                if not (data_only and target_id == node_id):
                    resolution.contributions.append(SchemaContribution(
                        schema=source.output_schema,
                        provenance=Provenance.STANDARD,
                        source_id=source.id,
                    ))
                continue

            if source.id in on_path_set:
                cycle = tuple(on_path[on_path.index(source.id):]) + (source.id,)
                resolution.cycles.append(cycle)
                logger.warning(
                    f"Cycle detected in data chain while resolving '{node_id}': "
                    f"{' -> '.join(reversed(cycle))}"
                )
                continue

            resolution.contributions.append(SchemaContribution(
                schema=source.output_schema,
                provenance=Provenance.INJECTED,
                source_id=source.id,
            ))
            on_path.append(source.id)
            on_path_set.add(source.id)
            try:
                _walk(source.id)
            finally:
                on_path.pop()
                on_path_set.discard(source.id)

    _walk(node_id)
    return resolution


def resolve_effective_input(
    node_id: str,
    nodes: Iterable[WorkflowNode],
    edges: Iterable[WorkflowEdge],
    *,
    tag_provenance: bool = False,
) -> SchemaDoc:
    """Effective input schema of ``node_id``; ``{}`` without incoming edges."""
    return collect_contributions(node_id, nodes, edges).merged(
        tag_provenance=tag_provenance
    )


def resolve_injected_data(
    node_id: str,
    nodes: Iterable[WorkflowNode],
    edges: Iterable[WorkflowEdge],
) -> SchemaDoc:
    """Only what flows in through Data-node sources, with their upstream."""
    return collect_contributions(node_id, nodes, edges, data_only=True).merged()


def resolve_all(
    nodes: Iterable[WorkflowNode],
    edges: Iterable[WorkflowEdge],
    *,
    tag_provenance: bool = False,
) -> Dict[str, SchemaDoc]:
    """Effective input for every node of a graph."""
    node_list = list(nodes)
    edge_list = list(edges)
    return {
        n.id: resolve_effective_input(
            n.id, node_list, edge_list, tag_provenance=tag_provenance,
        )
        for n in node_list
    }


def find_data_cycles(
    nodes: Iterable[WorkflowNode],
    edges: Iterable[WorkflowEdge],
) -> List[Tuple[str, ...]]:
    """All distinct data-chain cycles met while resolving every node."""
    node_list = list(nodes)
    edge_list = list(edges)
    seen: Set[frozenset] = set()
    cycles: List[Tuple[str, ...]] = []
    for n in node_list:
        for cycle in collect_contributions(n.id, node_list, edge_list).cycles:
            key = frozenset(cycle)
            if key not in seen:
                seen.add(key)
                cycles.append(cycle)
    return cycles
