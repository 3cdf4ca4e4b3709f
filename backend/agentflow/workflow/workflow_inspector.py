"""
Workflow Inspector — a structured report of how a workflow will behave.

Instead of running anything, the inspector resolves what each node
would receive and produces:

* Per-node details: effective input, injected data, outgoing targets
  and the run-time role of each widget binding
* Per-edge details with resolved endpoint labels
* Summary stats (counts, root node)
* Validation: hard errors and soft warnings
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, List, Optional

from agentflow.workflow.errors import NoRootFoundError
from agentflow.workflow.inheritance import collect_contributions, find_data_cycles
from agentflow.workflow.schema_utils import get_properties
from agentflow.workflow.widgets import (
    WidgetRegistry,
    binding_role,
    create_default_widget_registry,
)
from agentflow.workflow.workflow_graph import WorkflowGraph
from agentflow.workflow.workflow_model import NodeKind, WorkflowDefinition, WorkflowNode

logger = getLogger(__name__)


# ====================================================================
# Public API
# ====================================================================


def inspect_workflow(
    workflow: WorkflowDefinition,
    registry: Optional[WidgetRegistry] = None,
) -> Dict[str, Any]:
    """Inspect a workflow and produce the report.

    Returns a dict containing:
        - ``nodes``      : Per-node detail list
        - ``edges``      : Per-edge detail list
        - ``summary``    : High-level stats
        - ``validation`` : ``{"valid", "errors", "warnings"}``
    """
    reg = registry or create_default_widget_registry()
    node_map = {n.id: n for n in workflow.nodes}

    errors: List[str] = []
    warnings: List[str] = []

    # Dangling edges are reported, then left out of everything else
    edges = []
    for edge in workflow.edges:
        missing = [end for end in (edge.source, edge.target) if end not in node_map]
        if missing:
            errors.append(
                f"Edge {edge.id} references missing node(s): {', '.join(missing)}"
            )
        else:
            edges.append(edge)

    graph = WorkflowGraph(workflow.nodes, edges)
    try:
        root_id: Optional[str] = graph.find_root().id
    except NoRootFoundError as e:
        root_id = None
        errors.append(str(e))

    node_details = [_build_node_details(n, graph, reg, warnings) for n in workflow.nodes]

    for cycle in find_data_cycles(workflow.nodes, edges):
        labels = " → ".join(node_map[nid].label for nid in cycle)
        warnings.append(f"Data chain cycle: {labels}")

    summary = {
        "workflow_id": workflow.id,
        "workflow_name": workflow.name,
        "total_nodes": len(workflow.nodes),
        "service_nodes": sum(1 for n in workflow.nodes if n.kind == NodeKind.SERVICE),
        "data_nodes": sum(1 for n in workflow.nodes if n.kind == NodeKind.DATA),
        "total_edges": len(workflow.edges),
        "root_node_id": root_id,
    }

    if errors:
        logger.info(f"Workflow '{workflow.name}' has {len(errors)} validation error(s)")

    return {
        "nodes": node_details,
        "edges": _build_edge_details(edges, node_map),
        "summary": summary,
        "validation": {
            "valid": not errors,
            "errors": errors,
            "warnings": warnings,
        },
    }


# ====================================================================
# Node / edge details
# ====================================================================


def _build_node_details(
    node: WorkflowNode,
    graph: WorkflowGraph,
    registry: WidgetRegistry,
    warnings: List[str],
) -> Dict[str, Any]:
    upstream, downstream = graph.neighbors(node.id)

    if not upstream and not downstream and len(graph.nodes) > 1:
        warnings.append(f"Node '{node.label}' ({node.id}) is not connected")

    if node.kind == NodeKind.SERVICE and not node.definition.strip():
        warnings.append(f"Service node '{node.label}' ({node.id}) has no definition")

    resolution = collect_contributions(node.id, graph.nodes, graph.edges)
    injected = collect_contributions(node.id, graph.nodes, graph.edges, data_only=True)

    known = {**get_properties(node.input_schema), **get_properties(node.output_schema)}
    widgets = []
    for binding in node.widget_bindings:
        if binding.target_property not in known:
            warnings.append(
                f"Widget binding on '{node.label}' targets unknown property "
                f"'{binding.target_property}'"
            )
        widgets.append({
            "target_property": binding.target_property,
            "widget_id": registry.get(binding.widget_id).id,
            "role": binding_role(binding, node.output_schema).value,
        })

    return {
        "id": node.id,
        "kind": node.kind.value,
        "label": node.label,
        "effective_input": resolution.merged(tag_provenance=True),
        "injected_data": injected.merged(),
        "sources": [c.source_id for c in resolution.contributions if c.source_id],
        "outgoing": downstream,
        "next_node_id": downstream[0] if downstream else None,
        "widgets": widgets,
    }


def _build_edge_details(edges, node_map: Dict[str, WorkflowNode]) -> List[Dict[str, Any]]:
    return [
        {
            "id": e.id,
            "source": e.source,
            "source_label": node_map[e.source].label,
            "target": e.target,
            "target_label": node_map[e.target].label,
            "source_handle": e.source_handle,
            "target_handle": e.target_handle,
        }
        for e in edges
    ]
