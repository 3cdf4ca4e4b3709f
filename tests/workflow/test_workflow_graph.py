"""WorkflowGraph mutation and read primitives."""

import pytest
from pydantic import ValidationError

from agentflow.workflow.errors import EdgeNotFoundError, NodeNotFoundError, NoRootFoundError
from agentflow.workflow.workflow_graph import WorkflowGraph
from agentflow.workflow.workflow_model import NodeKind, WorkflowNode

from builders import data_node, edge, make_workflow, obj_schema, service_node


class TestNodes:
    """Node creation and update"""

    def test_add_node_defaults(self):
        graph = WorkflowGraph()
        node = graph.add_node(NodeKind.SERVICE)
        assert node.label == "New Agent"
        assert node.input_schema == {} and node.output_schema == {}
        assert 0 <= node.position["x"] <= 400
        assert graph.nodes == [node]

    def test_data_node_never_keeps_input_schema(self):
        graph = WorkflowGraph()
        node = graph.add_node(
            NodeKind.DATA, {"x": 1, "y": 2}, {"input_schema": obj_schema("a")},
        )
        assert node.label == "New Data"
        assert node.input_schema == {}

        updated = graph.update_node(node.id, {"inputSchema": obj_schema("b")})
        assert updated.input_schema == {}

    def test_update_merges_partial_payload(self):
        graph = WorkflowGraph([service_node("s", obj_schema("out"))])
        updated = graph.update_node("s", {"label": "Renamed"})
        assert updated.label == "Renamed"
        assert updated.output_schema == obj_schema("out")
        assert graph.get_node("s").label == "Renamed"

    def test_update_parses_schema_text_strictly(self):
        graph = WorkflowGraph([service_node("s")])
        graph.update_node("s", {"output_schema": '{"a": {"type": "string"}}'})
        assert graph.get_node("s").output_schema == obj_schema("a")
        with pytest.raises(ValidationError):
            graph.update_node("s", {"output_schema": "{oops"})

    def test_update_rejects_kind_change_and_unknown_fields(self):
        graph = WorkflowGraph([service_node("s")])
        with pytest.raises(ValueError):
            graph.update_node("s", {"kind": NodeKind.DATA})
        with pytest.raises(ValueError):
            graph.update_node("s", {"color": "red"})

    def test_update_unknown_node(self):
        with pytest.raises(NodeNotFoundError):
            WorkflowGraph().update_node("missing", {"label": "x"})

    def test_remove_node_drops_its_edges(self):
        graph = WorkflowGraph(
            [data_node("a", "x"), service_node("b"), service_node("c")],
            [edge("a", "b"), edge("b", "c")],
        )
        graph.remove_node("b")
        assert [n.id for n in graph.nodes] == ["a", "c"]
        assert graph.edges == []


class TestEdges:
    """Edge creation and removal"""

    def test_add_edge_requires_both_endpoints(self):
        graph = WorkflowGraph([service_node("a")])
        with pytest.raises(NodeNotFoundError):
            graph.add_edge("a", "ghost")

    def test_add_and_remove_edge(self):
        graph = WorkflowGraph([service_node("a"), service_node("b")])
        e = graph.add_edge("a", "b", source_handle="out")
        assert graph.outgoing_edges("a") == [e]
        assert graph.incoming_edges("b") == [e]
        graph.remove_edge(e.id)
        assert graph.edges == []
        with pytest.raises(EdgeNotFoundError):
            graph.remove_edge(e.id)

    def test_neighbors(self):
        graph = WorkflowGraph(
            [service_node("a"), service_node("b"), service_node("c")],
            [edge("a", "b"), edge("b", "c")],
        )
        assert graph.neighbors("b") == (["a"], ["c"])


class TestRoot:
    """Root detection"""

    def test_first_node_without_incoming_edge(self):
        graph = WorkflowGraph(
            [service_node("a"), service_node("b"), service_node("c")],
            [edge("b", "a")],
        )
        assert graph.find_root().id == "b"

    def test_no_root_when_everything_has_incoming(self):
        graph = WorkflowGraph(
            [service_node("a"), service_node("b")],
            [edge("a", "b"), edge("b", "a")],
        )
        with pytest.raises(NoRootFoundError):
            graph.find_root()

    def test_empty_graph_has_no_root(self):
        with pytest.raises(NoRootFoundError):
            WorkflowGraph().find_root()


class TestDefinitionRoundTrip:
    """Conversion to and from WorkflowDefinition"""

    def test_graph_is_independent_of_definition(self):
        workflow = make_workflow([service_node("a")], [])
        graph = WorkflowGraph.from_definition(workflow)
        graph.update_node("a", {"label": "changed"})
        assert workflow.nodes[0].label == "a"
        assert graph.to_definition(workflow).nodes[0].label == "changed"

    def test_document_uses_camel_case(self):
        node = WorkflowNode(id="n", output_schema=obj_schema("a"))
        doc = make_workflow([node], []).to_document()
        assert "outputSchema" in doc["nodes"][0]
        assert "isTemplate" in doc
