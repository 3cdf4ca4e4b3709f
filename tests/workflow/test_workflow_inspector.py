"""Workflow inspection report."""

from agentflow.workflow.templates import create_code_review_template
from agentflow.workflow.workflow_inspector import inspect_workflow
from agentflow.workflow.workflow_model import NodeKind, WidgetBinding, WorkflowNode

from builders import data_node, edge, make_workflow, obj_schema, service_node


class TestReport:
    """Report contents for a valid workflow"""

    def test_template_is_valid(self):
        report = inspect_workflow(create_code_review_template())
        assert report["validation"]["valid"] is True
        assert report["validation"]["errors"] == []
        assert report["summary"]["root_node_id"] == "challenge"
        assert report["summary"]["service_nodes"] == 2
        assert report["summary"]["data_nodes"] == 2

    def test_node_details(self):
        report = inspect_workflow(create_code_review_template())
        details = {n["id"]: n for n in report["nodes"]}

        evaluate = details["evaluate"]
        assert set(evaluate["effective_input"]["properties"]) == {
            "challenge_description", "code", "language",
        }
        assert evaluate["effective_input"]["properties"]["code"]["x-provenance"] == "injected"
        assert evaluate["next_node_id"] == "summarize"
        assert {w["role"] for w in evaluate["widgets"]} == {"observation", "interaction"}

        summarize = details["summarize"]
        assert set(summarize["effective_input"]["properties"]) == {"score", "issues", "reasoning"}
        assert summarize["injected_data"] == {}
        assert summarize["next_node_id"] is None

    def test_edge_labels(self):
        report = inspect_workflow(create_code_review_template())
        first = report["edges"][0]
        assert (first["source_label"], first["target_label"]) == ("Challenge", "Submission")


class TestValidation:
    """Errors and warnings"""

    def test_dangling_edge_and_no_root(self):
        workflow = make_workflow(
            [service_node("a"), service_node("b")],
            [edge("a", "b"), edge("b", "a"), edge("a", "ghost")],
        )
        report = inspect_workflow(workflow)
        errors = report["validation"]["errors"]
        assert report["validation"]["valid"] is False
        assert any("ghost" in e for e in errors)
        assert any("no root" in e for e in errors)
        assert len(report["edges"]) == 2

    def test_warnings(self):
        orphan = service_node("orphan", definition="")
        bound = WorkflowNode(
            id="bound", kind=NodeKind.SERVICE, label="Bound", definition="x",
            output_schema=obj_schema("a"),
            widget_bindings=[WidgetBinding(target_property="missing")],
        )
        workflow = make_workflow(
            [data_node("d1", "x"), data_node("d2", "y"), bound, orphan],
            [edge("d1", "d2"), edge("d2", "d1"), edge("d2", "bound")],
        )
        warnings = inspect_workflow(workflow)["validation"]["warnings"]
        assert any("not connected" in w and "orphan" in w for w in warnings)
        assert any("no definition" in w for w in warnings)
        assert any("unknown property 'missing'" in w for w in warnings)
        assert any("cycle" in w.lower() for w in warnings)
