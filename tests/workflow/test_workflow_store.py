"""JSON-file persistence."""

import json

import pytest

from agentflow.workflow.errors import PersistenceError
from agentflow.workflow.workflow_model import NodeKind, WorkflowDefinition, WorkflowNode
from agentflow.workflow.workflow_store import WorkflowStore

from builders import data_node, edge, service_node


@pytest.fixture
def store(tmp_path):
    return WorkflowStore(tmp_path / "workflows")


class TestRegistry:
    """Service registry rows"""

    def test_create_and_list(self, store):
        first = store.create("First", "one")
        second = store.create("  Second  ")
        entries = store.list_entries()
        assert {e.id for e in entries} == {first.id, second.id}
        assert second.name == "Second"

    def test_empty_name_rejected(self, store):
        with pytest.raises(ValueError):
            store.create("   ")

    def test_templates_are_not_listed_as_services(self, store):
        store.save(WorkflowDefinition(id="tpl", name="T", is_template=True))
        assert store.list_entries() == []
        assert [t.id for t in store.list_templates()] == ["tpl"]


class TestRoundTrip:
    """Documents survive save/load unchanged"""

    def test_graph_round_trip(self, store):
        workflow = store.create("Pipeline")
        schema = {
            "type": "object",
            "properties": {
                "tags": {"type": "array", "items": {"type": "string"}, "description": "d"},
                "notes": {"type": "string", "displayOnly": True},
            },
            "required": ["tags"],
        }
        nodes = [
            data_node("d", "code"),
            WorkflowNode(id="s", kind=NodeKind.SERVICE, label="S", output_schema=schema),
        ]
        store.save_graph(workflow.id, nodes, [edge("d", "s")])

        loaded_nodes, loaded_edges = store.load_graph(workflow.id)
        assert loaded_nodes == nodes
        assert [(e.source, e.target) for e in loaded_edges] == [("d", "s")]
        assert loaded_nodes[1].output_schema == schema

    def test_document_is_camel_case_json(self, store):
        workflow = store.create("Doc")
        store.save_graph(workflow.id, [service_node("s")], [])
        raw = json.loads((store.storage_dir / f"{workflow.id}.json").read_text())
        assert "outputSchema" in raw["nodes"][0]
        assert "updatedAt" in raw

    def test_legacy_string_schemas_are_parsed(self, store):
        path = store.storage_dir / "legacy.json"
        path.write_text(json.dumps({
            "id": "legacy",
            "name": "Legacy",
            "nodes": [{
                "id": "n",
                "kind": "service",
                "label": "N",
                "outputSchema": '{"a": {"type": "string"}}',
            }],
            "edges": [],
        }))
        loaded = store.load("legacy")
        assert loaded.nodes[0].output_schema == {
            "type": "object",
            "properties": {"a": {"type": "string"}},
        }


class TestFailures:
    """Missing and malformed documents"""

    def test_missing_is_none(self, store):
        assert store.load("nope") is None
        assert store.load_graph("nope") is None
        assert store.delete("nope") is False

    def test_malformed_document_raises(self, store):
        (store.storage_dir / "broken.json").write_text("{not json")
        with pytest.raises(PersistenceError):
            store.load("broken")
        assert store.list_all() == []

    def test_save_graph_for_unknown_workflow(self, store):
        with pytest.raises(PersistenceError):
            store.save_graph("ghost", [], [])

    def test_delete(self, store):
        workflow = store.create("Temp")
        assert store.exists(workflow.id)
        assert store.delete(workflow.id) is True
        assert not store.exists(workflow.id)

    def test_invalid_id(self, store):
        with pytest.raises(ValueError):
            store.load("../..")
