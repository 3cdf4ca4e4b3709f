"""Widget plugin registry and binding roles."""

from agentflow.workflow.widgets import (
    CODE_EDITOR,
    MARKDOWN_VIEWER,
    STANDARD_INPUT,
    WidgetPlugin,
    WidgetRole,
    WidgetSpec,
    binding_role,
    create_default_widget_registry,
    describe_bindings,
)
from agentflow.workflow.workflow_model import NodeKind, WidgetBinding, WorkflowNode


def _plugin(plugin_id, predicate):
    return WidgetPlugin(
        id=plugin_id,
        name=plugin_id,
        match=predicate,
        factory=lambda key, schema, label: WidgetSpec(plugin_id, "custom", label),
    )


class TestResolution:
    """First matching plugin wins"""

    def test_builtin_resolution(self):
        registry = create_default_widget_registry()
        assert registry.resolve("source_code", {"type": "string"}).id == CODE_EDITOR
        assert registry.resolve("body", {"format": "code"}).id == CODE_EDITOR
        assert registry.resolve("notes", {"format": "markdown"}).id == MARKDOWN_VIEWER
        assert registry.resolve("name", {"type": "string"}).id == STANDARD_INPUT
        assert registry.resolve("anything", None).id == STANDARD_INPUT

    def test_registered_plugin_takes_precedence(self):
        registry = create_default_widget_registry()
        registry.register(_plugin("everything", lambda key, schema: True))
        assert registry.resolve("source_code", {}).id == "everything"
        assert registry.plugins[-1].id == STANDARD_INPUT

    def test_reregistering_replaces_previous(self):
        registry = create_default_widget_registry()
        registry.register(_plugin("x", lambda key, schema: False))
        registry.register(_plugin("x", lambda key, schema: key == "k"))
        assert [p.id for p in registry.plugins].count("x") == 1
        assert registry.resolve("k", {}).id == "x"

    def test_registries_are_independent(self):
        first = create_default_widget_registry()
        second = create_default_widget_registry()
        first.register(_plugin("extra", lambda key, schema: True))
        assert second.resolve("k", {}).id == STANDARD_INPUT

    def test_unknown_widget_id_falls_back(self):
        registry = create_default_widget_registry()
        assert registry.get("no-such-widget").id == STANDARD_INPUT


class TestStandardInput:
    """Control choice of the fallback widget"""

    def test_controls(self):
        registry = create_default_widget_registry()
        assert registry.build("age", {"type": "integer"}).control == "number"
        assert registry.build("ok", {"type": "boolean"}).control == "checkbox"
        assert registry.build("title", {"type": "string"}).control == "text"
        assert registry.build("challenge_description", {"type": "string"}).control == "textarea"
        assert registry.build("essay", {"type": "string", "maxLength": 500}).control == "textarea"

    def test_textarea_follows_the_label(self):
        registry = create_default_widget_registry()
        spec = registry.build("summary", {"type": "string"}, label="Job Description")
        assert spec.control == "textarea"
        assert registry.build("description", {"type": "string"}, label="Title").control == "text"


class TestBindingRoles:
    """observation / context / interaction"""

    OUTPUT = {
        "type": "object",
        "properties": {
            "score": {"type": "number"},
            "reasoning": {"type": "string", "displayOnly": True},
        },
    }

    def test_roles(self):
        assert binding_role(WidgetBinding(target_property="score"), self.OUTPUT) == WidgetRole.INTERACTION
        assert binding_role(WidgetBinding(target_property="reasoning"), self.OUTPUT) == WidgetRole.OBSERVATION
        assert binding_role(WidgetBinding(target_property="code"), self.OUTPUT) == WidgetRole.CONTEXT

    def test_describe_bindings(self):
        node = WorkflowNode(
            kind=NodeKind.SERVICE,
            input_schema={"type": "object", "properties": {"code": {"type": "string"}}},
            output_schema=self.OUTPUT,
            widget_bindings=[
                WidgetBinding(target_property="code", widget_id=CODE_EDITOR),
                WidgetBinding(target_property="score"),
                WidgetBinding(target_property="ghost"),
            ],
        )
        described = describe_bindings(node, create_default_widget_registry())

        code, score, ghost = described
        assert code["role"] == "context" and code["widget"].read_only
        assert score["role"] == "interaction" and not score["widget"].read_only
        assert score["widget"].control == "number"
        assert ghost["known_property"] is False
