"""
Widget Registry — map schema properties to UI widget kinds.

A registry is an explicit ordered list of ``WidgetPlugin`` entries,
built once at startup by ``create_default_widget_registry()`` and
handed to whoever needs it (runner step views, the inspector). There
is no module-level instance.

Resolution is "first match wins". ``register()`` prepends, so
specialised plugins take precedence over the catch-all
``standard-input`` plugin that always sits at the end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger
from typing import Any, Callable, Dict, List, Optional

from agentflow.workflow.schema_utils import SchemaDoc, get_properties, is_display_only
from agentflow.workflow.workflow_model import WidgetBinding, WorkflowNode

logger = getLogger(__name__)

STANDARD_INPUT = "standard-input"
CODE_EDITOR = "code-editor"
MARKDOWN_VIEWER = "markdown-viewer"


class WidgetRole(str, Enum):
    """How a bound property behaves at a run step."""
    OBSERVATION = "observation"       # displayOnly output, read-only
    CONTEXT = "context"               # not an output property, read-only input
    INTERACTION = "interaction"       # ordinary output, user may edit


@dataclass
class WidgetSpec:
    """Rendering instructions produced by a plugin factory."""
    widget_id: str
    control: str
    label: str
    props: Dict[str, Any] = field(default_factory=dict)
    read_only: bool = False


MatchFn = Callable[[str, SchemaDoc], bool]
FactoryFn = Callable[[str, SchemaDoc, str], WidgetSpec]


@dataclass
class WidgetPlugin:
    id: str
    name: str
    match: MatchFn
    factory: FactoryFn


class WidgetRegistry:
    """Ordered plugin list with a guaranteed fallback."""

    def __init__(self, default: WidgetPlugin) -> None:
        self._default = default
        self._plugins: List[WidgetPlugin] = [default]

    @property
    def plugins(self) -> List[WidgetPlugin]:
        return list(self._plugins)

    def register(self, plugin: WidgetPlugin) -> None:
        """Add a plugin ahead of every previously registered one."""
        self._plugins = [p for p in self._plugins if p.id != plugin.id or p is self._default]
        self._plugins.insert(0, plugin)

    def resolve(self, key: str, schema: Optional[SchemaDoc]) -> WidgetPlugin:
        prop_schema = schema or {}
        for plugin in self._plugins:
            if plugin.match(key, prop_schema):
                return plugin
        return self._default

    def get(self, widget_id: str) -> WidgetPlugin:
        for plugin in self._plugins:
            if plugin.id == widget_id:
                return plugin
        logger.debug(f"Unknown widget '{widget_id}', using {self._default.id}")
        return self._default

    def build(self, key: str, schema: Optional[SchemaDoc], label: str = "") -> WidgetSpec:
        plugin = self.resolve(key, schema)
        return plugin.factory(key, schema or {}, label or key)


# ============================================================================
# Built-in plugins
# ============================================================================


def _standard_input(key: str, schema: SchemaDoc, label: str) -> WidgetSpec:
    prop_type = schema.get("type", "string")
    long_text = prop_type == "string" and (
        (schema.get("maxLength") or 0) > 100 or "description" in label.lower()
    )
    if long_text:
        control = "textarea"
    elif prop_type in ("number", "integer"):
        control = "number"
    elif prop_type == "boolean":
        control = "checkbox"
    else:
        control = "text"
    return WidgetSpec(
        widget_id=STANDARD_INPUT,
        control=control,
        label=label,
        props={"placeholder": schema.get("description", "")},
    )


def _code_editor(key: str, schema: SchemaDoc, label: str) -> WidgetSpec:
    return WidgetSpec(
        widget_id=CODE_EDITOR,
        control="code",
        label=label,
        props={"language": schema.get("language", "plaintext")},
    )


def _markdown_viewer(key: str, schema: SchemaDoc, label: str) -> WidgetSpec:
    return WidgetSpec(
        widget_id=MARKDOWN_VIEWER,
        control="markdown",
        label=label,
        read_only=True,
    )


def create_default_widget_registry() -> WidgetRegistry:
    """Registry with the three built-in widgets."""
    registry = WidgetRegistry(WidgetPlugin(
        id=STANDARD_INPUT,
        name="Standard Input",
        match=lambda key, schema: True,
        factory=_standard_input,
    ))
    registry.register(WidgetPlugin(
        id=MARKDOWN_VIEWER,
        name="Markdown Viewer",
        match=lambda key, schema: schema.get("format") == "markdown",
        factory=_markdown_viewer,
    ))
    registry.register(WidgetPlugin(
        id=CODE_EDITOR,
        name="Code Editor",
        match=lambda key, schema: (
            schema.get("format") == "code" or "code" in key.lower()
        ),
        factory=_code_editor,
    ))
    return registry


# ============================================================================
# Binding roles
# ============================================================================


def binding_role(binding: WidgetBinding, output_schema: SchemaDoc) -> WidgetRole:
    """Classify a binding against the node's output contract."""
    if binding.target_property not in get_properties(output_schema):
        return WidgetRole.CONTEXT
    if is_display_only(output_schema, binding.target_property):
        return WidgetRole.OBSERVATION
    return WidgetRole.INTERACTION


def describe_bindings(
    node: WorkflowNode,
    registry: WidgetRegistry,
) -> List[Dict[str, Any]]:
    """Widget specs for every binding of a node, with their run-time role."""
    described: List[Dict[str, Any]] = []
    props = {**get_properties(node.input_schema), **get_properties(node.output_schema)}
    for binding in node.widget_bindings:
        plugin = registry.get(binding.widget_id)
        prop_schema = {**(props.get(binding.target_property) or {}), **binding.config}
        spec = plugin.factory(
            binding.target_property, prop_schema, binding.label or binding.target_property,
        )
        role = binding_role(binding, node.output_schema)
        spec.read_only = spec.read_only or role != WidgetRole.INTERACTION
        described.append({
            "target_property": binding.target_property,
            "role": role.value,
            "known_property": binding.target_property in props,
            "widget": spec,
        })
    return described
