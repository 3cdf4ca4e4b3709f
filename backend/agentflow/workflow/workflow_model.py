"""
Workflow Data Models — nodes, edges, widget bindings and definitions.

These are the serializable data structures that describe a
user-designed workflow graph. They are persisted by ``WorkflowStore``,
edited through ``WorkflowGraph`` / ``WorkflowEditor`` and replayed by
``WorkflowRunner``.

Schemas are held as structured dicts. Documents written by older
editors kept them as JSON text; such text is parsed on load.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from agentflow.workflow.errors import SchemaParseError
from agentflow.workflow.schema_utils import SchemaDoc, parse_schema


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class NodeKind(str, Enum):
    """Node kinds placed on the canvas."""
    SERVICE = "service"               # Invokes the generation call when run
    DATA = "data"                     # Static data source, never executes


DEFAULT_LABELS = {
    NodeKind.SERVICE: "New Agent",
    NodeKind.DATA: "New Data",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class WidgetBinding(_CamelModel):
    """Maps a schema property to a UI widget kind.

    ``widget_id`` names a plugin of the ``WidgetRegistry``
    (``standard-input``, ``code-editor``, ``markdown-viewer``, ...).
    """

    target_property: str
    widget_id: str = "standard-input"
    label: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)


class WorkflowNode(_CamelModel):
    """A single node placed on the workflow canvas."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: NodeKind = NodeKind.SERVICE
    label: str = ""
    definition: str = ""
    input_schema: SchemaDoc = Field(default_factory=dict)
    output_schema: SchemaDoc = Field(default_factory=dict)
    widget_bindings: List[WidgetBinding] = Field(default_factory=list)
    position: Dict[str, float] = Field(
        default_factory=lambda: {"x": 0, "y": 0}
    )

    @field_validator("input_schema", "output_schema", mode="before")
    @classmethod
    def _parse_schema_text(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, str):
            try:
                return parse_schema(value)
            except SchemaParseError as e:
                raise ValueError(str(e)) from e
        return value

    @model_validator(mode="after")
    def _data_nodes_take_no_input(self) -> "WorkflowNode":
        if self.kind == NodeKind.DATA and self.input_schema:
            self.input_schema = {}
        if not self.label:
            self.label = DEFAULT_LABELS[self.kind]
        return self

    @property
    def is_data(self) -> bool:
        return self.kind == NodeKind.DATA


class WorkflowEdge(_CamelModel):
    """A directed edge between two nodes.

    ``source_handle`` / ``target_handle`` are opaque sub-port ids.
    Several edges may connect the same pair of nodes.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source: str  # source node ID
    target: str  # target node ID
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None


class WorkflowDefinition(_CamelModel):
    """A complete workflow graph definition.

    Contains all nodes, edges, and metadata.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Untitled Workflow"
    description: str = ""
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    created_at: str = Field(default_factory=_utc_now)
    updated_at: str = Field(default_factory=_utc_now)
    is_template: bool = False

    def touch(self) -> None:
        """Update the ``updated_at`` timestamp."""
        self.updated_at = _utc_now()

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        """Find a node by ID."""
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def get_edges_from(self, node_id: str) -> List[WorkflowEdge]:
        """Get all edges originating from a node, in stored order."""
        return [e for e in self.edges if e.source == node_id]

    def get_edges_to(self, node_id: str) -> List[WorkflowEdge]:
        """Get all edges pointing to a node, in stored order."""
        return [e for e in self.edges if e.target == node_id]

    def to_document(self) -> Dict[str, Any]:
        """Serialize for persistence (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


class ServiceEntry(_CamelModel):
    """Registry listing row for a stored workflow."""

    id: str
    name: str
    description: str = ""
    updated_at: str

    @classmethod
    def from_workflow(cls, workflow: WorkflowDefinition) -> "ServiceEntry":
        return cls(
            id=workflow.id,
            name=workflow.name,
            description=workflow.description,
            updated_at=workflow.updated_at,
        )
