"""
Workflow Engine — visual agent workflow builder.

Provides the infrastructure for defining, editing, storing and
running agent workflows drawn as a node-edge graph.

Architecture:
    workflow_model     — Data models for workflow definitions
    schema_utils       — Schema parsing, merging and field views
    workflow_graph     — Node/edge state container
    inheritance        — Effective input resolution along edges
    history            — Snapshot undo/redo
    workflow_editor    — Editing session (graph + history + store)
    widgets            — Widget plugin registry
    workflow_store     — Persistence layer for workflow definitions
    workflow_runner    — Interactive step-by-step interpreter
    workflow_executor  — Compiles the primary path into a LangGraph StateGraph
    workflow_inspector — Structured behavior report and validation
    templates          — Pre-built workflow templates

The runner, executor and inspector depend on ``agentflow.generation``
and are imported from their own modules.
"""

from agentflow.workflow.errors import (
    EdgeNotFoundError,
    GenerationFailed,
    MissingInputsError,
    NoRootFoundError,
    NodeNotFoundError,
    PersistenceError,
    RunStateError,
    SchemaParseError,
    WorkflowError,
)
from agentflow.workflow.workflow_model import (
    NodeKind,
    ServiceEntry,
    WidgetBinding,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)
from agentflow.workflow.workflow_graph import WorkflowGraph
from agentflow.workflow.history import HistoryManager
from agentflow.workflow.workflow_editor import WorkflowEditor
from agentflow.workflow.workflow_store import WorkflowStore, create_workflow_store

__all__ = [
    "EdgeNotFoundError",
    "GenerationFailed",
    "MissingInputsError",
    "NoRootFoundError",
    "NodeNotFoundError",
    "PersistenceError",
    "RunStateError",
    "SchemaParseError",
    "WorkflowError",
    "NodeKind",
    "ServiceEntry",
    "WidgetBinding",
    "WorkflowDefinition",
    "WorkflowEdge",
    "WorkflowNode",
    "WorkflowGraph",
    "HistoryManager",
    "WorkflowEditor",
    "WorkflowStore",
    "create_workflow_store",
]
