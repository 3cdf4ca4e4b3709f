"""
Workflow Errors — the exception taxonomy shared by the editor,
resolver, store and runner.

Every error is scoped to the operation that raised it. None of them
leave the graph or a run context half-modified.
"""

from __future__ import annotations

from typing import Iterable, Optional


class WorkflowError(Exception):
    """Base class for all workflow engine errors."""


class SchemaParseError(WorkflowError):
    """Schema text is not valid JSON or not a usable schema document."""


class NoRootFoundError(WorkflowError):
    """The graph has no node without incoming edges."""

    def __init__(self, message: str = "Cannot start workflow: no root node found") -> None:
        super().__init__(message)


class NodeNotFoundError(WorkflowError, KeyError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")

    def __str__(self) -> str:
        return self.args[0]


class EdgeNotFoundError(WorkflowError, KeyError):
    def __init__(self, edge_id: str) -> None:
        self.edge_id = edge_id
        super().__init__(f"Edge not found: {edge_id}")

    def __str__(self) -> str:
        return self.args[0]


class GenerationFailed(WorkflowError):
    """The external generation call failed or returned unusable JSON.

    ``cause`` keeps the underlying exception (if any) so callers can
    surface the raw error to the user.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)


class RunStateError(WorkflowError):
    """A run transition was requested from a state that does not allow it."""


class MissingInputsError(WorkflowError):
    """Data node values required for an unattended run were not supplied."""

    def __init__(self, node_id: str, missing: Iterable[str]) -> None:
        self.node_id = node_id
        self.missing = list(missing)
        super().__init__(
            f"Data node '{node_id}' is missing values for: {', '.join(self.missing)}"
        )


class PersistenceError(WorkflowError):
    """The persistence adapter could not read or write a workflow document."""
