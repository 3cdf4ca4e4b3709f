"""
Workflow Store — JSON-file persistence for workflow definitions.

Stores each workflow as an individual JSON document under a
configurable directory, keyed by workflow id. The document is the
single opaque ``{nodes, edges}`` payload plus registry metadata.
"""

from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError

from agentflow.workflow.errors import PersistenceError
from agentflow.workflow.workflow_model import (
    ServiceEntry,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)

logger = getLogger(__name__)


class WorkflowStore:
    """Persist and load WorkflowDefinition objects as JSON files."""

    def __init__(self, storage_dir: Path) -> None:
        self._dir = Path(storage_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"WorkflowStore initialized at {self._dir}")

    @property
    def storage_dir(self) -> Path:
        return self._dir

    # ── Service registry ──

    def create(self, name: str, description: str = "") -> WorkflowDefinition:
        """Register a new, empty workflow."""
        if not name.strip():
            raise ValueError("Workflow name must not be empty")
        workflow = WorkflowDefinition(name=name.strip(), description=description)
        self.save(workflow)
        return workflow

    def list_entries(self) -> List[ServiceEntry]:
        """Registry rows, most recently updated first."""
        entries = [ServiceEntry.from_workflow(w) for w in self.list_user_workflows()]
        return sorted(entries, key=lambda e: e.updated_at, reverse=True)

    # ── CRUD ──

    def save(self, workflow: WorkflowDefinition) -> None:
        """Save (create or update) a workflow definition."""
        workflow.touch()
        path = self._path_for(workflow.id)
        try:
            path.write_text(
                json.dumps(workflow.to_document(), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error(f"Failed to save workflow {workflow.id}: {e}")
            raise PersistenceError(f"Failed to save workflow {workflow.id}: {e}") from e
        logger.info(f"Workflow saved: {workflow.name} ({workflow.id})")

    def load(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        """Load a single workflow by ID; ``None`` when it does not exist.

        Raises:
            PersistenceError: The document exists but cannot be read.
        """
        path = self._path_for(workflow_id)
        if not path.exists():
            return None
        return self._read(path)

    def save_graph(
        self,
        workflow_id: str,
        nodes: Sequence[WorkflowNode],
        edges: Sequence[WorkflowEdge],
    ) -> WorkflowDefinition:
        """Replace the ``{nodes, edges}`` payload of an existing workflow."""
        workflow = self.load(workflow_id)
        if workflow is None:
            raise PersistenceError(f"Workflow not found: {workflow_id}")
        workflow = workflow.model_copy(update={
            "nodes": [n.model_copy(deep=True) for n in nodes],
            "edges": [e.model_copy(deep=True) for e in edges],
        })
        self.save(workflow)
        return workflow

    def load_graph(
        self, workflow_id: str,
    ) -> Optional[Tuple[List[WorkflowNode], List[WorkflowEdge]]]:
        workflow = self.load(workflow_id)
        if workflow is None:
            return None
        return workflow.nodes, workflow.edges

    def delete(self, workflow_id: str) -> bool:
        """Delete a workflow definition."""
        path = self._path_for(workflow_id)
        if path.exists():
            try:
                path.unlink()
            except OSError as e:
                raise PersistenceError(f"Failed to delete workflow {workflow_id}: {e}") from e
            logger.info(f"Workflow deleted: {workflow_id}")
            return True
        return False

    def list_all(self) -> List[WorkflowDefinition]:
        """List all saved workflow definitions."""
        workflows: List[WorkflowDefinition] = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                workflows.append(self._read(path))
            except PersistenceError as e:
                logger.warning(f"Skipping malformed workflow file {path.name}: {e}")
        return workflows

    def list_templates(self) -> List[WorkflowDefinition]:
        """List only template workflows."""
        return [w for w in self.list_all() if w.is_template]

    def list_user_workflows(self) -> List[WorkflowDefinition]:
        """List only user-created (non-template) workflows."""
        return [w for w in self.list_all() if not w.is_template]

    def exists(self, workflow_id: str) -> bool:
        return self._path_for(workflow_id).exists()

    # ── Internals ──

    def _read(self, path: Path) -> WorkflowDefinition:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return WorkflowDefinition.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to load workflow {path.stem}: {e}")
            raise PersistenceError(f"Failed to load workflow {path.stem}: {e}") from e

    def _path_for(self, workflow_id: str) -> Path:
        # Sanitize ID for filesystem
        safe_id = "".join(c for c in workflow_id if c.isalnum() or c in "-_")
        if not safe_id:
            raise ValueError(f"Invalid workflow id: {workflow_id!r}")
        return self._dir / f"{safe_id}.json"


def create_workflow_store(config=None) -> WorkflowStore:
    """Build a store from ``EditorConfig`` (environment defaults if omitted)."""
    if config is None:
        from agentflow.config import EditorConfig
        config = EditorConfig.get_default_instance()
    return WorkflowStore(config.storage_path)
