"""
Workflow Runner — interactive, step-by-step replay of a saved workflow.

The runner walks the graph from a start node (the root by default)
along each node's *first* outgoing edge:

    AWAITING_INPUT ──submit_inputs──▶ (advance)
    RUNNING ──generation ok──▶ STEP_COMPLETE ──continue_run──▶ (advance)
    RUNNING ──generation error──▶ FAILED
    (advance) ──no outgoing edge──▶ FINISHED

Data nodes never call the generation service: they collect missing
values from the user (``AWAITING_INPUT``) and pass straight through.
Service nodes call it once per step. Output properties marked
``displayOnly`` are shown for the step but never enter the
accumulated context that feeds downstream nodes.

A step is atomic: the accumulated context is only touched after the
generation call has returned a usable result. The workflow itself is
deep-copied at construction and never modified.
"""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from agentflow.generation.client import GenerationClient, StepRequest
from agentflow.logging.run_logger import RunLogger, get_run_logger, release_run_logger
from agentflow.workflow.errors import (
    GenerationFailed,
    RunStateError,
    SchemaParseError,
    WorkflowError,
)
from agentflow.workflow.schema_utils import (
    SchemaDoc,
    fields_from_schema,
    get_properties,
    is_display_only,
    property_names,
    require_object_schema,
)
from agentflow.workflow.widgets import (
    WidgetRegistry,
    create_default_widget_registry,
    describe_bindings,
)
from agentflow.workflow.workflow_graph import WorkflowGraph
from agentflow.workflow.workflow_model import NodeKind, WorkflowDefinition, WorkflowNode

logger = getLogger(__name__)

# Keys of the partitioned reply variant: {"output": {...}, "display": {...}}
_OUTPUT_KEY = "output"
_DISPLAY_KEY = "display"


class RunState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    RUNNING = "running"
    STEP_COMPLETE = "step_complete"
    FINISHED = "finished"
    FAILED = "failed"


_TERMINAL = (RunState.FINISHED, RunState.FAILED)


@dataclass
class StepResult:
    """Outcome of one Service node step."""
    node_id: str
    output: Dict[str, Any] = field(default_factory=dict)     # propagated downstream
    display: Dict[str, Any] = field(default_factory=dict)    # shown at this step only
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RunContext:
    """Run-time state; lives for one run and is never persisted."""
    current_node_id: str
    accumulated_data: Dict[str, Any] = field(default_factory=dict)
    last_step_result: Optional[StepResult] = None
    steps: List[StepResult] = field(default_factory=list)


# ============================================================================
# Result partitioning
# ============================================================================


def partition_result(
    result: Dict[str, Any],
    output_schema: SchemaDoc,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split a generation reply into ``(propagated, display_only)``.

    A reply shaped ``{"output": {...}, "display": {...}}`` is unwrapped
    first, unless the schema itself declares an ``output`` property.
    """
    props = get_properties(output_schema)
    candidates = result
    display: Dict[str, Any] = {}

    wrapped = (
        isinstance(result.get(_OUTPUT_KEY), dict)
        and set(result) <= {_OUTPUT_KEY, _DISPLAY_KEY}
        and _OUTPUT_KEY not in props
    )
    if wrapped:
        candidates = result[_OUTPUT_KEY]
        extra = result.get(_DISPLAY_KEY)
        if isinstance(extra, dict):
            display.update(extra)

    propagated: Dict[str, Any] = {}
    for key, value in candidates.items():
        if is_display_only(output_schema, key):
            display[key] = value
        else:
            propagated[key] = value
    return propagated, display


async def execute_service_step(
    node: WorkflowNode,
    input_data: Dict[str, Any],
    client: GenerationClient,
) -> StepResult:
    """One generation call for a Service node, partitioned.

    Raises:
        SchemaParseError: The node's output contract is unusable.
        GenerationFailed: The call failed or returned a non-object.
    """
    output_schema = require_object_schema(node.output_schema, node.id)
    raw = await client.run_node(StepRequest(
        definition=node.definition,
        input_data=copy.deepcopy(input_data),
        output_schema=output_schema,
    ))
    if not isinstance(raw, dict):
        raise GenerationFailed(f"Expected a JSON object, got {type(raw).__name__}")
    propagated, display = partition_result(raw, output_schema)
    return StepResult(node_id=node.id, output=propagated, display=display, raw=raw)


async def run_playground(
    node: WorkflowNode,
    input_data: Dict[str, Any],
    client: GenerationClient,
) -> StepResult:
    """Run a single Service node against ad-hoc test inputs."""
    if node.kind != NodeKind.SERVICE:
        raise ValueError(f"Only service nodes can be tested, got '{node.kind.value}'")
    logger.info(f"Playground run for node '{node.label}' ({node.id})")
    return await execute_service_step(node, input_data, client)


def _default_log_dir() -> Optional[Path]:
    from agentflow.config import EditorConfig
    return EditorConfig.get_default_instance().log_path


# ============================================================================
# Runner
# ============================================================================


class WorkflowRunner:
    """Single-run interpreter over a frozen copy of a workflow.

    Usage::

        runner = WorkflowRunner(workflow, client)
        await runner.start()
        if runner.state == RunState.AWAITING_INPUT:
            await runner.submit_inputs({"code": "..."})
        while runner.state == RunState.STEP_COMPLETE:
            await runner.continue_run()

    A run dropped before it finishes must be closed, either with
    ``close()`` or by using the runner as an async context manager.
    """

    def __init__(
        self,
        workflow: WorkflowDefinition,
        client: GenerationClient,
        *,
        start_node_id: Optional[str] = None,
        run_id: Optional[str] = None,
        widget_registry: Optional[WidgetRegistry] = None,
        log_dir: Optional[Path] = None,
    ) -> None:
        self._workflow = workflow.model_copy(deep=True)
        self._graph = WorkflowGraph.from_definition(self._workflow)
        self._client = client
        self._start_node_id = start_node_id
        self._widgets = widget_registry or create_default_widget_registry()
        self._log_dir = log_dir if log_dir is not None else _default_log_dir()
        self.run_id = run_id or f"run-{uuid.uuid4().hex[:12]}"
        self._run_logger: RunLogger = get_run_logger(self.run_id, self._log_dir)

        self._state: Optional[RunState] = None
        self._context: Optional[RunContext] = None
        self.error: Optional[WorkflowError] = None
        self._closed = False

    # ── Properties ──

    @property
    def state(self) -> Optional[RunState]:
        """``None`` until ``start()`` has been called."""
        return self._state

    @property
    def context(self) -> RunContext:
        if self._context is None:
            raise RunStateError("Run has not been started")
        return self._context

    @property
    def accumulated_data(self) -> Dict[str, Any]:
        return dict(self.context.accumulated_data)

    @property
    def current_node(self) -> WorkflowNode:
        return self._graph.get_node(self.context.current_node_id)

    @property
    def run_logger(self) -> RunLogger:
        return self._run_logger

    @property
    def is_terminal(self) -> bool:
        return self._state in _TERMINAL

    @property
    def missing_inputs(self) -> List[str]:
        """Fields the current Data node still needs from the user."""
        if self._state != RunState.AWAITING_INPUT:
            return []
        return self._missing_fields(self.current_node)

    # ── Transitions ──

    async def start(self) -> RunState:
        """Locate the start node and enter it.

        Raises:
            NoRootFoundError: No start node was given and every node has
                an incoming edge ("cannot start workflow").
        """
        if self._state is not None:
            raise RunStateError(f"Run already started (state: {self._state.value})")
        if self._start_node_id is not None:
            node = self._graph.get_node(self._start_node_id)
        else:
            node = self._graph.find_root()

        self._context = RunContext(current_node_id=node.id)
        self._run_logger.log_run_start(self._workflow.name, node.id)
        await self._enter(node)
        return self._state

    async def submit_inputs(self, values: Dict[str, Any]) -> RunState:
        """Provide values for the Data node awaiting input, then advance."""
        self._require(RunState.AWAITING_INPUT)
        self.context.accumulated_data.update(values)
        missing = self._missing_fields(self.current_node)
        if missing:
            logger.debug(f"[{self.run_id}] Still missing inputs: {missing}")
            return self._state
        await self._advance()
        return self._state

    async def continue_run(self, overrides: Optional[Dict[str, Any]] = None) -> RunState:
        """Move past a completed step.

        ``overrides`` carries values the user edited in interaction
        widgets; they take precedence over the generated output.
        """
        self._require(RunState.STEP_COMPLETE)
        if overrides:
            node = self.current_node
            props = get_properties(node.output_schema)
            for key in overrides:
                if key not in props or is_display_only(node.output_schema, key):
                    raise ValueError(
                        f"'{key}' is not an editable output of node '{node.label}'"
                    )
            self.context.accumulated_data.update(overrides)
        await self._advance()
        return self._state

    async def retry(self) -> "WorkflowRunner":
        """Re-trigger the failed step in a fresh runner.

        The failed run stays terminal; the new runner starts at the
        failed node with the context accumulated before the failure.
        """
        self._require(RunState.FAILED)
        runner = WorkflowRunner(
            self._workflow,
            self._client,
            start_node_id=self.context.current_node_id,
            widget_registry=self._widgets,
            log_dir=self._log_dir,
        )
        runner._context = copy.deepcopy(self.context)
        runner._run_logger.log_run_start(self._workflow.name, runner._context.current_node_id)
        await runner._enter(runner.current_node)
        return runner

    def close(self) -> None:
        """Abandon the run and release its logger.

        A run already in a terminal state has released its logger, so
        closing it (or closing twice) is a no-op.
        """
        if self.is_terminal or self._closed:
            return
        self._closed = True
        steps = len(self._context.steps) if self._context else 0
        self._run_logger.log_run_end("abandoned", steps)
        release_run_logger(self.run_id)

    async def __aenter__(self) -> "WorkflowRunner":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    # ── Views ──

    def step_view(self) -> Dict[str, Any]:
        """Everything a client needs to render the current step."""
        ctx = self.context
        node = self.current_node
        view: Dict[str, Any] = {
            "run_id": self.run_id,
            "state": self._state.value if self._state else None,
            "step": next(
                i for i, n in enumerate(self._workflow.nodes, 1) if n.id == node.id
            ),
            "node": {
                "id": node.id,
                "label": node.label,
                "kind": node.kind.value,
                "definition": node.definition,
            },
            "accumulated_data": dict(ctx.accumulated_data),
            "widgets": describe_bindings(node, self._widgets),
            "error": str(self.error) if self.error else None,
        }
        if self._state == RunState.AWAITING_INPUT:
            view["form"] = [
                f for f in fields_from_schema(node.output_schema)
                if f.name in self._missing_fields(node)
            ]
        if ctx.last_step_result and ctx.last_step_result.node_id == node.id:
            view["result"] = ctx.last_step_result
        return view

    # ── Internals ──

    def _require(self, expected: RunState) -> None:
        if self._state != expected:
            current = self._state.value if self._state else "not started"
            raise RunStateError(
                f"Cannot perform this action in state '{current}' "
                f"(requires '{expected.value}')"
            )

    def _set_state(self, new_state: RunState) -> None:
        old = self._state.value if self._state else "init"
        self._state = new_state
        node_id = self._context.current_node_id if self._context else None
        self._run_logger.log_transition(old, new_state.value, node_id)
        if new_state in _TERMINAL:
            self._run_logger.log_run_end(new_state.value, len(self.context.steps))
            release_run_logger(self.run_id)

    def _missing_fields(self, node: WorkflowNode) -> List[str]:
        data = self.context.accumulated_data
        return [name for name in property_names(node.output_schema) if name not in data]

    async def _enter(self, node: WorkflowNode) -> None:
        # Data nodes passed through since the last Service step
        passed: Set[str] = set()
        while True:
            self.context.current_node_id = node.id
            self._run_logger.log_step_enter(node.id, node.label, node.kind.value)

            if node.kind == NodeKind.SERVICE:
                await self._execute(node)
                return
            if self._missing_fields(node):
                self._set_state(RunState.AWAITING_INPUT)
                return
            if node.id in passed:
                self._fail(node, WorkflowError(
                    f"Data chain cycle at node '{node.label}' ({node.id})"
                ))
                return
            passed.add(node.id)

            next_node = self._next_node(node)
            if next_node is None:
                return
            node = next_node

    async def _execute(self, node: WorkflowNode) -> None:
        self._set_state(RunState.RUNNING)
        start = time.time()
        try:
            result = await execute_service_step(
                node, self.context.accumulated_data, self._client,
            )
        except (GenerationFailed, SchemaParseError) as e:
            self._fail(node, e)
            return
        except Exception as e:
            self._fail(node, GenerationFailed(str(e), e))
            return

        # Commit only after the whole step succeeded
        self.context.accumulated_data.update(result.output)
        self.context.last_step_result = result
        self.context.steps.append(result)

        duration_ms = int((time.time() - start) * 1000)
        self._run_logger.log_step_exit(
            node.id, node.label, duration_ms,
            propagated_keys=list(result.output),
            display_keys=list(result.display),
        )
        self._set_state(RunState.STEP_COMPLETE)

    def _next_node(self, node: WorkflowNode) -> Optional[WorkflowNode]:
        """Target of the first outgoing edge; ``None`` once the run ended."""
        edges = self._graph.outgoing_edges(node.id)
        if not edges:
            self._set_state(RunState.FINISHED)
            return None
        try:
            return self._graph.get_node(edges[0].target)
        except WorkflowError as e:
            self._fail(node, e)
            return None

    async def _advance(self) -> None:
        next_node = self._next_node(self.current_node)
        if next_node is not None:
            await self._enter(next_node)

    def _fail(self, node: WorkflowNode, error: WorkflowError) -> None:
        self.error = error
        logger.error(f"[{self.run_id}] Step '{node.label}' ({node.id}) failed: {error}")
        self._run_logger.log_step_error(node.id, node.label, str(error), type(error).__name__)
        self._set_state(RunState.FAILED)
