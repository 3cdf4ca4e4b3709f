"""
Workflow Executor — compile a workflow's primary path into a LangGraph StateGraph.

The interactive ``WorkflowRunner`` pauses after every step. The
executor is its unattended counterpart: Data-node values are supplied
up front and every Service node on the path runs in sequence.

The primary path is the runner's path: start at the root (or an
explicit start node) and follow each node's first outgoing edge.
"""

from __future__ import annotations

import operator
import time
from logging import getLogger
from typing import Annotated, Any, Dict, List, Optional

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph
from typing_extensions import TypedDict

from agentflow.generation.client import GenerationClient
from agentflow.logging.run_logger import RunLogger
from agentflow.workflow.errors import MissingInputsError
from agentflow.workflow.schema_utils import property_names
from agentflow.workflow.workflow_graph import WorkflowGraph
from agentflow.workflow.workflow_model import NodeKind, WorkflowDefinition, WorkflowNode
from agentflow.workflow.workflow_runner import execute_service_step

logger = getLogger(__name__)


def _merge_dicts(left: Dict[str, Any], right: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(left or {})
    merged.update(right or {})
    return merged


class ExecutionState(TypedDict, total=False):
    accumulated: Annotated[Dict[str, Any], _merge_dicts]
    display: Annotated[Dict[str, Dict[str, Any]], _merge_dicts]
    trail: Annotated[List[str], operator.add]


class WorkflowExecutor:
    """Compile and run a workflow without user interaction.

    Usage::

        executor = WorkflowExecutor(workflow, client)
        final = await executor.run({"code": "print(1)"})
        final["accumulated"], final["display"], final["trail"]
    """

    def __init__(
        self,
        workflow: WorkflowDefinition,
        client: GenerationClient,
        *,
        start_node_id: Optional[str] = None,
        run_logger: Optional[RunLogger] = None,
    ) -> None:
        self._workflow = workflow.model_copy(deep=True)
        self._graph_model = WorkflowGraph.from_definition(self._workflow)
        self._client = client
        self._start_node_id = start_node_id
        self._run_logger = run_logger
        self._graph: Optional[CompiledStateGraph] = None
        # Node ids finished during the current run
        self._completed: List[str] = []

    @property
    def graph(self) -> Optional[CompiledStateGraph]:
        return self._graph

    def primary_path(self) -> List[WorkflowNode]:
        """Nodes visited by following first outgoing edges.

        Raises:
            NoRootFoundError: No start node given and no root exists.
            ValueError: The path revisits a node.
        """
        if self._start_node_id is not None:
            node = self._graph_model.get_node(self._start_node_id)
        else:
            node = self._graph_model.find_root()

        path: List[WorkflowNode] = []
        seen = set()
        while True:
            if node.id in seen:
                raise ValueError(
                    f"Primary path revisits node '{node.label}' ({node.id}); "
                    "cyclic workflows can only be run interactively"
                )
            seen.add(node.id)
            path.append(node)
            edges = self._graph_model.outgoing_edges(node.id)
            if not edges:
                return path
            node = self._graph_model.get_node(edges[0].target)

    # ========================================================================
    # Compilation
    # ========================================================================

    def compile(self) -> CompiledStateGraph:
        path = self.primary_path()
        builder = StateGraph(ExecutionState)

        # Step names never collide with state keys or node ids
        names = [f"step_{i}" for i in range(len(path))]
        for name, node in zip(names, path):
            builder.add_node(name, self._make_node_function(node))

        builder.add_edge(START, names[0])
        for current, following in zip(names, names[1:]):
            builder.add_edge(current, following)
        builder.add_edge(names[-1], END)

        self._graph = builder.compile()
        logger.info(
            f"Workflow '{self._workflow.name}' compiled: {len(path)} steps "
            f"({sum(1 for n in path if n.kind == NodeKind.SERVICE)} service)"
        )
        return self._graph

    # ========================================================================
    # Execution
    # ========================================================================

    async def run(self, initial_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Compile (if needed) and execute the primary path.

        Raises:
            MissingInputsError: A Data node's value was not supplied.
            GenerationFailed / SchemaParseError: A Service step failed.
        """
        if self._graph is None:
            self.compile()
        self._completed.clear()

        initial: ExecutionState = {
            "accumulated": dict(initial_data or {}),
            "display": {},
            "trail": [],
        }
        if self._run_logger:
            self._run_logger.log_run_start(
                self._workflow.name, self.primary_path()[0].id,
            )

        try:
            final_state = await self._graph.ainvoke(initial)
        except Exception:
            if self._run_logger:
                self._run_logger.log_run_end("failed", len(self._completed))
            raise

        if self._run_logger:
            self._run_logger.log_run_end("finished", len(final_state.get("trail", [])))
        return dict(final_state)

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _make_node_function(self, node: WorkflowNode):
        client = self._client
        run_logger = self._run_logger
        completed = self._completed

        async def _data_fn(state: ExecutionState) -> Dict[str, Any]:
            accumulated = state.get("accumulated", {})
            missing = [k for k in property_names(node.output_schema) if k not in accumulated]
            if missing:
                raise MissingInputsError(node.id, missing)
            completed.append(node.id)
            return {"trail": [node.id]}

        async def _service_fn(state: ExecutionState) -> Dict[str, Any]:
            if run_logger:
                run_logger.log_step_enter(node.id, node.label, node.kind.value)
            start = time.time()
            try:
                result = await execute_service_step(
                    node, state.get("accumulated", {}), client,
                )
            except Exception as e:
                logger.error(f"Node '{node.label}' ({node.id}) failed: {e}")
                if run_logger:
                    run_logger.log_step_error(node.id, node.label, str(e), type(e).__name__)
                raise

            if run_logger:
                run_logger.log_step_exit(
                    node.id, node.label, int((time.time() - start) * 1000),
                    propagated_keys=list(result.output),
                    display_keys=list(result.display),
                )
            completed.append(node.id)
            return {
                "accumulated": result.output,
                "display": {node.id: result.display},
                "trail": [node.id],
            }

        fn = _data_fn if node.kind == NodeKind.DATA else _service_fn
        fn.__name__ = f"node_{node.kind.value}"
        fn.__qualname__ = fn.__name__
        return fn
