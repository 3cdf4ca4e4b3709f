"""Graph builders and a scripted generation client shared by the tests."""

from typing import Any, Dict, List

from agentflow.generation.client import DraftRequest, GenerationClient, NodeDraft, StepRequest
from agentflow.workflow.errors import GenerationFailed
from agentflow.workflow.workflow_model import (
    NodeKind,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)


class ScriptedClient(GenerationClient):
    """Replays queued replies; an exception in the queue is raised instead."""

    def __init__(self, replies: List[Any] = None, drafts: List[Any] = None) -> None:
        self.replies = list(replies or [])
        self.drafts = list(drafts or [])
        self.requests: List[StepRequest] = []
        self.draft_requests: List[DraftRequest] = []

    async def run_node(self, request: StepRequest) -> Dict[str, Any]:
        self.requests.append(request)
        if not self.replies:
            raise GenerationFailed("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def draft_node(self, request: DraftRequest) -> NodeDraft:
        self.draft_requests.append(request)
        return self.drafts.pop(0)


def obj_schema(*names: str, display_only: tuple = (), **typed: str) -> Dict[str, Any]:
    """``obj_schema("a", "b")`` → object schema with string properties a, b."""
    props: Dict[str, Any] = {n: {"type": "string"} for n in names}
    props.update({n: {"type": t} for n, t in typed.items()})
    for n in display_only:
        props[n] = {"type": "string", "displayOnly": True}
    return {"type": "object", "properties": props}


def data_node(node_id: str, *fields: str) -> WorkflowNode:
    return WorkflowNode(id=node_id, kind=NodeKind.DATA, label=node_id, output_schema=obj_schema(*fields))


def service_node(node_id: str, output: Dict[str, Any] = None, definition: str = "do it") -> WorkflowNode:
    return WorkflowNode(
        id=node_id,
        kind=NodeKind.SERVICE,
        label=node_id,
        definition=definition,
        output_schema=output if output is not None else {},
    )


def edge(source: str, target: str) -> WorkflowEdge:
    return WorkflowEdge(id=f"{source}->{target}", source=source, target=target)


def make_workflow(nodes: List[WorkflowNode], edges: List[WorkflowEdge]) -> WorkflowDefinition:
    return WorkflowDefinition(id="wf-test", name="Test Workflow", nodes=nodes, edges=edges)
