"""
Pre-built Workflow Templates.

Factory functions returning ready-made ``WorkflowDefinition`` objects.
They are saved to the WorkflowStore on first startup so users can
clone or study them.
"""

from __future__ import annotations

from typing import List

from agentflow.workflow.workflow_model import (
    NodeKind,
    WidgetBinding,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)


# ============================================================================
# Code Review Template
# ============================================================================


def create_code_review_template() -> WorkflowDefinition:
    """A coding challenge graded by two chained services.

    Topology::
        Challenge (data) → Submission (data) → Evaluate → Summarize

    ``Evaluate`` shows its reasoning through a ``displayOnly`` property
    that never reaches ``Summarize``.
    """

    nodes = [
        WorkflowNode(
            id="challenge", kind=NodeKind.DATA, label="Challenge",
            definition="The problem statement given to the candidate.",
            output_schema={
                "type": "object",
                "properties": {
                    "challenge_description": {
                        "type": "string",
                        "description": "What the candidate has to build",
                    },
                },
                "required": ["challenge_description"],
            },
            position={"x": 0, "y": 0},
        ),
        WorkflowNode(
            id="submission", kind=NodeKind.DATA, label="Submission",
            definition="The candidate's solution.",
            output_schema={
                "type": "object",
                "properties": {
                    "code": {"type": "string", "format": "code"},
                    "language": {"type": "string"},
                },
                "required": ["code"],
            },
            widget_bindings=[
                WidgetBinding(target_property="code", widget_id="code-editor", label="Solution"),
            ],
            position={"x": 0, "y": 160},
        ),
        WorkflowNode(
            id="evaluate", kind=NodeKind.SERVICE, label="Evaluate",
            definition=(
                "Review the submitted code against the challenge. Score it "
                "from 0 to 10 and list concrete issues."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "challenge_description": {"type": "string"},
                    "code": {"type": "string"},
                },
            },
            output_schema={
                "type": "object",
                "properties": {
                    "score": {"type": "number"},
                    "issues": {"type": "array", "items": {"type": "string"}},
                    "reasoning": {
                        "type": "string",
                        "format": "markdown",
                        "displayOnly": True,
                        "description": "Shown to the reviewer, not passed on",
                    },
                },
                "required": ["score", "issues"],
            },
            widget_bindings=[
                WidgetBinding(
                    target_property="reasoning", widget_id="markdown-viewer", label="Reasoning",
                ),
                WidgetBinding(target_property="score", label="Score"),
            ],
            position={"x": 0, "y": 320},
        ),
        WorkflowNode(
            id="summarize", kind=NodeKind.SERVICE, label="Summarize",
            definition="Write a short verdict for the candidate from the score and issues.",
            input_schema={
                "type": "object",
                "properties": {
                    "score": {"type": "number"},
                    "issues": {"type": "array", "items": {"type": "string"}},
                },
            },
            output_schema={
                "type": "object",
                "properties": {
                    "verdict": {"type": "string", "format": "markdown"},
                },
                "required": ["verdict"],
            },
            widget_bindings=[
                WidgetBinding(target_property="verdict", widget_id="markdown-viewer"),
            ],
            position={"x": 0, "y": 480},
        ),
    ]

    edges = [
        WorkflowEdge(id="e-challenge-submission", source="challenge", target="submission"),
        WorkflowEdge(id="e-submission-evaluate", source="submission", target="evaluate"),
        WorkflowEdge(id="e-evaluate-summarize", source="evaluate", target="summarize"),
    ]

    return WorkflowDefinition(
        id="template-code-review",
        name="Code Review",
        description="Challenge + submission data feeding an evaluator and a summarizer.",
        nodes=nodes,
        edges=edges,
        is_template=True,
    )


# ============================================================================
# Single Agent Template
# ============================================================================


def create_single_agent_template() -> WorkflowDefinition:
    """One data node feeding one service: Topic → Write."""

    nodes = [
        WorkflowNode(
            id="topic", kind=NodeKind.DATA, label="Topic",
            output_schema={
                "type": "object",
                "properties": {"topic": {"type": "string"}},
                "required": ["topic"],
            },
            position={"x": 0, "y": 0},
        ),
        WorkflowNode(
            id="write", kind=NodeKind.SERVICE, label="Write",
            definition="Write a three-paragraph article about the topic.",
            input_schema={
                "type": "object",
                "properties": {"topic": {"type": "string"}},
            },
            output_schema={
                "type": "object",
                "properties": {"article": {"type": "string", "format": "markdown"}},
                "required": ["article"],
            },
            position={"x": 0, "y": 160},
        ),
    ]

    edges = [WorkflowEdge(id="e-topic-write", source="topic", target="write")]

    return WorkflowDefinition(
        id="template-single-agent",
        name="Single Agent",
        description="Basic graph: one data node feeding one service.",
        nodes=nodes,
        edges=edges,
        is_template=True,
    )


# ============================================================================
# Template Registry
# ============================================================================

ALL_TEMPLATES = [
    create_code_review_template,
    create_single_agent_template,
]


def install_templates(store) -> int:
    """Install built-in templates into the workflow store.

    Always overwrites existing templates to keep them up-to-date.
    Returns the number of templates installed.
    """
    installed = 0
    for factory in ALL_TEMPLATES:
        store.save(factory())
        installed += 1
    return installed
