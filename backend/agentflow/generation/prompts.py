"""
Prompt templates for node execution and AI-assist drafting.
"""

from __future__ import annotations

import json
import textwrap
from typing import Any, Dict, List


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def execution_system_prompt(definition: str) -> str:
    return textwrap.dedent("""\
    You are an autonomous AI agent responsible for executing a specific task within a larger workflow.

    YOUR GOAL:
    {definition}

    YOUR CONSTRAINTS:
    1. You must strictly adhere to the provided JSON Schema for your output.
    2. You must use the provided Input Data to generate the result.
    3. Return ONLY valid JSON. Do not include markdown formatting or explanation.
    """).format(definition=definition.strip() or "(no goal provided)")


def execution_user_prompt(input_data: Dict[str, Any], output_schema: Dict[str, Any]) -> str:
    return (
        "### INPUT DATA ###\n"
        f"{_dump(input_data)}\n\n"
        "### REQUIRED OUTPUT SCHEMA ###\n"
        f"{_dump(output_schema)}\n"
    )


DRAFT_SYSTEM_PROMPT = (
    "You are an expert software architect. "
    "Define technical services based on user intent."
)


def draft_user_prompt(
    intention: str,
    node_type: str,
    context_schema: Dict[str, Any],
    additional_inputs: List[str],
) -> str:
    parts = [f'Generate a {node_type} node definition for: "{intention}"']
    if node_type == "data":
        parts.append(
            "This is a DATA node: it only describes a data structure. "
            "Leave inputSchema empty ({}) and describe the data in outputSchema."
        )
    if context_schema:
        parts.append(
            "The node receives the following upstream data. Reuse these "
            "property names in inputSchema where relevant:\n" + _dump(context_schema)
        )
    if additional_inputs:
        parts.append(
            "The node must also accept these extra inputs: "
            + ", ".join(additional_inputs)
        )
    return "\n\n".join(parts)
