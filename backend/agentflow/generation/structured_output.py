"""
Structured Output — JSON extraction and Pydantic validation for model replies.

Sits between raw model text and the engine:

    • Prompts carry the JSON schema the reply must satisfy
    • Extraction uses a layered fallback: direct JSON → code block → bracket match
    • Pydantic validates drafts; execution replies only need to be JSON objects
"""

from __future__ import annotations

import json
import re
import textwrap
from logging import getLogger
from typing import Any, Dict, Generic, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, ValidationError

logger = getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_CODE_BLOCK_PATTERNS = (
    r"```json\s*\n?(.*?)\n?\s*```",
    r"```\s*\n?(.*?)\n?\s*```",
)


# ============================================================================
# JSON extraction strategies (ordered by reliability)
# ============================================================================


def _try_direct_json(text: str) -> Optional[Any]:
    try:
        return json.loads(text.strip())
    except (json.JSONDecodeError, TypeError):
        return None


def _try_code_block(text: str) -> Optional[Any]:
    for pattern in _CODE_BLOCK_PATTERNS:
        m = re.search(pattern, text, re.DOTALL)
        if m:
            try:
                return json.loads(m.group(1).strip())
            except (json.JSONDecodeError, TypeError):
                continue
    return None


def _try_bracket_match(text: str) -> Optional[Any]:
    """Find the first well-formed JSON object or array.

    Tracks bracket depth outside string literals so nested structures
    and braces inside strings are handled.
    """
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        depth = 0
        start: Optional[int] = None
        in_string = False
        escaped = False

        for i, c in enumerate(text):
            if in_string:
                if escaped:
                    escaped = False
                elif c == "\\":
                    escaped = True
                elif c == '"':
                    in_string = False
                continue
            if c == '"':
                in_string = True
            elif c == open_ch:
                if depth == 0:
                    start = i
                depth += 1
            elif c == close_ch and depth > 0:
                depth -= 1
                if depth == 0 and start is not None:
                    try:
                        return json.loads(text[start : i + 1])
                    except (json.JSONDecodeError, TypeError):
                        start = None
    return None


def extract_json(text: str) -> Tuple[Optional[Any], str]:
    """Extract JSON from model text using layered strategies.

    Returns:
        (parsed_value, method_name) — method_name is one of
        "direct", "code_block", "bracket_match" or "none".
    """
    for method, strategy in (
        ("direct", _try_direct_json),
        ("code_block", _try_code_block),
        ("bracket_match", _try_bracket_match),
    ):
        result = strategy(text)
        if result is not None:
            return result, method
    return None, "none"


# ============================================================================
# Schema → prompt injection
# ============================================================================


def build_schema_instruction(
    schema: Union[Type[BaseModel], Dict[str, Any]],
    *,
    extra_instruction: str = "",
) -> str:
    """Build the JSON response-format block appended to a prompt."""
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        schema_doc = schema.model_json_schema(by_alias=True)
    else:
        schema_doc = schema
    schema_json = json.dumps(schema_doc, indent=2, ensure_ascii=False)

    instruction = textwrap.dedent("""\
    ═══ RESPONSE FORMAT (MANDATORY) ═══
    You MUST respond with a single JSON object matching this schema.
    Do NOT include any text before or after the JSON.
    Do NOT wrap it in markdown code blocks.

    Schema:
    """) + schema_json

    if extra_instruction:
        instruction += f"\n\n{extra_instruction}"
    return instruction


# ============================================================================
# Core parse + validate
# ============================================================================


class StructuredParseResult(BaseModel, Generic[T]):
    """Result of structured output extraction."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: Optional[T] = None
    raw_text: str = ""
    method: str = "none"
    error: Optional[str] = None


def parse_json_object(text: str) -> Tuple[Optional[Dict[str, Any]], str, Optional[str]]:
    """Extract a JSON object. Returns ``(obj, method, error)``."""
    extracted, method = extract_json(text)
    if extracted is None:
        return None, method, "No JSON found in response"
    if not isinstance(extracted, dict):
        return None, method, f"Expected JSON object, got {type(extracted).__name__}"
    return extracted, method, None


def parse_structured_output(text: str, schema_cls: Type[T]) -> StructuredParseResult[T]:
    """Extract JSON from text and validate it against a Pydantic model."""
    extracted, method, error = parse_json_object(text)
    if error is not None:
        return StructuredParseResult(
            success=False, raw_text=text, method=method, error=error,
        )

    try:
        instance = schema_cls.model_validate(extracted)
    except ValidationError as e:
        return StructuredParseResult(
            success=False,
            raw_text=text,
            method=method,
            error=f"Validation error: {e}",
        )

    return StructuredParseResult(
        success=True, data=instance, raw_text=text, method=method,
    )
