"""
Schema Utilities — parse, format, merge and describe JSON-Schema documents.

Node contracts are plain JSON-Schema-shaped dicts (``type``, ``items``,
``properties``, ``required``, ``description`` and the ``displayOnly``
marker). Only that subset is interpreted; every other key is carried
through untouched.

Merge precedence is "last contribution wins": the inheritance resolver
orders contributions so that later ones override earlier ones on a
property-name collision.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger
from typing import Any, Dict, Iterable, List, Optional

from agentflow.workflow.errors import SchemaParseError

logger = getLogger(__name__)

SchemaDoc = Dict[str, Any]

PROVENANCE_KEY = "x-provenance"
DISPLAY_ONLY_KEY = "displayOnly"

_ARRAY_PREFIX = "array["


class Provenance(str, Enum):
    """Where a merged property came from."""
    INJECTED = "injected"             # Data node (pass-through chain)
    STANDARD = "standard"             # Upstream Service node output


@dataclass
class SchemaContribution:
    """One schema handed to ``merge_schemas`` together with its origin."""
    schema: SchemaDoc
    provenance: Provenance = Provenance.STANDARD
    source_id: Optional[str] = None


# ============================================================================
# Parse / format
# ============================================================================


def parse_schema(text: Optional[str]) -> SchemaDoc:
    """Parse schema text into a schema dict.

    Empty or whitespace-only text is the empty schema ``{}``. A dict
    with a ``properties`` object (or a string ``type``) is returned as
    is; any other non-empty dict is taken to be the properties map
    itself and wrapped into an object schema.

    Raises:
        SchemaParseError: Invalid JSON or a JSON value that is not an object.
    """
    if text is None or not text.strip():
        return {}
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise SchemaParseError(f"Invalid schema JSON: {e}") from e
    return normalize_schema(raw)


def normalize_schema(raw: Any) -> SchemaDoc:
    """Apply the ``parse_schema`` interpretation to an already-decoded value."""
    if not isinstance(raw, dict):
        raise SchemaParseError(
            f"Schema must be a JSON object, got {type(raw).__name__}"
        )
    if not raw:
        return {}
    if isinstance(raw.get("properties"), dict):
        return raw
    if isinstance(raw.get("type"), str):
        return raw
    return {"type": "object", "properties": raw}


def parse_schema_lenient(text: Optional[str]) -> SchemaDoc:
    """Editor-context parse: fall back to ``{}`` on malformed text."""
    try:
        return parse_schema(text)
    except SchemaParseError as e:
        logger.warning(f"Falling back to empty schema: {e}")
        return {}


def format_schema(doc: SchemaDoc) -> str:
    """Canonical pretty-printed serialization of a schema dict."""
    return json.dumps(doc, indent=2, ensure_ascii=False)


def format_json_text(text: str) -> str:
    """Pretty-print JSON text; return it unchanged when it does not parse."""
    if not text:
        return ""
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except (json.JSONDecodeError, TypeError):
        return text


# ============================================================================
# Inspection helpers
# ============================================================================


def get_properties(schema: Optional[SchemaDoc]) -> Dict[str, Any]:
    if not schema:
        return {}
    props = schema.get("properties")
    return props if isinstance(props, dict) else {}


def property_names(schema: Optional[SchemaDoc]) -> List[str]:
    return list(get_properties(schema).keys())


def is_display_only(schema: Optional[SchemaDoc], key: str) -> bool:
    prop = get_properties(schema).get(key)
    return isinstance(prop, dict) and prop.get(DISPLAY_ONLY_KEY) is True


def require_object_schema(schema: Any, node_id: str = "") -> SchemaDoc:
    """Strict contract check used where the schema drives execution.

    Unlike the editor paths, execution never substitutes ``{}`` for a
    broken output contract.
    """
    where = f" for node '{node_id}'" if node_id else ""
    if not isinstance(schema, dict):
        raise SchemaParseError(f"Output schema{where} is not an object")
    props = schema.get("properties")
    if props is None:
        return schema
    if not isinstance(props, dict):
        raise SchemaParseError(f"Output schema{where} has a non-object 'properties'")
    for name, prop in props.items():
        if not isinstance(prop, dict):
            raise SchemaParseError(
                f"Output schema{where}: property '{name}' is not a schema object"
            )
    return schema


# ============================================================================
# Merge
# ============================================================================


def merge_schemas(
    contributions: Iterable[SchemaContribution],
    *,
    tag_provenance: bool = False,
) -> SchemaDoc:
    """Merge N schemas into one object schema.

    Properties are unioned by key and a later contribution overwrites
    an earlier one. ``required`` lists are unioned in first-seen order.
    Provenance tags (``x-provenance``) are informational only.

    Returns ``{}`` when nothing contributes a property or a requirement.
    """
    properties: Dict[str, Any] = {}
    required: List[str] = []

    for contrib in contributions:
        schema = contrib.schema or {}
        for key, prop in get_properties(schema).items():
            merged_prop = copy.deepcopy(prop)
            if tag_provenance and isinstance(merged_prop, dict):
                merged_prop[PROVENANCE_KEY] = Provenance(contrib.provenance).value
            # Re-insert so the key position follows the winning contribution
            properties.pop(key, None)
            properties[key] = merged_prop
        for name in schema.get("required") or []:
            if name not in required:
                required.append(name)

    if not properties and not required:
        return {}

    merged: SchemaDoc = {"type": "object", "properties": properties}
    if required:
        merged["required"] = required
    return merged


# ============================================================================
# Compact type descriptors  (array[array[string]] <-> {type, items})
# ============================================================================


def type_descriptor_to_schema(descriptor: str) -> SchemaDoc:
    """Expand a compact type descriptor into a ``{type, items}`` tree."""
    desc = (descriptor or "").strip()
    if not desc:
        raise SchemaParseError("Empty type descriptor")

    if desc.startswith(_ARRAY_PREFIX):
        if not desc.endswith("]"):
            raise SchemaParseError(f"Unbalanced type descriptor: {descriptor!r}")
        inner = desc[len(_ARRAY_PREFIX):-1]
        return {"type": "array", "items": type_descriptor_to_schema(inner)}

    if "[" in desc or "]" in desc:
        raise SchemaParseError(f"Unbalanced type descriptor: {descriptor!r}")
    return {"type": desc}


def schema_to_type_descriptor(schema: Optional[SchemaDoc]) -> str:
    """Collapse a ``{type, items}`` tree into the compact notation."""
    if not schema:
        return "string"
    if schema.get("type") == "array":
        items = schema.get("items")
        inner = schema_to_type_descriptor(items) if items else "any"
        return f"array[{inner}]"
    return schema.get("type") or "string"


# ============================================================================
# Visual schema builder model
# ============================================================================


@dataclass
class SchemaField:
    """A single row of the visual schema builder."""
    name: str
    type: str = "string"
    description: str = ""
    required: bool = False
    display_only: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


def schema_from_fields(fields: Iterable[SchemaField]) -> SchemaDoc:
    """Build an object schema from builder rows (unnamed rows are skipped)."""
    properties: Dict[str, Any] = {}
    required: List[str] = []

    for f in fields:
        if not f.name:
            continue
        prop = dict(f.extra)
        prop.update(type_descriptor_to_schema(f.type))
        prop["description"] = f.description
        if f.display_only:
            prop[DISPLAY_ONLY_KEY] = True
        properties[f.name] = prop
        if f.required:
            required.append(f.name)

    schema: SchemaDoc = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def fields_from_schema(schema: Optional[SchemaDoc]) -> List[SchemaField]:
    """Inverse of ``schema_from_fields``."""
    required = set((schema or {}).get("required") or [])
    fields: List[SchemaField] = []
    for name, prop in get_properties(schema).items():
        prop = prop if isinstance(prop, dict) else {}
        extra = {
            k: v for k, v in prop.items()
            if k not in ("type", "items", "description", DISPLAY_ONLY_KEY)
        }
        fields.append(SchemaField(
            name=name,
            type=schema_to_type_descriptor(prop),
            description=prop.get("description", ""),
            required=name in required,
            display_only=prop.get(DISPLAY_ONLY_KEY) is True,
            extra=extra,
        ))
    return fields
