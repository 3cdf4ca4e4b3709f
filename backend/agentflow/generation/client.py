"""
Generation Client — the engine's only door to the text-generation model.

Two calls go through it:

* ``run_node``   — execute a Service node: goal + input data + output
  schema in, a JSON object out.
* ``draft_node`` — AI-assist: a short intention in, a node draft
  (label, definition, schemas, widget bindings) out.

``ChatModelGenerationClient`` drives any LangChain chat model. Every
failure (transport error, timeout, missing or non-object JSON, invalid
draft) is reported as ``GenerationFailed`` with the underlying message.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from logging import getLogger
from typing import Any, Dict, List, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from agentflow.generation import prompts
from agentflow.generation.structured_output import (
    build_schema_instruction,
    parse_json_object,
    parse_structured_output,
)
from agentflow.workflow.errors import GenerationFailed, SchemaParseError
from agentflow.workflow.schema_utils import SchemaDoc, normalize_schema, parse_schema
from agentflow.workflow.workflow_model import NodeKind, WidgetBinding

logger = getLogger(__name__)


# ============================================================================
# Request / response models
# ============================================================================


class StepRequest(BaseModel):
    """Execution request for one Service node."""

    definition: str
    input_data: Dict[str, Any] = Field(default_factory=dict)
    output_schema: SchemaDoc = Field(default_factory=dict)


class DraftRequest(BaseModel):
    """AI-assist request for filling in a node."""

    intention: str
    context_schema: SchemaDoc = Field(default_factory=dict)
    node_type: NodeKind = NodeKind.SERVICE
    additional_inputs: List[str] = Field(default_factory=list)


class NodeDraft(BaseModel):
    """Node fields proposed by the model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    label: str = Field(description="A short, catchy name for the service")
    definition: str = Field(description="A clear 1-2 sentence description of what it does")
    input_schema: SchemaDoc = Field(
        default_factory=dict,
        description="JSON schema object describing the input parameters",
    )
    output_schema: SchemaDoc = Field(
        default_factory=dict,
        description="JSON schema object describing the returned data",
    )
    widget_bindings: List[WidgetBinding] = Field(default_factory=list)

    @field_validator("input_schema", "output_schema", mode="before")
    @classmethod
    def _coerce_schema(cls, value: Any) -> Any:
        # Models frequently return the schema as an embedded JSON string
        try:
            if value is None:
                return {}
            if isinstance(value, str):
                return parse_schema(value)
            return normalize_schema(value)
        except SchemaParseError as e:
            raise ValueError(str(e)) from e


# ============================================================================
# Client interface
# ============================================================================


class GenerationClient(ABC):
    """Abstract generation service."""

    @abstractmethod
    async def run_node(self, request: StepRequest) -> Dict[str, Any]:
        """Execute a node; returns the model's JSON object."""

    @abstractmethod
    async def draft_node(self, request: DraftRequest) -> NodeDraft:
        """Propose node fields for an intention."""


class ChatModelGenerationClient(GenerationClient):
    """``GenerationClient`` backed by a LangChain chat model."""

    def __init__(self, model: BaseChatModel, timeout: Optional[float] = None) -> None:
        self._model = model
        self._timeout = timeout

    async def run_node(self, request: StepRequest) -> Dict[str, Any]:
        messages = [
            SystemMessage(content=prompts.execution_system_prompt(request.definition)),
            HumanMessage(content=prompts.execution_user_prompt(
                request.input_data, request.output_schema,
            )),
        ]
        text = await self._invoke(messages, "run_node")
        obj, method, error = parse_json_object(text)
        if error is not None:
            raise GenerationFailed(f"Invalid model response: {error}")
        logger.debug(f"run_node reply parsed via {method}: {list(obj)}")
        return obj

    async def draft_node(self, request: DraftRequest) -> NodeDraft:
        system = "\n\n".join([
            prompts.DRAFT_SYSTEM_PROMPT,
            build_schema_instruction(NodeDraft),
        ])
        messages = [
            SystemMessage(content=system),
            HumanMessage(content=prompts.draft_user_prompt(
                request.intention,
                request.node_type.value,
                request.context_schema,
                request.additional_inputs,
            )),
        ]
        text = await self._invoke(messages, "draft_node")
        result = parse_structured_output(text, NodeDraft)
        if not result.success or result.data is None:
            raise GenerationFailed(f"Invalid draft response: {result.error}")

        draft = result.data
        if request.node_type == NodeKind.DATA:
            draft.input_schema = {}
        return draft

    async def _invoke(self, messages: List[BaseMessage], call_name: str) -> str:
        start = time.time()
        try:
            if self._timeout:
                response = await asyncio.wait_for(
                    self._model.ainvoke(messages), timeout=self._timeout,
                )
            else:
                response = await self._model.ainvoke(messages)
        except asyncio.TimeoutError as e:
            raise GenerationFailed(
                f"Generation call '{call_name}' timed out after {self._timeout}s", e,
            ) from e
        except Exception as e:
            logger.error(f"Generation call '{call_name}' failed: {e}")
            raise GenerationFailed(str(e) or type(e).__name__, e) from e

        duration_ms = int((time.time() - start) * 1000)
        logger.info(f"Generation call '{call_name}' returned in {duration_ms}ms")
        return _message_text(response.content)


def _message_text(content: Any) -> str:
    """Flatten string or content-block message payloads into text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content)


def create_generation_client(config=None) -> ChatModelGenerationClient:
    """Build the default OpenAI-backed client from ``APIConfig``."""
    from langchain_openai import ChatOpenAI

    if config is None:
        from agentflow.config import APIConfig
        config = APIConfig.get_default_instance()

    kwargs: Dict[str, Any] = {
        "model": config.generation_model,
        "temperature": config.temperature,
        "timeout": config.request_timeout,
    }
    if config.openai_api_key:
        kwargs["api_key"] = config.openai_api_key
    if config.openai_base_url:
        kwargs["base_url"] = config.openai_base_url

    logger.info(f"Generation client using model {config.generation_model}")
    return ChatModelGenerationClient(ChatOpenAI(**kwargs), timeout=config.request_timeout)
