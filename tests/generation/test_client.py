"""Chat-model backed generation client."""

import asyncio

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from agentflow.config import APIConfig
from agentflow.generation.client import (
    ChatModelGenerationClient,
    DraftRequest,
    StepRequest,
    create_generation_client,
)
from agentflow.workflow.errors import GenerationFailed
from agentflow.workflow.workflow_model import NodeKind

STEP = StepRequest(
    definition="Score the code",
    input_data={"code": "print(1)"},
    output_schema={"type": "object", "properties": {"score": {"type": "number"}}},
)


def _client(*responses, **kwargs):
    return ChatModelGenerationClient(FakeListChatModel(responses=list(responses)), **kwargs)


class TestRunNode:
    """Node execution replies"""

    async def test_plain_json(self):
        assert await _client('{"score": 4}').run_node(STEP) == {"score": 4}

    async def test_json_in_code_block(self):
        reply = 'Sure!\n```json\n{"score": 9}\n```'
        assert await _client(reply).run_node(STEP) == {"score": 9}

    async def test_missing_json_fails(self):
        with pytest.raises(GenerationFailed) as exc_info:
            await _client("I cannot do that").run_node(STEP)
        assert "Invalid model response" in str(exc_info.value)

    async def test_non_object_json_fails(self):
        with pytest.raises(GenerationFailed):
            await _client("[1, 2]").run_node(STEP)

    async def test_model_error_is_wrapped(self):
        class BrokenModel(FakeListChatModel):
            async def ainvoke(self, *args, **kwargs):
                raise RuntimeError("connection reset")

        client = ChatModelGenerationClient(BrokenModel(responses=["{}"]))
        with pytest.raises(GenerationFailed) as exc_info:
            await client.run_node(STEP)
        assert "connection reset" in str(exc_info.value)
        assert isinstance(exc_info.value.cause, RuntimeError)

    async def test_timeout(self):
        class SlowModel(FakeListChatModel):
            async def ainvoke(self, *args, **kwargs):
                await asyncio.sleep(1)

        client = ChatModelGenerationClient(SlowModel(responses=["{}"]), timeout=0.01)
        with pytest.raises(GenerationFailed) as exc_info:
            await client.run_node(STEP)
        assert "timed out" in str(exc_info.value)


class TestDraftNode:
    """AI-assist drafts"""

    async def test_draft_with_string_schemas(self):
        reply = (
            '{"label": "Scorer", "definition": "Scores code.", '
            '"inputSchema": "{\\"code\\": {\\"type\\": \\"string\\"}}", '
            '"outputSchema": {"type": "object", "properties": {"score": {"type": "number"}}}}'
        )
        draft = await _client(reply).draft_node(DraftRequest(intention="score code"))
        assert draft.label == "Scorer"
        assert draft.input_schema == {
            "type": "object",
            "properties": {"code": {"type": "string"}},
        }
        assert list(draft.output_schema["properties"]) == ["score"]

    async def test_data_draft_has_no_input(self):
        reply = (
            '{"label": "Challenge", "definition": "d", '
            '"inputSchema": {"x": {"type": "string"}}, '
            '"outputSchema": {"challenge": {"type": "string"}}}'
        )
        draft = await _client(reply).draft_node(
            DraftRequest(intention="a challenge", node_type=NodeKind.DATA),
        )
        assert draft.input_schema == {}
        assert "challenge" in draft.output_schema["properties"]

    async def test_invalid_draft_fails(self):
        with pytest.raises(GenerationFailed) as exc_info:
            await _client('{"definition": "no label"}').draft_node(DraftRequest(intention="x"))
        assert "Invalid draft response" in str(exc_info.value)


class TestFactory:
    """Client construction from APIConfig"""

    def test_builds_openai_client(self):
        config = APIConfig(openai_api_key="sk-test", generation_model="gpt-4o", request_timeout=5.0)
        client = create_generation_client(config)
        assert isinstance(client, ChatModelGenerationClient)
        assert client._model.model_name == "gpt-4o"
