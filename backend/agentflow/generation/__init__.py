"""
Generation package — the external text-generation service as seen by
the workflow engine.
"""

from agentflow.generation.client import (
    ChatModelGenerationClient,
    DraftRequest,
    GenerationClient,
    NodeDraft,
    StepRequest,
    create_generation_client,
)

__all__ = [
    "ChatModelGenerationClient",
    "DraftRequest",
    "GenerationClient",
    "NodeDraft",
    "StepRequest",
    "create_generation_client",
]
