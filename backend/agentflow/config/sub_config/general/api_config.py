"""
Generation API Configuration.

Controls the API key, model, sampling temperature and request timeout
used for the per-node generation call and the AI-assist drafting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from agentflow.config.base import BaseConfig, ConfigField, FieldType, register_config
from agentflow.config.sub_config.general.env_utils import env_sync, read_env_defaults

MODEL_OPTIONS = [
    {"value": "gpt-4o-mini", "label": "GPT-4o mini"},
    {"value": "gpt-4o", "label": "GPT-4o"},
    {"value": "gpt-4.1-mini", "label": "GPT-4.1 mini"},
]


@register_config
@dataclass
class APIConfig(BaseConfig):
    """Generation service credentials and model settings."""

    openai_api_key: str = ""
    openai_base_url: str = ""
    generation_model: str = "gpt-4o-mini"
    temperature: float = 0.2
    request_timeout: float = 60.0

    _ENV_MAP = {
        "openai_api_key": "OPENAI_API_KEY",
        "openai_base_url": "OPENAI_BASE_URL",
        "generation_model": "GENERATION_MODEL",
        "temperature": "GENERATION_TEMPERATURE",
        "request_timeout": "GENERATION_TIMEOUT",
    }

    @classmethod
    def get_default_instance(cls) -> "APIConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "api"

    @classmethod
    def get_display_name(cls) -> str:
        return "Generation API"

    @classmethod
    def get_description(cls) -> str:
        return "API key, model, temperature and timeout for node generation calls."

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return [
            ConfigField(
                name="openai_api_key",
                field_type=FieldType.PASSWORD,
                label="OpenAI API Key",
                description="API key for the generation model",
                placeholder="sk-…",
                group="api",
                secure=True,
                apply_change=env_sync("OPENAI_API_KEY"),
            ),
            ConfigField(
                name="openai_base_url",
                field_type=FieldType.STRING,
                label="Base URL",
                description="Optional OpenAI-compatible endpoint",
                group="api",
                apply_change=env_sync("OPENAI_BASE_URL"),
            ),
            ConfigField(
                name="generation_model",
                field_type=FieldType.SELECT,
                label="Model",
                description="Model used for node execution and AI-assist",
                default="gpt-4o-mini",
                options=MODEL_OPTIONS,
                group="model",
                apply_change=env_sync("GENERATION_MODEL"),
            ),
            ConfigField(
                name="temperature",
                field_type=FieldType.NUMBER,
                label="Temperature",
                default=0.2,
                min_value=0.0,
                max_value=2.0,
                group="model",
                apply_change=env_sync("GENERATION_TEMPERATURE"),
            ),
            ConfigField(
                name="request_timeout",
                field_type=FieldType.NUMBER,
                label="Request Timeout (s)",
                description="A timed-out call fails the step",
                default=60.0,
                min_value=1,
                max_value=600,
                group="model",
                apply_change=env_sync("GENERATION_TIMEOUT"),
            ),
        ]
