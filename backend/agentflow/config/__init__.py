"""
Configuration sections.

Importing this package registers every section with the config
registry; ``get_config(name)`` returns an environment-derived instance.
"""

from agentflow.config.base import (
    BaseConfig,
    ConfigField,
    FieldType,
    get_config,
    list_config_classes,
    register_config,
)
from agentflow.config.sub_config.general.api_config import APIConfig
from agentflow.config.sub_config.general.editor_config import EditorConfig

__all__ = [
    "BaseConfig",
    "ConfigField",
    "FieldType",
    "get_config",
    "list_config_classes",
    "register_config",
    "APIConfig",
    "EditorConfig",
]
