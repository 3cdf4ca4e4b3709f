"""
Editor Configuration.

Where workflows and run logs are stored, and how deep the undo
history goes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from agentflow.config.base import BaseConfig, ConfigField, FieldType, register_config
from agentflow.config.sub_config.general.env_utils import env_sync, read_env_defaults


@register_config
@dataclass
class EditorConfig(BaseConfig):
    """Workflow storage and editing settings."""

    storage_dir: str = "workflows"
    log_dir: str = ""
    history_limit: int = 50

    _ENV_MAP = {
        "storage_dir": "AGENTFLOW_STORAGE_DIR",
        "log_dir": "AGENTFLOW_LOG_DIR",
        "history_limit": "AGENTFLOW_HISTORY_LIMIT",
    }

    @classmethod
    def get_default_instance(cls) -> "EditorConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "editor"

    @classmethod
    def get_display_name(cls) -> str:
        return "Workflow Editor"

    @classmethod
    def get_description(cls) -> str:
        return "Workflow storage directory, run log directory and undo depth."

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_dir)

    @property
    def log_path(self) -> Optional[Path]:
        """Run log directory; ``None`` keeps run logs in memory."""
        return Path(self.log_dir) if self.log_dir else None

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return [
            ConfigField(
                name="storage_dir",
                field_type=FieldType.PATH,
                label="Storage Directory",
                description="Directory holding one JSON document per workflow",
                default="workflows",
                required=True,
                group="storage",
                apply_change=env_sync("AGENTFLOW_STORAGE_DIR"),
            ),
            ConfigField(
                name="log_dir",
                field_type=FieldType.PATH,
                label="Run Log Directory",
                description="Run logs are kept in memory only when empty",
                group="storage",
                apply_change=env_sync("AGENTFLOW_LOG_DIR"),
            ),
            ConfigField(
                name="history_limit",
                field_type=FieldType.NUMBER,
                label="Undo Depth",
                description="Snapshots kept per stack before the oldest is evicted",
                default=50,
                min_value=1,
                max_value=500,
                group="editing",
                apply_change=env_sync("AGENTFLOW_HISTORY_LIMIT"),
            ),
        ]
