"""
Config Base — dataclass configuration sections with field metadata.

Each section is a ``@dataclass`` deriving ``BaseConfig`` and decorated
with ``@register_config``. Defaults are read from the environment
(see ``env_utils.read_env_defaults``); ``ConfigField`` metadata lets a
settings screen render and validate the section, and an optional
``apply_change`` hook propagates edits (e.g. back into ``os.environ``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from logging import getLogger
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = getLogger(__name__)

C = TypeVar("C", bound="BaseConfig")


class FieldType(str, Enum):
    STRING = "string"
    PASSWORD = "password"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    PATH = "path"


@dataclass
class ConfigField:
    """UI/validation metadata for one config attribute."""
    name: str
    field_type: FieldType
    label: str
    description: str = ""
    default: Any = None
    required: bool = False
    placeholder: str = ""
    options: List[Dict[str, Any]] = field(default_factory=list)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    group: str = "general"
    secure: bool = False
    apply_change: Optional[Callable[[Any, Any], None]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the frontend (hooks are not serializable)."""
        return {
            "name": self.name,
            "type": self.field_type.value,
            "label": self.label,
            "description": self.description,
            "default": self.default,
            "required": self.required,
            "placeholder": self.placeholder,
            "options": self.options,
            "min": self.min_value,
            "max": self.max_value,
            "group": self.group,
            "secure": self.secure,
        }


class BaseConfig(ABC):
    """Base class for all configuration sections."""

    @classmethod
    @abstractmethod
    def get_default_instance(cls: Type[C]) -> C:
        ...

    @classmethod
    @abstractmethod
    def get_config_name(cls) -> str:
        ...

    @classmethod
    def get_display_name(cls) -> str:
        return cls.get_config_name()

    @classmethod
    def get_description(cls) -> str:
        return ""

    @classmethod
    def get_category(cls) -> str:
        return "general"

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return []

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    def update(self, **changes: Any) -> None:
        """Apply changes, validate them and fire ``apply_change`` hooks."""
        known = {f.name for f in fields(self)}  # type: ignore[arg-type]
        meta = {m.name: m for m in self.get_fields_metadata()}
        for name, value in changes.items():
            if name not in known:
                raise ValueError(f"Unknown config field '{name}' for {self.get_config_name()}")
            m = meta.get(name)
            if m is not None:
                _validate_value(m, value)
            old = getattr(self, name)
            setattr(self, name, value)
            if m is not None and m.apply_change is not None and old != value:
                m.apply_change(old, value)

    def validate(self) -> List[str]:
        """Return validation errors (empty = valid)."""
        errors: List[str] = []
        for m in self.get_fields_metadata():
            value = getattr(self, m.name, None)
            try:
                _validate_value(m, value)
            except ValueError as e:
                errors.append(str(e))
        return errors


def _validate_value(meta: ConfigField, value: Any) -> None:
    if meta.required and (value is None or value == ""):
        raise ValueError(f"'{meta.label}' is required")
    if meta.field_type == FieldType.NUMBER and value is not None:
        if meta.min_value is not None and value < meta.min_value:
            raise ValueError(f"'{meta.label}' must be >= {meta.min_value}")
        if meta.max_value is not None and value > meta.max_value:
            raise ValueError(f"'{meta.label}' must be <= {meta.max_value}")
    if meta.field_type == FieldType.SELECT and meta.options and value is not None:
        allowed = [o["value"] for o in meta.options]
        if value not in allowed:
            raise ValueError(f"'{meta.label}' must be one of {allowed}")


# ── Registry ──

_CONFIG_CLASSES: Dict[str, Type[BaseConfig]] = {}


def register_config(cls: Type[C]) -> Type[C]:
    """Class decorator adding a config section to the registry."""
    _CONFIG_CLASSES[cls.get_config_name()] = cls
    return cls


def list_config_classes() -> List[Type[BaseConfig]]:
    return list(_CONFIG_CLASSES.values())


def get_config(name: str) -> BaseConfig:
    """Build the default (environment-derived) instance of a section."""
    cls = _CONFIG_CLASSES.get(name)
    if cls is None:
        raise KeyError(f"Unknown config section: {name}")
    return cls.get_default_instance()
