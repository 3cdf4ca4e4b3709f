"""
Environment helpers shared by the config sections.
"""

from __future__ import annotations

import os
from dataclasses import MISSING, Field
from logging import getLogger
from typing import Any, Callable, Dict, Mapping

logger = getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return raw.strip().lower() in _TRUE_VALUES
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def read_env_defaults(
    env_map: Mapping[str, str],
    dataclass_fields: Mapping[str, Field],
) -> Dict[str, Any]:
    """Collect constructor kwargs from environment variables.

    Only attributes with a value set in the environment are returned;
    the dataclass defaults cover the rest. Values are coerced to the
    type of the field's default. Unparseable values are ignored with a
    warning.
    """
    values: Dict[str, Any] = {}
    for attr, env_name in env_map.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        f = dataclass_fields.get(attr)
        default = f.default if f is not None and f.default is not MISSING else ""
        try:
            values[attr] = _coerce(raw, default)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")
    return values


def env_sync(env_name: str) -> Callable[[Any, Any], None]:
    """Build an ``apply_change`` hook writing the new value to ``os.environ``."""

    def _apply(old: Any, new: Any) -> None:
        if new is None or new == "":
            os.environ.pop(env_name, None)
        else:
            os.environ[env_name] = str(new).lower() if isinstance(new, bool) else str(new)
        logger.info(f"Environment variable {env_name} updated")

    return _apply
