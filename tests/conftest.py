"""Shared fixtures."""

import pytest


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep run logs in memory and config at its defaults."""
    for name in (
        "AGENTFLOW_LOG_DIR",
        "AGENTFLOW_STORAGE_DIR",
        "AGENTFLOW_HISTORY_LIMIT",
        "GENERATION_MODEL",
        "GENERATION_TEMPERATURE",
        "GENERATION_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
