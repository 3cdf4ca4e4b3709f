"""Agentflow — visual agent/data workflow engine."""

__version__ = "0.1.0"
