"""
Run Logging Module

Provides per-run step logging for workflow executions.
"""
from agentflow.logging.run_logger import RunLogger, get_run_logger, release_run_logger

__all__ = ['RunLogger', 'get_run_logger', 'release_run_logger']
