"""
Run Logger — per-run structured step trail.

Every workflow run gets its own ``RunLogger``. Entries are kept in
memory (the runner UI reads them back) and, when a log directory is
configured, appended as JSON lines to ``<log_dir>/<run_id>.jsonl``.
Each entry is also forwarded to the module's standard logger.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from logging import DEBUG, ERROR, INFO, WARNING, getLogger
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

logger = getLogger(__name__)


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_STD_LEVELS = {
    LogLevel.DEBUG: DEBUG,
    LogLevel.INFO: INFO,
    LogLevel.WARNING: WARNING,
    LogLevel.ERROR: ERROR,
}


class RunEventType(str, Enum):
    RUN_START = "run_start"
    STEP_ENTER = "step_enter"
    STEP_EXIT = "step_exit"
    STEP_ERROR = "step_error"
    TRANSITION = "transition"
    RUN_END = "run_end"


@dataclass
class RunLogEntry:
    timestamp: str
    level: LogLevel
    event: RunEventType
    message: str
    node_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["level"] = self.level.value
        data["event"] = self.event.value
        return data


class RunLogger:
    """Collects the step trail of a single run."""

    def __init__(self, run_id: str, log_dir: Optional[Path] = None) -> None:
        self.run_id = run_id
        self._entries: List[RunLogEntry] = []
        self._file: Optional[Path] = None
        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            self._file = log_dir / f"{run_id}.jsonl"

    @property
    def entries(self) -> List[RunLogEntry]:
        return list(self._entries)

    @property
    def log_file(self) -> Optional[Path]:
        return self._file

    def _log(
        self,
        level: LogLevel,
        event: RunEventType,
        message: str,
        node_id: Optional[str] = None,
        **metadata: Any,
    ) -> RunLogEntry:
        entry = RunLogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            event=event,
            message=message,
            node_id=node_id,
            metadata=metadata,
        )
        self._entries.append(entry)
        logger.log(
            _STD_LEVELS[level],
            f"[{self.run_id}] {message}",
        )
        if self._file is not None:
            with self._file.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry.to_dict(), ensure_ascii=False, default=str) + "\n")
        return entry

    # ── Public API ──

    def log_run_start(self, workflow_name: str, start_node_id: str) -> RunLogEntry:
        return self._log(
            LogLevel.INFO, RunEventType.RUN_START,
            f"Run started: '{workflow_name}' at node {start_node_id}",
            node_id=start_node_id,
        )

    def log_step_enter(self, node_id: str, node_label: str, kind: str) -> RunLogEntry:
        return self._log(
            LogLevel.INFO, RunEventType.STEP_ENTER,
            f"Entering {kind} node '{node_label}'",
            node_id=node_id, kind=kind,
        )

    def log_step_exit(
        self,
        node_id: str,
        node_label: str,
        duration_ms: int,
        propagated_keys: List[str],
        display_keys: List[str],
    ) -> RunLogEntry:
        return self._log(
            LogLevel.INFO, RunEventType.STEP_EXIT,
            f"Node '{node_label}' completed in {duration_ms}ms",
            node_id=node_id,
            duration_ms=duration_ms,
            propagated_keys=propagated_keys,
            display_keys=display_keys,
        )

    def log_step_error(
        self,
        node_id: str,
        node_label: str,
        error_message: str,
        error_type: str,
    ) -> RunLogEntry:
        return self._log(
            LogLevel.ERROR, RunEventType.STEP_ERROR,
            f"Node '{node_label}' failed: {error_message[:500]}",
            node_id=node_id, error_type=error_type,
        )

    def log_transition(
        self,
        from_state: str,
        to_state: str,
        node_id: Optional[str] = None,
    ) -> RunLogEntry:
        return self._log(
            LogLevel.DEBUG, RunEventType.TRANSITION,
            f"{from_state} → {to_state}",
            node_id=node_id, from_state=from_state, to_state=to_state,
        )

    def log_run_end(self, state: str, steps: int) -> RunLogEntry:
        return self._log(
            LogLevel.INFO, RunEventType.RUN_END,
            f"Run ended in state {state} after {steps} step(s)",
            state=state, steps=steps,
        )


# ── Registry of live run loggers ──

_loggers: Dict[str, RunLogger] = {}
_lock = Lock()


def get_run_logger(run_id: str, log_dir: Optional[Path] = None) -> RunLogger:
    """Return the logger for ``run_id``, creating it on first use."""
    with _lock:
        run_logger = _loggers.get(run_id)
        if run_logger is None:
            run_logger = RunLogger(run_id, log_dir)
            _loggers[run_id] = run_logger
        return run_logger


def release_run_logger(run_id: str) -> None:
    with _lock:
        _loggers.pop(run_id, None)
