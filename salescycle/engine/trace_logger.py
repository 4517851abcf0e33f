"""
Structured JSON logging for sales cycle runs.

One flat record per emitted snapshot, plus one per finished phase, on a
dedicated logger kept apart from operational logs.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from salescycle.engine.models import EngineState

_trace_logger: Optional[logging.Logger] = None


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        # record.msg is already a dict for trace records
        if isinstance(record.msg, dict):
            return json.dumps(record.msg, default=str, ensure_ascii=False)
        return super().format(record)


def _get_trace_logger() -> logging.Logger:
    """Get or create the trace logger with JSON formatting."""
    global _trace_logger
    if _trace_logger is not None:
        return _trace_logger

    _trace_logger = logging.getLogger("salescycle.trace")
    _trace_logger.setLevel(logging.INFO)
    _trace_logger.propagate = False

    # stdout is reserved for the runner's final snapshot payload
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.INFO)
    handler.setFormatter(JsonFormatter())
    _trace_logger.addHandler(handler)

    return _trace_logger


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_snapshot(run_id: str, state: EngineState) -> None:
    record: dict[str, Any] = {
        "type": "progress_snapshot",
        "ts": _now(),
        "run_id": run_id,
        "phase": state.phase,
        "progress": state.progress,
        "message": state.phase_message,
        "jobs": len(state.jobs),
        "sales_ytd": state.sales_ytd,
        "built_ytd": state.built_ytd,
    }
    if state.error is not None:
        record["error"] = state.error

    _get_trace_logger().info(record)


def log_phase_summary(run_id: str, phase: str, *, attempted: int, failed: int) -> None:
    _get_trace_logger().info({
        "type": "phase_summary",
        "ts": _now(),
        "run_id": run_id,
        "phase": phase,
        "attempted": attempted,
        "failed": failed,
    })
