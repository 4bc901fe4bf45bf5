"""Structured trace/event logging.

We emit a single JSON object per line so logs are easy to grep and ship.
Events describe observable pipeline actions: invocation start/end, stage
start/end, ribbon builds and errors.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from artwork_pipeline.observability.redaction import sanitize
from artwork_pipeline.observability.trace_context import get_actor_id, get_trace_id


_logger = logging.getLogger("artwork_pipeline.trace")
_error_logger = logging.getLogger("artwork_pipeline.errors")

_settings: dict[str, Any] = {"enabled": True, "max_chars": 2000}


def configure_tracing(*, enabled: bool = True, max_chars: int = 2000) -> None:
    """Apply trace settings from configuration."""
    _settings["enabled"] = enabled
    _settings["max_chars"] = max_chars


def trace_event(event: str, **fields: Any) -> None:
    """Emit a structured trace event.

    Args:
        event: Short event name, e.g. 'stage.start'.
        **fields: Event payload (will be sanitized).
    """

    if not _settings["enabled"]:
        return

    record: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "trace_id": get_trace_id(),
        "actor_id": get_actor_id(),
    }

    for k, v in fields.items():
        record[k] = sanitize(v, max_chars=_settings["max_chars"])

    try:
        json_str = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        # Never break an invocation because of logging.
        _logger.info('{"event":"%s","error":"failed_to_serialize"}', event)
        return

    _logger.info(json_str)

    if ".error" in event or "error" in fields:
        _error_logger.error(
            "[%s] %s: %s (trace_id=%s, actor_id=%s)",
            event,
            fields.get("error_type", "Error"),
            fields.get("error", "Unknown error"),
            record.get("trace_id"),
            record.get("actor_id"),
        )
