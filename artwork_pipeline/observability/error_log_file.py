"""Error log file handler for capturing errors and warnings to a file."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from artwork_pipeline.config import PipelineConfig


_error_file_handler: RotatingFileHandler | None = None


def setup_error_log_file(config: "PipelineConfig") -> RotatingFileHandler | None:
    """Attach a rotating error log file handler to the root logger.

    Safe to call multiple times; the first configured handler is reused.

    Args:
        config: Pipeline configuration with error log settings.

    Returns:
        The configured RotatingFileHandler, or None if disabled or unavailable.
    """
    global _error_file_handler

    if not config.error_log_file_enabled:
        return None
    if _error_file_handler is not None:
        return _error_file_handler

    log_level = getattr(logging, config.error_log_level.upper(), logging.WARNING)

    log_file = Path(config.error_log_file_path).expanduser()
    if not log_file.is_absolute():
        from artwork_pipeline.config import _find_repo_root

        log_file = _find_repo_root(start=Path(__file__)) / log_file
    log_file = log_file.resolve()

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=config.error_log_max_bytes,
            backupCount=config.error_log_backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        # Lambda-style read-only filesystems land here; stdout logging still works.
        print(f"Warning: Cannot create error log file {log_file}: {e}", file=sys.stderr)
        return None

    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.getLogger().addHandler(handler)
    _error_file_handler = handler

    logging.getLogger(__name__).info(
        "Error log file handler initialized: %s (level=%s)", log_file, config.error_log_level
    )
    return handler


def get_error_log_handler() -> RotatingFileHandler | None:
    return _error_file_handler


def log_invocation_error(
    operation: str,
    error: Exception | str,
    *,
    trace_id: str | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    """Log a failed invocation with its remediation context.

    Args:
        operation: What was being done, e.g. 'creation' or 'ribbon'.
        error: The exception or error message.
        trace_id: Optional trace ID for correlation.
        extra: Context such as identity token, artwork id and key.
    """
    logger = logging.getLogger(f"artwork_pipeline.pipeline.{operation}")

    error_type = type(error).__name__ if isinstance(error, Exception) else "Error"
    context_parts = [f"operation={operation}", f"error_type={error_type}"]
    if trace_id:
        context_parts.append(f"trace_id={trace_id}")
    for k, v in (extra or {}).items():
        context_parts.append(f"{k}={v}")

    logger.error("[%s] %s", " ".join(context_parts), error)
