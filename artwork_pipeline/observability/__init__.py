"""Observability utilities (structured tracing, redaction, error logging)."""

from artwork_pipeline.observability.error_log_file import (
    log_invocation_error,
    setup_error_log_file,
)
from artwork_pipeline.observability.trace_logging import configure_tracing, trace_event

__all__ = [
    "configure_tracing",
    "log_invocation_error",
    "setup_error_log_file",
    "trace_event",
]
