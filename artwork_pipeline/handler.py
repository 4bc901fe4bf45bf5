"""Function-style entry point for storage and ribbon notifications.

Components are built once per process and reused by every invocation.
Retriable failures are raised so the platform re-delivers the event;
everything else is reported in the returned body.
"""

import asyncio
import json
import logging
from typing import Any

from artwork_pipeline.application import PipelineApplication
from artwork_pipeline.config import PipelineConfig
from artwork_pipeline.errors import InvalidEvent, TransientInfraError
from artwork_pipeline.observability.redaction import sanitize

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Leave room to report a timeout before the platform kills the process.
_BUDGET_MARGIN_SECONDS = 1.0

_app: PipelineApplication | None = None


def get_application() -> PipelineApplication:
    """Return the process-wide application, building it on first use."""
    global _app
    if _app is None:
        _app = PipelineApplication(PipelineConfig.from_json_file())
    return _app


def set_application(app: PipelineApplication | None) -> None:
    """Replace the process-wide application (tests, local runs)."""
    global _app
    _app = app


def _time_budget(context: Any, default: float) -> float:
    remaining = getattr(context, "get_remaining_time_in_millis", None)
    if not callable(remaining):
        return default
    seconds = remaining() / 1000.0 - _BUDGET_MARGIN_SECONDS
    return max(0.1, min(default, seconds))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Handle one platform event (possibly several records)."""
    logger.info("Reading options from event: %s", json.dumps(sanitize(event), default=str))
    app = get_application()
    budget = _time_budget(context, app.config.invocation_timeout_seconds)

    try:
        results = asyncio.run(app.handle_payload(event, timeout_seconds=budget))
    except InvalidEvent as e:
        logger.error("Rejected event: %s", e)
        return {"statusCode": 400, "error": e.to_dict()}

    body = [result.model_dump(by_alias=True, exclude_none=True) for result in results]
    retriable = [result for result in results if result.retriable]
    if retriable:
        raise TransientInfraError(
            f"{len(retriable)} of {len(results)} notifications failed transiently",
            results=body,
        )

    status_code = max((result.status_code for result in results), default=200)
    return {"statusCode": status_code, "results": body}
