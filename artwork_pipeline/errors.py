"""Pipeline error taxonomy.

Every failure that aborts an invocation is a ``PipelineError``. The
``retriable`` flag tells the invoking infrastructure whether re-delivering
the same notification can succeed; the pipeline itself never retries.
"""

from __future__ import annotations

from typing import Any

from artwork_pipeline.enums import ErrorCode


class PipelineError(Exception):
    """Base class for failures that abort an invocation."""

    code: ErrorCode = ErrorCode.TRANSIENT_INFRA
    retriable: bool = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        """Structured error body for invocation results."""
        return {
            "code": str(self.code),
            "message": self.message,
            "retriable": self.retriable,
            "context": dict(self.context),
        }


class ValidationError(PipelineError):
    """Misconfiguration or malformed input. Never retried."""

    code = ErrorCode.INVALID_EVENT


class InvalidEvent(ValidationError):
    """Raised for unusable notifications or a self-referential bucket setup."""

    pass


class MalformedKey(ValidationError):
    """Raised when an object key does not have four non-empty segments."""

    code = ErrorCode.MALFORMED_KEY


class NotFoundError(PipelineError):
    """A record the invocation depends on does not exist."""

    code = ErrorCode.OBJECT_NOT_FOUND


class IdentityNotFound(NotFoundError):
    """Raised when an identity token has no identity record."""

    code = ErrorCode.IDENTITY_NOT_FOUND


class ArtworkNotFound(NotFoundError):
    """Raised when no artwork record exists for a reference/id pair."""

    code = ErrorCode.ARTWORK_NOT_FOUND


class EntryNotFound(NotFoundError):
    """Raised when no image entry matches the derived or raw key."""

    code = ErrorCode.ENTRY_NOT_FOUND


class ObjectNotFound(NotFoundError):
    """Raised by storage gateways for absent objects."""

    code = ErrorCode.OBJECT_NOT_FOUND


class DecodeError(PipelineError):
    """Raised when a buffer is not a supported raster image."""

    code = ErrorCode.DECODE_ERROR


class TransientInfraError(PipelineError):
    """Storage or document store call failure; safe to re-deliver."""

    code = ErrorCode.TRANSIENT_INFRA
    retriable = True


class ConcurrentModification(TransientInfraError):
    """Raised when a conditional index update keeps losing to other writers."""

    code = ErrorCode.CONCURRENT_MODIFICATION


class InvocationTimeout(TransientInfraError):
    """Raised when an invocation exceeds its wall-clock budget."""

    code = ErrorCode.TIMEOUT
