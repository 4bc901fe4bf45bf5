"""Redaction helpers to keep secrets and binary payloads out of logs.

- Dict keys that look like credentials are redacted.
- Credential-looking substrings in strings are replaced.
- Bytes are summarized, large strings and containers are truncated.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any


_REPLACEMENT = "[REDACTED]"
_TRUNC_SUFFIX = "…(truncated)"


_SECRET_KEY_RE = re.compile(
    r"(^|_)(password|secret|token|api[_-]?key|access[_-]?key|authorization|receipt[_-]?handle)($|_)",
    flags=re.IGNORECASE,
)

_SENSITIVE_VALUE_RES: list[re.Pattern[str]] = [
    # AWS access key id
    re.compile(r"\bAKIA[A-Z0-9]{16}\b"),
    # Presigned URL signatures
    re.compile(r"X-Amz-Signature=[0-9a-fA-F]+"),
    re.compile(r"X-Amz-Security-Token=[^&\s]+"),
    # Bearer tokens
    re.compile(r"\bBearer\s+[A-Za-z0-9._\-]+\b", flags=re.IGNORECASE),
]


def _looks_sensitive_key(key: str) -> bool:
    return bool(_SECRET_KEY_RE.search(key))


def redact_text(text: str, *, max_chars: int = 4000) -> str:
    """Redact sensitive substrings in a text blob and truncate."""
    if text is None:
        return text

    out = text
    for rx in _SENSITIVE_VALUE_RES:
        out = rx.sub(_REPLACEMENT, out)

    if max_chars and len(out) > max_chars:
        out = out[:max_chars] + _TRUNC_SUFFIX

    return out


def sanitize(obj: Any, *, max_depth: int = 6, max_chars: int = 4000) -> Any:
    """Sanitize an object for logging."""

    if max_depth <= 0:
        return "…"

    if obj is None:
        return None

    if isinstance(obj, (int, float, bool)):
        return obj

    if isinstance(obj, (bytes, bytearray)):
        # Image buffers never go to logs.
        return f"<bytes:{len(obj)}>"

    if isinstance(obj, str):
        return redact_text(obj, max_chars=max_chars)

    if isinstance(obj, Mapping):
        out: dict[str, Any] = {}
        for k, v in obj.items():
            ks = str(k)
            if _looks_sensitive_key(ks):
                out[ks] = _REPLACEMENT
            else:
                out[ks] = sanitize(v, max_depth=max_depth - 1, max_chars=max_chars)
        return out

    if isinstance(obj, Sequence):
        items = list(obj)
        if len(items) > 50:
            items = items[:50]
            items.append("…")
        return [sanitize(v, max_depth=max_depth - 1, max_chars=max_chars) for v in items]

    return redact_text(str(obj), max_chars=max_chars)
