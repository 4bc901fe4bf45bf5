"""Object key grammar: ``identityToken/artworkId/imageId/filename``.

Raw keys arrive form-encoded (``+`` for space, percent escapes for
non-ASCII); they are decoded before parsing.
"""

import re
from urllib.parse import unquote_plus

from artwork_pipeline.errors import MalformedKey
from artwork_pipeline.models.domain import ObjectKey

KEY_SEGMENTS = 4
DERIVATIVE_EXTENSION = ".jpg"

_EXTENSION_RE = re.compile(r"\.[^./]*$")


def decode_key(raw_key: str) -> str:
    """Map ``+`` to space, then percent-decode."""
    return unquote_plus(raw_key)


def derive_destination_key(key: str, extension: str = DERIVATIVE_EXTENSION) -> str:
    """Replace the filename's extension with ``extension``.

    Every derivative is re-encoded to one format, so ``a/b/c/photo.png``
    becomes ``a/b/c/photo.jpg``. Filenames without an extension get one.
    """
    head, sep, filename = key.rpartition("/")
    if _EXTENSION_RE.search(filename):
        filename = _EXTENSION_RE.sub(extension, filename)
    else:
        filename = f"{filename}{extension}"
    return f"{head}{sep}{filename}"


def parse_object_key(decoded_key: str, extension: str = DERIVATIVE_EXTENSION) -> ObjectKey:
    """Split a decoded key into its four segments.

    Raises:
        MalformedKey: Unless the key has exactly four non-empty segments.
    """
    segments = decoded_key.split("/")
    if len(segments) != KEY_SEGMENTS or not all(segments):
        raise MalformedKey(
            f"Expected identityToken/artworkId/imageId/filename, got {decoded_key!r}",
            key=decoded_key,
        )
    identity_token, artwork_id, image_id, filename = segments
    return ObjectKey(
        raw=decoded_key,
        identity_token=identity_token,
        artwork_id=artwork_id,
        image_id=image_id,
        filename=filename,
        destination_key=derive_destination_key(decoded_key, extension),
    )


def resolve_key(raw_key: str) -> ObjectKey:
    """Decode and parse a key exactly as delivered in a notification."""
    return parse_object_key(decode_key(raw_key))
