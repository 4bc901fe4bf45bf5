"""Business logic services package."""

from .artwork_index import ArtworkIndexUpdater, find_entry_index
from .artwork_lock import ArtworkLockRegistry
from .derivative_generator import DerivativeGenerator
from .identity_resolver import IdentityResolver
from .key_grammar import decode_key, derive_destination_key, parse_object_key, resolve_key
from .ribbon_compositor import (
    RibbonCompositor,
    compose_ribbon,
    ribbon_canvas_size,
    ribbon_tile_position,
)

__all__ = [
    "ArtworkIndexUpdater",
    "ArtworkLockRegistry",
    "DerivativeGenerator",
    "IdentityResolver",
    "RibbonCompositor",
    "compose_ribbon",
    "decode_key",
    "derive_destination_key",
    "find_entry_index",
    "parse_object_key",
    "resolve_key",
    "ribbon_canvas_size",
    "ribbon_tile_position",
]
