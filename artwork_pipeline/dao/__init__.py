"""Data Access Objects package."""

from .artwork_dao import ArtworkDAO
from .base import BaseDAO
from .identity_dao import IdentityDAO

__all__ = [
    "ArtworkDAO",
    "BaseDAO",
    "IdentityDAO",
]
