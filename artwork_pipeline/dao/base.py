"""Base DAO abstract class."""

from abc import ABC
from typing import Generic, TypeVar

from artwork_pipeline.stores.documents import DocumentStore

# Type variable for Pydantic domain models
T = TypeVar("T")


class BaseDAO(ABC, Generic[T]):
    """Abstract base class for Data Access Objects.

    DAOs handle all document store operations for one table and MUST return
    Pydantic domain models, never raw store items. ``None`` is the only
    "absent" signal; an existing but empty record is still returned.
    """

    def __init__(self, store: DocumentStore, table_name: str):
        """Initialize DAO with a document store and its table.

        Args:
            store: Document store implementation.
            table_name: Name of the table this DAO reads and writes.
        """
        self._store = store
        self._table = table_name
