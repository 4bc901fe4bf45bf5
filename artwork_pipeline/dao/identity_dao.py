"""Identity data access operations."""

from artwork_pipeline.dao.base import BaseDAO
from artwork_pipeline.models.domain import IdentityRecord


class IdentityDAO(BaseDAO[IdentityRecord]):
    """Read-only access to the identity table (``sub`` -> ``uref``)."""

    async def get(self, external_id: str) -> IdentityRecord | None:
        """Look up the identity record for an external subject.

        Args:
            external_id: Identity token from the object key.

        Returns:
            IdentityRecord if the subject is known, None otherwise.
        """
        item = await self._store.get_item(self._table, {"sub": external_id}, ["uref"])
        if item is None or not item.get("uref"):
            return None
        return IdentityRecord(external_id=external_id, internal_ref=str(item["uref"]))
