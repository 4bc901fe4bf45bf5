"""Artwork data access operations."""

import logging

from artwork_pipeline.dao.base import BaseDAO
from artwork_pipeline.errors import ArtworkNotFound
from artwork_pipeline.models.domain import ArtworkRecord, ImageEntry
from artwork_pipeline.stores.documents import (
    AppendToList,
    ConditionCheckFailed,
    RemoveAtIndex,
)

logger = logging.getLogger(__name__)

IMAGES_FIELD = "images"


class ArtworkDAO(BaseDAO[ArtworkRecord]):
    """Data access object for artwork records keyed by (``uref``, ``uuid``).

    All methods return Pydantic models, never raw items.
    """

    @staticmethod
    def _key(internal_ref: str, artwork_id: str) -> dict[str, str]:
        return {"uref": internal_ref, "uuid": artwork_id}

    async def get(self, internal_ref: str, artwork_id: str) -> ArtworkRecord | None:
        """Fetch the artwork's current image list snapshot.

        Returns:
            ArtworkRecord if the artwork exists, None otherwise.
        """
        item = await self._store.get_item(
            self._table,
            self._key(internal_ref, artwork_id),
            [IMAGES_FIELD, "uref", "uuid"],
        )
        if item is None:
            return None
        item.setdefault("uref", internal_ref)
        item.setdefault("uuid", artwork_id)
        return ArtworkRecord.model_validate(item)

    async def append_image(self, internal_ref: str, artwork_id: str, entry: ImageEntry) -> None:
        """Append an entry to the artwork's image list in one additive update.

        Raises:
            ArtworkNotFound: If the artwork record does not exist.
        """
        try:
            await self._store.update_item(
                self._table,
                self._key(internal_ref, artwork_id),
                AppendToList(field=IMAGES_FIELD, values=[entry.to_item()]),
            )
        except ConditionCheckFailed as e:
            raise ArtworkNotFound(
                f"No artwork {artwork_id} for user ref {internal_ref}",
                internal_ref=internal_ref,
                artwork_id=artwork_id,
            ) from e

    async def remove_image_at(
        self,
        internal_ref: str,
        artwork_id: str,
        index: int,
        expected_key: str,
    ) -> bool:
        """Remove ``images[index]`` if its key still equals ``expected_key``.

        Returns:
            True if removed, False if the guard failed (the list changed
            since the snapshot, or the artwork disappeared).
        """
        try:
            await self._store.update_item(
                self._table,
                self._key(internal_ref, artwork_id),
                RemoveAtIndex(field=IMAGES_FIELD, index=index, expected=("key", expected_key)),
            )
        except ConditionCheckFailed:
            logger.info(
                "Conditional removal lost a race (artwork=%s index=%d key=%s)",
                artwork_id,
                index,
                expected_key,
            )
            return False
        return True
