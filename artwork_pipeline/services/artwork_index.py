"""Artwork index maintenance: append and remove image entries."""

import logging

from artwork_pipeline.dao.artwork_dao import ArtworkDAO
from artwork_pipeline.errors import ArtworkNotFound, ConcurrentModification, EntryNotFound
from artwork_pipeline.models.domain import ImageEntry
from artwork_pipeline.services.artwork_lock import ArtworkLockRegistry

logger = logging.getLogger(__name__)


def find_entry_index(images: list[ImageEntry], derived_key: str, raw_key: str | None) -> tuple[int, str] | None:
    """Locate the entry for an image by key.

    The derived key is tried first; the raw key is the fallback for entries
    written before derivatives were re-encoded (their ``key`` is the raw key).

    Returns:
        ``(index, matched_key)`` or None when neither key matches.
    """
    candidates = [derived_key]
    if raw_key and raw_key != derived_key:
        candidates.append(raw_key)
    for candidate in candidates:
        for index, entry in enumerate(images):
            if entry.derived_key == candidate:
                return index, candidate
    return None


class ArtworkIndexUpdater:
    """Appends and removes entries in an artwork's ``images`` list.

    Appends are a single additive update and need no coordination.
    Removals address the entry by position, so each one is serialized per
    artwork and guarded by a compare-and-swap on the entry's key.
    """

    def __init__(
        self,
        artwork_dao: ArtworkDAO,
        locks: ArtworkLockRegistry | None = None,
        max_attempts: int = 3,
    ) -> None:
        self._artwork_dao = artwork_dao
        self._locks = locks or ArtworkLockRegistry()
        self._max_attempts = max(1, max_attempts)

    async def append(self, internal_ref: str, artwork_id: str, entry: ImageEntry) -> None:
        """Append ``entry`` to the artwork's images.

        A notification can be delivered more than once, so an entry whose
        key is already indexed is left alone.

        Raises:
            ArtworkNotFound: If the artwork record does not exist.
        """
        record = await self._artwork_dao.get(internal_ref, artwork_id)
        if record is None:
            raise ArtworkNotFound(
                f"No artwork {artwork_id} for user ref {internal_ref}",
                internal_ref=internal_ref,
                artwork_id=artwork_id,
            )
        if any(image.derived_key == entry.derived_key for image in record.images):
            logger.info(
                "Image %s already indexed in artwork %s (uref=%s); skipping append",
                entry.derived_key,
                artwork_id,
                internal_ref,
            )
            return

        await self._artwork_dao.append_image(internal_ref, artwork_id, entry)
        logger.info(
            "Appended image %s to artwork %s (uref=%s)",
            entry.derived_key,
            artwork_id,
            internal_ref,
        )

    async def remove(
        self,
        internal_ref: str,
        artwork_id: str,
        derived_key: str,
        raw_key: str | None = None,
    ) -> ImageEntry:
        """Remove the entry matching ``derived_key`` (or legacy ``raw_key``).

        Returns:
            The removed entry as it was in the snapshot.

        Raises:
            ArtworkNotFound: If the artwork record does not exist.
            EntryNotFound: If no entry matches either key; nothing is written.
            ConcurrentModification: If every guarded removal lost a race.
        """
        async with self._locks.hold(internal_ref, artwork_id):
            for attempt in range(1, self._max_attempts + 1):
                record = await self._artwork_dao.get(internal_ref, artwork_id)
                if record is None:
                    raise ArtworkNotFound(
                        f"No images for artwork {artwork_id}",
                        internal_ref=internal_ref,
                        artwork_id=artwork_id,
                    )

                match = find_entry_index(record.images, derived_key, raw_key)
                if match is None:
                    logger.warning(
                        "Image not found in artwork %s (uref=%s) for key %s (raw key %s)",
                        artwork_id,
                        internal_ref,
                        derived_key,
                        raw_key,
                    )
                    raise EntryNotFound(
                        f"The image was not found in the db, for key: {raw_key or derived_key}",
                        internal_ref=internal_ref,
                        artwork_id=artwork_id,
                        key=derived_key,
                        raw_key=raw_key,
                    )

                index, matched_key = match
                if await self._artwork_dao.remove_image_at(
                    internal_ref, artwork_id, index, matched_key
                ):
                    logger.info(
                        "Removed image %s at index %d from artwork %s (attempt %d)",
                        matched_key,
                        index,
                        artwork_id,
                        attempt,
                    )
                    return record.images[index]

        raise ConcurrentModification(
            f"Artwork {artwork_id} kept changing during removal of {derived_key}",
            internal_ref=internal_ref,
            artwork_id=artwork_id,
            key=derived_key,
            attempts=self._max_attempts,
        )
