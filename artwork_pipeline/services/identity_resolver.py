"""Identity token to internal reference resolution."""

import logging

from artwork_pipeline.dao.identity_dao import IdentityDAO
from artwork_pipeline.errors import IdentityNotFound
from artwork_pipeline.models.domain import IdentityRecord

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Resolves identity tokens with one point lookup per call.

    Nothing is cached: each invocation sees the identity store as it is.
    """

    def __init__(self, identity_dao: IdentityDAO) -> None:
        self._identity_dao = identity_dao

    async def resolve(self, identity_token: str) -> IdentityRecord:
        """Return the identity record for ``identity_token``.

        Raises:
            IdentityNotFound: If the identity store has no record.
        """
        record = await self._identity_dao.get(identity_token)
        if record is None:
            logger.warning("No identity record for token %s", identity_token)
            raise IdentityNotFound(
                f"No identity item for user {identity_token}",
                identity_token=identity_token,
            )
        return record
