import logging

from ataeru.services.storage_backend import StorageBackend

logger = logging.getLogger(__name__)


class KeyValidator:
    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def is_valid(self, key: str) -> bool:
        """Check ``key`` against the access-key list.

        Fails closed: an unreadable key list means no key is valid.
        """
        if not key:
            return False
        try:
            return await self.backend.lookup_key(key)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error while reading access keys: {str(e)}")
            return False
