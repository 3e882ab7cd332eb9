import hashlib
import logging
from typing import NamedTuple

from ataeru.services.storage_backend import StorageBackend

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class StoredFile(NamedTuple):
    """Result of :meth:`ContentStore.put`.

    Attributes:
        digest: Hex content hash of the stored bytes.
        filename: Name under files/ that serves the content.
        is_duplicate: Whether the content was already stored.
    """
    digest: str
    filename: str
    is_duplicate: bool


class ContentStore:
    """Deduplicating store: each distinct content is written at most once.

    The hash index maps a content digest to the filename first chosen for
    that content. Writing the index entry and the bytes is not atomic; a
    failure in between leaves an entry without a file.

    Concurrent puts of the same new content are not serialized and may both
    write.
    """

    def __init__(self, backend: StorageBackend, algorithm: str = "sha256"):
        self.backend = backend
        self.algorithm = algorithm

    def compute_hash(self, data: bytes) -> str:
        return hashlib.new(self.algorithm, data).hexdigest()

    async def put(self, data: bytes, file_id: str, extension: str) -> StoredFile:
        """Store ``data`` unless identical content is already present.

        Args:
            data: Full file content.
            file_id: Freshly generated public id, used only for new content.
            extension: Extension from the client filename, dot included, or "".

        Raises:
            StorageError: if reading or writing the store fails.
        """
        digest = self.compute_hash(data)

        try:
            existing = await self.backend.lookup_hash(digest)
        except OSError as e:
            logger.error(f"Error while trying to read hash entry {digest}: {str(e)}")
            raise StorageError(f"Could not read hash entry {digest}") from e

        if existing:
            logger.info(f"Content {digest} already stored as {existing}")
            return StoredFile(digest, existing, True)

        filename = file_id + extension
        try:
            await self.backend.record_hash(digest, filename)
        except OSError as e:
            logger.error(f"Error while attempting to write hash entry {digest}: {str(e)}")
            raise StorageError(f"Could not write hash entry {digest}") from e

        try:
            await self.backend.store_bytes(filename, data)
        except OSError as e:
            logger.error(f"Error while attempting to write {filename}: {str(e)}")
            raise StorageError(f"Could not write {filename}") from e

        logger.info(f"Stored {len(data)} bytes as {filename}")
        return StoredFile(digest, filename, False)
