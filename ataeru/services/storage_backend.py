from pathlib import Path
from typing import Optional, Protocol

import aiofiles
import aiofiles.os

from ataeru.config import FILES_DIR_NAME, HASHES_DIR_NAME, KEYS_FILE_NAME


class StorageBackend(Protocol):
    """Capabilities the upload path needs from a backing store."""

    async def lookup_key(self, key: str) -> bool: ...

    async def lookup_hash(self, digest: str) -> Optional[str]: ...

    async def record_hash(self, digest: str, filename: str) -> None: ...

    async def store_bytes(self, filename: str, data: bytes) -> None: ...

    async def resolve_file(self, filename: str) -> Optional[Path]: ...


class FileSystemBackend:
    """Flat-file store: a key list, one file per hash and the stored files.

    Layout under ``storage_dir``::

        keys            newline-separated upload keys
        files/<name>    stored content
        hashes/<hex>    one file per content hash, holding the stored filename

    I/O errors are not handled here; they propagate as ``OSError``.
    """

    def __init__(self, storage_dir: Path):
        self.storage_dir = Path(storage_dir)
        self.files_dir = self.storage_dir / FILES_DIR_NAME
        self.hashes_dir = self.storage_dir / HASHES_DIR_NAME
        self.keys_file = self.storage_dir / KEYS_FILE_NAME

    async def lookup_key(self, key: str) -> bool:
        """Scan the key file line by line for an exact match. Re-read on every call."""
        async with aiofiles.open(self.keys_file, 'r', encoding='utf-8') as f:
            async for line in f:
                if line.rstrip("\r\n") == key:
                    return True
        return False

    def hash_path(self, digest: str) -> Path:
        return self.hashes_dir / digest

    async def lookup_hash(self, digest: str) -> Optional[str]:
        """Return the filename stored for ``digest``, or None when the content is new."""
        hash_path = self.hash_path(digest)
        if not await aiofiles.os.path.exists(hash_path):
            return None
        async with aiofiles.open(hash_path, 'r', encoding='utf-8') as f:
            content = await f.read()
        return content.strip()

    async def record_hash(self, digest: str, filename: str) -> None:
        async with aiofiles.open(self.hash_path(digest), 'w', encoding='utf-8') as f:
            await f.write(f"{filename}\n")

    async def store_bytes(self, filename: str, data: bytes) -> None:
        async with aiofiles.open(self.files_dir / filename, 'wb') as f:
            await f.write(data)

    async def resolve_file(self, filename: str) -> Optional[Path]:
        """Map a public filename to its path under files/.

        Returns None for directory-style names, names escaping files/ and
        anything that is not an existing regular file.
        """
        if not filename or filename.endswith(("/", "\\")):
            return None

        files_root = self.files_dir.resolve()
        candidate = (files_root / filename).resolve()
        # Stored files are flat; nested or escaping paths are never ours
        if candidate.parent != files_root:
            return None

        if not await aiofiles.os.path.isfile(candidate):
            return None
        return candidate
