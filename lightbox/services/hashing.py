from typing import BinaryIO
import hashlib
import logging

from lightbox.exceptions import HashError
from lightbox.storage import StoragePort

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class ContentHasher:
    """Incremental SHA-256 over byte streams of any length."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def hash_stream(self, stream: BinaryIO) -> str:
        digest = hashlib.sha256()
        try:
            for chunk in iter(lambda: stream.read(self.chunk_size), b""):
                digest.update(chunk)
        except OSError as e:
            raise HashError(f"Failed to read stream for hashing: {e}") from e
        return digest.hexdigest()

    def hash_key(self, storage: StoragePort, key: str) -> str:
        """Hash a stored file without loading it into memory."""
        try:
            stream = storage.open(key)
        except OSError as e:
            raise HashError(f"Failed to open {key} for hashing: {e}") from e
        with stream:
            return self.hash_stream(stream)
