"""Key-addressable file storage used for originals and their variants.

Keys are ``/``-separated relative paths such as ``original/<file>`` or
``thumbnails-200/<file>``. Components depend on :class:`StoragePort`, never on
a concrete backend, so the upload pipeline and the variant generator run the
same against local disk and the in-memory fake.
"""

from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Iterable
import logging
import shutil
import threading

logger = logging.getLogger(__name__)

ORIGINAL_DIR = "original"
COPY_CHUNK_SIZE = 1024 * 1024


def variant_dir(edge: int) -> str:
    return f"thumbnails-{edge}"


class StoragePort(ABC):
    """Contract for storing and retrieving upload files.

    Implementations raise ``OSError`` (or a subclass) on I/O failure;
    callers translate those into the service error taxonomy.
    """

    @abstractmethod
    def write(self, key: str, data: bytes | BinaryIO) -> None:
        """Store ``data`` under ``key``, streaming file objects in chunks."""

    @abstractmethod
    def open(self, key: str) -> BinaryIO:
        """Open ``key`` for binary reading.

        Raises:
            FileNotFoundError: If nothing is stored under the key
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def size(self, key: str) -> int:
        ...

    def ensure_layout(self, edges: Iterable[int]) -> None:
        """Prepare the original and per-size variant areas, where the backend needs it."""


class LocalFileStorage(StoragePort):
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError(f"Storage key escapes upload root: {key}")
        return path

    def ensure_layout(self, edges: Iterable[int]) -> None:
        for name in [ORIGINAL_DIR, *(variant_dir(edge) for edge in edges)]:
            (self.root / name).mkdir(parents=True, exist_ok=True)

    def write(self, key: str, data: bytes | BinaryIO) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(path, "wb") as fh:
                if isinstance(data, (bytes, bytearray, memoryview)):
                    fh.write(data)
                else:
                    shutil.copyfileobj(data, fh, COPY_CHUNK_SIZE)
        except BaseException:
            # Never leave a truncated file behind under a valid key
            path.unlink(missing_ok=True)
            raise

    def open(self, key: str) -> BinaryIO:
        return open(self._path(key), "rb")

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def size(self, key: str) -> int:
        return self._path(key).stat().st_size

    def __repr__(self) -> str:
        return f"LocalFileStorage({str(self.root)!r})"


class MemoryStorage(StoragePort):
    """Dict-backed storage for tests and ephemeral setups."""

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def write(self, key: str, data: bytes | BinaryIO) -> None:
        if isinstance(data, (bytes, bytearray, memoryview)):
            payload = bytes(data)
        else:
            buffer = BytesIO()
            shutil.copyfileobj(data, buffer, COPY_CHUNK_SIZE)
            payload = buffer.getvalue()
        with self._lock:
            self.files[key] = payload

    def open(self, key: str) -> BinaryIO:
        with self._lock:
            if key not in self.files:
                raise FileNotFoundError(key)
            return BytesIO(self.files[key])

    def delete(self, key: str) -> None:
        with self._lock:
            self.files.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self.files

    def size(self, key: str) -> int:
        with self._lock:
            if key not in self.files:
                raise FileNotFoundError(key)
            return len(self.files[key])
