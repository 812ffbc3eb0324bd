"""
Upload orchestration: persist the original, hash it, thumbnail it, record it.

Failure policy:
    - Writing the original, hashing it, reading its size and inserting the
      record are hard steps. If any of them fails the original (and any
      variants already generated) is deleted before the error propagates.
    - Dimension detection and variant generation are soft steps. A failure
      is logged and the upload continues with null dimensions and/or no
      variants.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import BinaryIO, Dict, List, Optional
import logging
import uuid

from sqlalchemy.orm import Session

from lightbox.database import transaction
from lightbox.exceptions import (
    DecodeError,
    LightboxError,
    StorageIOError,
    StorageWriteError,
    VariantError,
)
from lightbox.models.image import Image
from lightbox.services.hashing import ContentHasher
from lightbox.services.image_records import ImageRecord, ImageRecordStore
from lightbox.services.variants import VariantGenerator
from lightbox.storage import ORIGINAL_DIR, StoragePort

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"
DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class UploadRequest:
    stream: BinaryIO
    original_filename: Optional[str] = None
    mime_type: Optional[str] = None
    title: Optional[str] = None
    caption: Optional[str] = None
    alt_text: Optional[str] = None
    source_url: Optional[str] = None
    uploaded_by: Optional[int] = None


@dataclass
class UploadResult:
    image: Image
    variants: Dict[str, str] = field(default_factory=dict)
    duplicate_of: List[str] = field(default_factory=list)


def storage_filename(image_id: str, original_filename: Optional[str]) -> str:
    extension = PurePosixPath(original_filename or "").suffix.lower()
    return f"{image_id}{extension or DEFAULT_EXTENSION}"


class UploadPipeline:
    def __init__(
        self,
        db: Session,
        storage: StoragePort,
        hasher: Optional[ContentHasher] = None,
        variants: Optional[VariantGenerator] = None,
    ):
        self.db = db
        self.storage = storage
        self.hasher = hasher or ContentHasher()
        self.variants = variants or VariantGenerator()
        self.records = ImageRecordStore(db)

    def upload(self, request: UploadRequest) -> UploadResult:
        image_id = str(uuid.uuid4())
        filename = storage_filename(image_id, request.original_filename)
        key = f"{ORIGINAL_DIR}/{filename}"
        variants: Dict[str, str] = {}

        try:
            self._persist(key, request.stream)
            sha256 = self.hasher.hash_key(self.storage, key)
            file_size = self._size(key)

            width, height, variants = self._process(key)

            record = ImageRecord(
                id=image_id,
                file_path=key,
                sha256=sha256,
                mime_type=request.mime_type or DEFAULT_MIME_TYPE,
                width=width,
                height=height,
                file_size=file_size,
                title=request.title or None,
                caption=request.caption or None,
                alt_text=request.alt_text or None,
                source_url=request.source_url or None,
                uploaded_by=request.uploaded_by,
            )
            with transaction(self.db):
                image = self.records.insert(record)
                duplicate_of = self.records.find_by_hash(sha256, exclude_id=image_id)
        except LightboxError as e:
            self._cleanup(key, variants)
            logger.error(f"Upload {image_id} failed ({e.code}): {e.message}")
            raise
        except Exception:
            self._cleanup(key, variants)
            logger.error(f"Upload {image_id} failed unexpectedly", exc_info=True)
            raise

        if duplicate_of:
            logger.info(f"Upload {image_id} duplicates content of {', '.join(duplicate_of)}")
        logger.info(
            f"Stored image {image_id} ({file_size} bytes, {len(variants)} variant(s))"
        )
        return UploadResult(image=image, variants=variants, duplicate_of=duplicate_of)

    def _persist(self, key: str, stream: BinaryIO) -> None:
        try:
            self.storage.write(key, stream)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {key}: {e}") from e

    def _size(self, key: str) -> int:
        try:
            return self.storage.size(key)
        except OSError as e:
            raise StorageIOError(f"Failed to stat {key}: {e}") from e

    def _process(self, key: str) -> tuple[Optional[int], Optional[int], Dict[str, str]]:
        """Soft step: never raises for undecodable or unthumbnailable input."""
        try:
            width, height = self.variants.detect_dimensions(self.storage, key)
        except DecodeError as e:
            logger.warning(f"Image processing failed: {e.message}")
            return None, None, {}

        try:
            variants = self.variants.generate(self.storage, key)
        except (DecodeError, VariantError) as e:
            logger.warning(f"Image processing failed: {e.message}")
            return width, height, {}

        return width, height, variants

    def _cleanup(self, key: str, variants: Dict[str, str]) -> None:
        for target_key in [key, *variants.values()]:
            try:
                self.storage.delete(target_key)
            except OSError:
                logger.error(f"Failed to clean up {target_key}", exc_info=True)
