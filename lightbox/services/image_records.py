from dataclasses import asdict, dataclass
from typing import List, Optional
import logging

from sqlalchemy import select, desc, asc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import FlushError

from lightbox.exceptions import InvalidReferenceError, RecordConflictError, NotFoundError
from lightbox.models.image import Image

logger = logging.getLogger(__name__)


@dataclass
class ImageRecord:
    """Metadata for one uploaded original, as produced by the upload pipeline."""

    id: str
    file_path: str
    sha256: Optional[str] = None
    mime_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    file_size: Optional[int] = None
    title: Optional[str] = None
    alt_text: Optional[str] = None
    caption: Optional[str] = None
    source_url: Optional[str] = None
    uploaded_by: Optional[int] = None


def _is_foreign_key_violation(error: IntegrityError) -> bool:
    # sqlite3: "FOREIGN KEY constraint failed"; psycopg: SQLSTATE 23503
    sqlstate = getattr(error.orig, "pgcode", None) or getattr(error.orig, "sqlstate", None)
    if sqlstate == "23503":
        return True
    return "foreign key" in str(error.orig).lower()


ORDERINGS = {
    "created_desc": (desc(Image.created_at), desc(Image.id)),
    "created_asc": (asc(Image.created_at), asc(Image.id)),
}


class ImageRecordStore:
    """Rows of the ``images`` table; one per uploaded original."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, record: ImageRecord) -> Image:
        """
        Persist ``record``.

        A duplicate id or storage path raises ``RecordConflictError``; an
        ``uploaded_by`` that matches no user raises ``InvalidReferenceError``.
        """
        image = Image(**asdict(record))
        self.db.add(image)
        try:
            self.db.flush()
        except IntegrityError as e:
            if _is_foreign_key_violation(e):
                raise InvalidReferenceError(
                    f"Uploader {record.uploaded_by} does not exist"
                ) from e
            raise RecordConflictError(
                f"Image {record.id} or path {record.file_path} already exists"
            ) from e
        except FlushError as e:
            raise RecordConflictError(f"Image {record.id} already exists") from e
        return image

    def get(self, image_id: str) -> Image:
        image = self.db.get(Image, image_id)
        if image is None:
            raise NotFoundError(f"Image with id {image_id} not found")
        return image

    def list(self, order_by: str = "created_desc") -> List[Image]:
        if order_by not in ORDERINGS:
            raise ValueError(f"Unknown ordering: {order_by}")
        result = self.db.execute(select(Image).order_by(*ORDERINGS[order_by]))
        return list(result.scalars().all())

    def find_by_hash(self, sha256: str, exclude_id: Optional[str] = None) -> List[str]:
        query = select(Image.id).where(Image.sha256 == sha256)
        if exclude_id is not None:
            query = query.where(Image.id != exclude_id)
        return list(self.db.execute(query.order_by(Image.created_at)).scalars().all())

    def existing_ids(self, image_ids: List[str]) -> set[str]:
        if not image_ids:
            return set()
        result = self.db.execute(select(Image.id).where(Image.id.in_(image_ids)))
        return set(result.scalars().all())

    def delete(self, image_id: str) -> Image:
        image = self.get(image_id)
        self.db.delete(image)
        self.db.flush()
        return image
