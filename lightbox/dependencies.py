from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from lightbox.config import settings
from lightbox.database import SessionLocal
from lightbox.services.auth_service import get_current_user
from lightbox.services.hashing import ContentHasher
from lightbox.services.variants import VariantGenerator
from lightbox.storage import LocalFileStorage, StoragePort


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_storage() -> StoragePort:
    return LocalFileStorage(settings.UPLOAD_DIR)


def get_variant_generator() -> VariantGenerator:
    return VariantGenerator(settings.THUMBNAIL_SIZES, settings.THUMBNAIL_QUALITY)


def get_hasher() -> ContentHasher:
    return ContentHasher(settings.HASH_CHUNK_SIZE)


db_dependency = Annotated[Session, Depends(get_db)]
storage_dependency = Annotated[StoragePort, Depends(get_storage)]
variants_dependency = Annotated[VariantGenerator, Depends(get_variant_generator)]
hasher_dependency = Annotated[ContentHasher, Depends(get_hasher)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
