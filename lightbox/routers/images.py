from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile, status
from typing import List, Optional
import logging

from lightbox.config import settings
from lightbox.database import transaction
from lightbox.dependencies import (
    CurrentUser,
    db_dependency,
    hasher_dependency,
    storage_dependency,
    variants_dependency,
)
from lightbox.limits import limiter, UPLOAD_LIMIT
from lightbox.models.image import Image
from lightbox.schemas.image import ImageResponse, ImageUploadResponse
from lightbox.services.gallery_ordering import GalleryOrderingEngine
from lightbox.services.image_records import ImageRecordStore
from lightbox.services.upload_pipeline import UploadPipeline, UploadRequest
from lightbox.services.variants import VariantGenerator
from lightbox.storage import StoragePort
from lightbox.utils.image_urls import public_url, resolve_image_urls, thumbnail_map

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["images"])


def build_image_response(
    image: Image, storage: StoragePort, variants: VariantGenerator
) -> ImageResponse:
    filename, urls = resolve_image_urls(
        storage, image.file_path, variants.edges, settings.UPLOAD_URL_PREFIX
    )
    return ImageResponse(
        id=image.id,
        file_path=image.file_path,
        filename=filename,
        title=image.title,
        mime_type=image.mime_type,
        width=image.width,
        height=image.height,
        file_size=image.file_size,
        caption=image.caption,
        alt_text=image.alt_text,
        source_url=image.source_url,
        sha256=image.sha256,
        uploaded_by=image.uploaded_by,
        created_at=image.created_at,
        urls=urls,
        thumbnails=thumbnail_map(urls, variants.sizes),
    )


@router.get("/", response_model=List[ImageResponse], status_code=status.HTTP_200_OK)
def list_images(
    db: db_dependency, storage: storage_dependency, variants: variants_dependency
):
    images = ImageRecordStore(db).list()
    return [build_image_response(image, storage, variants) for image in images]


@router.get("/{image_id}", response_model=ImageResponse, status_code=status.HTTP_200_OK)
def get_image(
    db: db_dependency,
    storage: storage_dependency,
    variants: variants_dependency,
    image_id: str,
):
    image = ImageRecordStore(db).get(image_id)
    return build_image_response(image, storage, variants)


@router.post("/", response_model=ImageUploadResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(UPLOAD_LIMIT)
def upload_image(
    request: Request,
    db: db_dependency,
    storage: storage_dependency,
    variants: variants_dependency,
    hasher: hasher_dependency,
    current_user: CurrentUser,
    image: UploadFile = File(...),
    title: Optional[str] = Form(None),
    caption: Optional[str] = Form(None),
    alt_text: Optional[str] = Form(None),
    source_url: Optional[str] = Form(None),
):
    if not image.content_type or not image.content_type.startswith("image/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")
    if image.size is not None and image.size > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes",
        )

    result = UploadPipeline(db, storage, hasher, variants).upload(
        UploadRequest(
            stream=image.file,
            original_filename=image.filename,
            mime_type=image.content_type,
            title=title,
            caption=caption,
            alt_text=alt_text,
            source_url=source_url,
            uploaded_by=current_user.get("id"),
        )
    )
    record = result.image

    return ImageUploadResponse(
        id=record.id,
        path=public_url(record.file_path, settings.UPLOAD_URL_PREFIX),
        mime_type=record.mime_type,
        file_size=record.file_size,
        sha256=record.sha256,
        width=record.width,
        height=record.height,
        thumbnails={
            name: public_url(key, settings.UPLOAD_URL_PREFIX)
            for name, key in result.variants.items()
        },
        duplicate_of=result.duplicate_of,
    )


@router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_image(
    db: db_dependency,
    storage: storage_dependency,
    variants: variants_dependency,
    current_user: CurrentUser,
    image_id: str,
):
    records = ImageRecordStore(db)
    with transaction(db):
        image = records.get(image_id)
        file_path = image.file_path
        filename = file_path.rsplit("/", 1)[-1]
        affected = GalleryOrderingEngine(db).detach_image(image_id)
        records.delete(image_id)

    # Files go only after the row is gone, so a failed delete never strands a record
    storage.delete(file_path)
    variants.delete_variants(storage, filename)
    logger.info(
        f"Deleted image {image_id} (removed from {len(affected)} gallery(ies))"
    )
