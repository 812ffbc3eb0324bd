from fastapi import APIRouter, Query, status
from typing import List, Optional
import logging

from lightbox.config import settings
from lightbox.dependencies import (
    CurrentUser,
    db_dependency,
    storage_dependency,
    variants_dependency,
)
from lightbox.models.gallery import Gallery, GalleryImage, GalleryStatus
from lightbox.schemas.gallery import (
    GalleryCreate,
    GalleryEnvelope,
    GalleryImageAdd,
    GalleryImageResponse,
    GalleryPositionResponse,
    GalleryResponse,
    GalleryUpdate,
)
from lightbox.services.gallery_ordering import GalleryOrderingEngine, parse_id_list
from lightbox.services.gallery_service import GalleryService
from lightbox.services.variants import VariantGenerator
from lightbox.storage import StoragePort
from lightbox.utils.image_urls import resolve_image_urls

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/galleries", tags=["galleries"])


def serialize_gallery_image(
    link: GalleryImage, storage: StoragePort, variants: VariantGenerator
) -> GalleryImageResponse:
    filename, urls = resolve_image_urls(
        storage, link.image.file_path, variants.edges, settings.UPLOAD_URL_PREFIX
    )
    return GalleryImageResponse(
        id=link.image_id,
        title=link.image.title,
        filename=filename,
        caption_override=link.caption_override or None,
        position=link.position,
        urls=urls,
    )


def serialize_gallery(
    gallery: Gallery,
    storage: StoragePort,
    variants: VariantGenerator,
    links: Optional[List[GalleryImage]] = None,
    image_count: Optional[int] = None,
    cover: Optional[GalleryImage] = None,
) -> GalleryResponse:
    images = None
    if links is not None:
        images = [serialize_gallery_image(link, storage, variants) for link in links]
        if cover is None and links:
            cover = links[0]
    return GalleryResponse(
        id=gallery.id,
        slug=gallery.slug,
        title=gallery.title,
        description=gallery.description,
        status=gallery.status,
        author_id=gallery.author_id,
        created_at=gallery.created_at,
        updated_at=gallery.updated_at,
        published_at=gallery.published_at,
        image_count=image_count if image_count is not None else len(images or []),
        cover_image=serialize_gallery_image(cover, storage, variants) if cover else None,
        images=images,
    )


def _full_gallery(db, gallery: Gallery, storage, variants) -> GalleryResponse:
    links = GalleryOrderingEngine(db).list_images(gallery.id)
    return serialize_gallery(gallery, storage, variants, links=links)


@router.get("/", response_model=List[GalleryResponse], status_code=status.HTTP_200_OK)
def list_galleries(
    db: db_dependency,
    storage: storage_dependency,
    variants: variants_dependency,
    gallery_status: Optional[str] = Query(
        None, alias="status", description="Comma-separated statuses (draft,published,archived)"
    ),
):
    allowed = {s.value for s in GalleryStatus}
    statuses = [GalleryStatus(s) for s in parse_id_list(gallery_status) if s in allowed]
    summaries = GalleryService(db).list(statuses or None)
    return [
        serialize_gallery(
            summary.gallery,
            storage,
            variants,
            image_count=summary.image_count,
            cover=summary.cover,
        )
        for summary in summaries
    ]


@router.get("/{slug_or_id}", response_model=GalleryResponse, status_code=status.HTTP_200_OK)
def get_gallery(
    db: db_dependency,
    storage: storage_dependency,
    variants: variants_dependency,
    slug_or_id: str,
):
    gallery = GalleryService(db).find(slug_or_id)
    return _full_gallery(db, gallery, storage, variants)


@router.post("/", response_model=GalleryEnvelope, status_code=status.HTTP_201_CREATED)
def create_gallery(
    db: db_dependency,
    storage: storage_dependency,
    variants: variants_dependency,
    current_user: CurrentUser,
    gallery_request: GalleryCreate,
):
    gallery = GalleryService(db).create(gallery_request, author_id=current_user.get("id"))
    return GalleryEnvelope(gallery=_full_gallery(db, gallery, storage, variants))


@router.api_route(
    "/{slug_or_id}",
    methods=["PUT", "PATCH"],
    response_model=GalleryEnvelope,
    status_code=status.HTTP_200_OK,
)
def update_gallery(
    db: db_dependency,
    storage: storage_dependency,
    variants: variants_dependency,
    current_user: CurrentUser,
    slug_or_id: str,
    gallery_request: GalleryUpdate,
):
    """
    Update gallery metadata and/or resync its images.

    ``images`` and ``imageOrder`` both describe the desired contents; omit
    both to leave membership untouched, send ``images: []`` to clear it.
    """
    gallery = GalleryService(db).update(slug_or_id, gallery_request)
    return GalleryEnvelope(gallery=_full_gallery(db, gallery, storage, variants))


@router.delete("/{slug_or_id}", status_code=status.HTTP_200_OK)
def delete_gallery(db: db_dependency, current_user: CurrentUser, slug_or_id: str):
    GalleryService(db).delete(slug_or_id)
    return {"ok": True}


@router.post(
    "/{slug_or_id}/images",
    response_model=GalleryPositionResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_gallery_image(
    db: db_dependency,
    current_user: CurrentUser,
    slug_or_id: str,
    image_request: GalleryImageAdd,
):
    gallery = GalleryService(db).find(slug_or_id, code="gallery_not_found")
    link = GalleryOrderingEngine(db).append(
        gallery.id, image_request.image_id, image_request.caption_override
    )
    return GalleryPositionResponse(position=link.position)


@router.delete("/{slug_or_id}/images/{image_id}", status_code=status.HTTP_200_OK)
def remove_gallery_image(
    db: db_dependency, current_user: CurrentUser, slug_or_id: str, image_id: str
):
    gallery = GalleryService(db).find(slug_or_id, code="gallery_not_found")
    GalleryOrderingEngine(db).remove(gallery.id, image_id)
    return {"ok": True}
