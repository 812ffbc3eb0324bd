from typing import List, NamedTuple, Optional
import uuid
import logging

from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from lightbox.database import transaction
from lightbox.exceptions import ConflictError, NotFoundError, ValidationFailed
from lightbox.models.gallery import Gallery, GalleryImage, GalleryStatus
from lightbox.models.image import Image
from lightbox.schemas.gallery import GalleryCreate, GalleryUpdate
from lightbox.services.gallery_ordering import (
    GalleryOrderingEngine,
    normalize_image_selection,
)

logger = logging.getLogger(__name__)


class GallerySummary(NamedTuple):
    gallery: Gallery
    image_count: int
    cover: Optional[GalleryImage]


class GalleryService:
    def __init__(self, db: Session):
        self.db = db
        self.ordering = GalleryOrderingEngine(db)

    def find(self, slug_or_id: str, code: str = "not_found") -> Gallery:
        result = self.db.execute(
            select(Gallery).where(
                or_(
                    func.lower(Gallery.slug) == slug_or_id.lower(),
                    Gallery.id == slug_or_id,
                )
            )
        )
        gallery = result.scalars().first()
        if gallery is None:
            raise NotFoundError(f"Gallery {slug_or_id} not found", code=code)
        return gallery

    def list(self, statuses: Optional[List[GalleryStatus]] = None) -> List[GallerySummary]:
        """Newest galleries first, each with its member count and cover (position 1)."""
        cover = aliased(GalleryImage)
        image_count = (
            select(func.count())
            .where(GalleryImage.gallery_id == Gallery.id)
            .correlate(Gallery)
            .scalar_subquery()
        )
        query = (
            select(Gallery, image_count.label("image_count"), cover, Image)
            .outerjoin(cover, and_(cover.gallery_id == Gallery.id, cover.position == 1))
            .outerjoin(Image, Image.id == cover.image_id)
            .order_by(Gallery.created_at.desc(), Gallery.id)
        )
        if statuses:
            query = query.where(Gallery.status.in_(statuses))

        return [
            GallerySummary(gallery=row[0], image_count=row[1], cover=row[2])
            for row in self.db.execute(query).all()
        ]

    def create(self, data: GalleryCreate, author_id: Optional[int]) -> Gallery:
        gallery = Gallery(
            id=str(uuid.uuid4()),
            slug=data.slug,
            title=data.title,
            description=data.description or None,
            status=data.status or GalleryStatus.DRAFT,
            author_id=author_id,
        )
        if gallery.status == GalleryStatus.PUBLISHED:
            gallery.published_at = func.now()

        selection = normalize_image_selection(data.images, data.image_order)
        with transaction(self.db):
            self._ensure_slug_available(data.slug)
            self.db.add(gallery)
            self._flush_unique(data.slug)
            if selection is not None:
                self.ordering.replace_membership(gallery.id, selection)

        logger.info(f"Created gallery {gallery.id} ({gallery.slug})")
        return gallery

    def update(self, slug_or_id: str, data: GalleryUpdate) -> Gallery:
        gallery = self.find(slug_or_id)
        changes = data.model_dump(exclude_unset=True, exclude={"images", "image_order"})
        changes = {
            key: value
            for key, value in changes.items()
            if key == "description" or value is not None
        }
        selection = normalize_image_selection(data.images, data.image_order)

        if not changes and selection is None:
            raise ValidationFailed("Nothing to update", code="no_updates")

        with transaction(self.db):
            if "slug" in changes and changes["slug"].lower() != gallery.slug.lower():
                self._ensure_slug_available(changes["slug"])
            for key, value in changes.items():
                if key == "description":
                    value = value or None
                setattr(gallery, key, value)
            if changes.get("status") == GalleryStatus.PUBLISHED:
                gallery.published_at = func.now()
            if changes:
                self._flush_unique(changes.get("slug", gallery.slug))
            if selection is not None:
                self.ordering.replace_membership(gallery.id, selection)

        logger.info(f"Updated gallery {gallery.id}")
        self.db.refresh(gallery)
        return gallery

    def delete(self, slug_or_id: str) -> None:
        gallery = self.find(slug_or_id)
        with transaction(self.db):
            self.db.delete(gallery)
        logger.info(f"Deleted gallery {gallery.id}")

    def _ensure_slug_available(self, slug: str) -> None:
        taken = self.db.execute(
            select(Gallery.id).where(func.lower(Gallery.slug) == slug.lower())
        ).first()
        if taken is not None:
            raise ConflictError(f"Slug {slug} is already in use", code="slug_taken")

    def _flush_unique(self, slug: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            raise ConflictError(f"Slug {slug} is already in use", code="slug_taken") from e
