"""
Ordering of images inside galleries.

Positions within a gallery always form the contiguous sequence 1..k. Every
write below runs inside one transaction whose first statement updates the
gallery row. That write takes the row lock (PostgreSQL) or the database write
lock (SQLite) before anything is read, so concurrent writers on the same
gallery are serialised and each plans against committed state.
"""

from typing import Any, Iterable, List, Optional
import logging

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager

from lightbox.database import transaction
from lightbox.exceptions import ConflictError, NotFoundError
from lightbox.models.gallery import Gallery, GalleryImage
from lightbox.models.image import Image
from lightbox.services.image_records import ImageRecordStore

logger = logging.getLogger(__name__)


def parse_id_list(value: Any) -> List[str]:
    """Accept a list of ids or a comma-separated string; drop blanks."""
    if isinstance(value, (list, tuple)):
        items = ["" if v is None else str(v) for v in value]
    elif isinstance(value, str):
        items = value.split(",")
    else:
        return []
    return [item.strip() for item in items if item.strip()]


def normalize_image_selection(images: Any = None, image_order: Any = None) -> Optional[List[str]]:
    """
    Reconcile the two legacy request fields that both describe gallery contents.

    Returns ``None`` when neither field was supplied (leave membership alone).
    Otherwise the ``image_order`` ids come first, followed by any ``images``
    ids not already listed; duplicates keep their first occurrence. An empty
    result means "clear the gallery".

    TODO: collapse ``images``/``imageOrder`` into one ordered field once the
    admin client stops sending both.
    """
    if images is None and image_order is None:
        return None

    result: List[str] = []
    seen = set()
    for image_id in parse_id_list(image_order) + parse_id_list(images):
        if image_id not in seen:
            seen.add(image_id)
            result.append(image_id)
    return result


class GalleryOrderingEngine:
    def __init__(self, db: Session):
        self.db = db
        self.images = ImageRecordStore(db)

    def replace_membership(self, gallery_id: str, candidate_ids: Iterable[str]) -> List[GalleryImage]:
        """
        Atomically replace a gallery's contents with ``candidate_ids`` in order.

        Ids that do not reference an existing image are dropped silently; the
        survivors get positions 1..k in their input order.
        """
        candidates: List[str] = []
        for image_id in candidate_ids:
            if image_id not in candidates:
                candidates.append(image_id)

        with transaction(self.db):
            gallery = self._lock_gallery(gallery_id)

            for link in self._links(gallery_id):
                self.db.delete(link)
            self.db.flush()

            valid = self.images.existing_ids(candidates)
            links = [
                GalleryImage(gallery_id=gallery_id, image_id=image_id, position=position)
                for position, image_id in enumerate(
                    (image_id for image_id in candidates if image_id in valid), start=1
                )
            ]
            self.db.add_all(links)
            self._touch(gallery)
            self.db.flush()

        dropped = len(candidates) - len(links)
        if dropped:
            logger.info(f"Gallery {gallery_id} resync dropped {dropped} unknown image id(s)")
        logger.info(f"Gallery {gallery_id} resynced with {len(links)} image(s)")
        return links

    def append(self, gallery_id: str, image_id: str, caption_override: Optional[str] = None) -> GalleryImage:
        with transaction(self.db):
            gallery = self._lock_gallery(gallery_id)
            if self.db.get(Image, image_id, populate_existing=True) is None:
                raise NotFoundError(f"Image with id {image_id} not found", code="image_not_found")
            if self.db.get(GalleryImage, (gallery_id, image_id), populate_existing=True) is not None:
                raise ConflictError(
                    f"Image {image_id} is already in gallery {gallery_id}",
                    code="image_already_in_gallery",
                )

            max_position = self.db.execute(
                select(func.max(GalleryImage.position)).where(GalleryImage.gallery_id == gallery_id)
            ).scalar()
            link = GalleryImage(
                gallery_id=gallery_id,
                image_id=image_id,
                position=(max_position or 0) + 1,
                caption_override=caption_override or None,
            )
            self.db.add(link)
            self._touch(gallery)
            try:
                self.db.flush()
            except IntegrityError as e:
                raise ConflictError(f"Position conflict in gallery {gallery_id}") from e

        logger.info(f"Appended image {image_id} to gallery {gallery_id} at position {link.position}")
        return link

    def remove(self, gallery_id: str, image_id: str) -> None:
        """Remove one image and close the gap it leaves."""
        with transaction(self.db):
            gallery = self._lock_gallery(gallery_id)
            if not self._remove_link(gallery, image_id):
                raise NotFoundError(
                    f"Image {image_id} is not in gallery {gallery_id}",
                    code="image_not_in_gallery",
                )

        logger.info(f"Removed image {image_id} from gallery {gallery_id}")

    def detach_image(self, image_id: str) -> List[str]:
        """Remove an image from every gallery containing it; returns the affected gallery ids."""
        detached: List[str] = []
        with transaction(self.db):
            gallery_ids = sorted(
                self.db.execute(
                    select(GalleryImage.gallery_id).where(GalleryImage.image_id == image_id)
                ).scalars().all()
            )
            # Sorted lock order keeps concurrent detaches from deadlocking
            for gallery_id in gallery_ids:
                try:
                    gallery = self._lock_gallery(gallery_id)
                except NotFoundError:
                    continue
                # Membership is re-read under the lock; another writer may have won
                if self._remove_link(gallery, image_id):
                    detached.append(gallery_id)
        return detached

    def list_images(self, gallery_id: str) -> List[GalleryImage]:
        result = self.db.execute(
            select(GalleryImage)
            .join(GalleryImage.image)
            .options(contains_eager(GalleryImage.image))
            .where(GalleryImage.gallery_id == gallery_id)
            .order_by(GalleryImage.position.asc())
        )
        return list(result.scalars().all())

    def _lock_gallery(self, gallery_id: str) -> Gallery:
        """
        Bump ``updated_at`` and return the gallery, holding its write lock.

        Must be the first statement of the write: SQLite only locks on a
        write and ignores ``FOR UPDATE``, and reads taken before the lock
        could be stale by the time the write lands.
        """
        locked = self.db.execute(
            update(Gallery)
            .where(Gallery.id == gallery_id)
            .values(updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if locked.rowcount == 0:
            raise NotFoundError(f"Gallery with id {gallery_id} not found", code="gallery_not_found")
        return self.db.execute(
            select(Gallery)
            .where(Gallery.id == gallery_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def _remove_link(self, gallery: Gallery, image_id: str) -> bool:
        link = self.db.get(GalleryImage, (gallery.id, image_id), populate_existing=True)
        if link is None:
            return False
        self.db.delete(link)
        self.db.flush()
        self._renumber(gallery.id)
        self._touch(gallery)
        self.db.flush()
        return True

    def _links(self, gallery_id: str) -> List[GalleryImage]:
        result = self.db.execute(
            select(GalleryImage)
            .where(GalleryImage.gallery_id == gallery_id)
            .order_by(GalleryImage.position.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    def _renumber(self, gallery_id: str) -> None:
        # Ascending order means each target slot has already been vacated,
        # so flushing row by row never trips the (gallery_id, position) unique key.
        for position, link in enumerate(self._links(gallery_id), start=1):
            if link.position != position:
                link.position = position
                self.db.flush()

    def _touch(self, gallery: Gallery) -> None:
        self.db.expire(gallery, ["memberships"])
