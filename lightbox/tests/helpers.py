from io import BytesIO
import uuid

from PIL import Image as PILImage

from lightbox.models.gallery import Gallery, GalleryImage
from lightbox.models.image import Image


def make_image_bytes(size=(120, 60), color=(200, 30, 30), fmt="PNG", mode="RGB"):
    buffer = BytesIO()
    PILImage.new(mode, size, color).save(buffer, fmt)
    return buffer.getvalue()


def seed_images(db, count, prefix="img"):
    images = []
    for n in range(count):
        image_id = f"{prefix}-{n}-{uuid.uuid4().hex[:8]}"
        images.append(
            Image(
                id=image_id,
                file_path=f"original/{image_id}.png",
                sha256="0" * 64,
                mime_type="image/png",
                title=f"Image {n}",
            )
        )
    db.add_all(images)
    db.commit()
    return [image.id for image in images]


def seed_gallery(db, slug="summer-trip", title="Summer trip"):
    gallery = Gallery(id=str(uuid.uuid4()), slug=slug, title=title)
    db.add(gallery)
    db.commit()
    return gallery.id


def positions(db, gallery_id):
    """[(image_id, position)] in position order, read straight from the table."""
    db.expire_all()
    rows = (
        db.query(GalleryImage.image_id, GalleryImage.position)
        .filter(GalleryImage.gallery_id == gallery_id)
        .order_by(GalleryImage.position)
        .all()
    )
    return [(row.image_id, row.position) for row in rows]


def ordered_ids(db, gallery_id):
    return [image_id for image_id, _ in positions(db, gallery_id)]
