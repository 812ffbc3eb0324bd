# Import all models so they're registered with Base.metadata
from lightbox.models.user import User
from lightbox.models.image import Image
from lightbox.models.gallery import Gallery, GalleryImage, GalleryStatus

__all__ = [
    "User",
    "Image",
    "Gallery",
    "GalleryImage",
    "GalleryStatus",
]
