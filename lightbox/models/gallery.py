from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Enum,
    Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from lightbox.database import Base
import enum


class GalleryStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Gallery(Base):
    __tablename__ = "galleries"

    id = Column(String(36), primary_key=True)
    slug = Column(String(200), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(
            GalleryStatus,
            values_callable=lambda obj: [e.value for e in obj],
            native_enum=False,
        ),
        nullable=False,
        default=GalleryStatus.DRAFT,
    )
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    published_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    author = relationship("User")
    memberships = relationship(
        "GalleryImage",
        back_populates="gallery",
        order_by="GalleryImage.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # Slugs are unique regardless of case
        Index("uq_galleries_slug_lower", func.lower(slug), unique=True),
    )


class GalleryImage(Base):
    """Membership of an image in a gallery, at a 1-based position."""

    __tablename__ = "gallery_images"

    gallery_id = Column(
        String(36), ForeignKey("galleries.id", ondelete="CASCADE"), primary_key=True
    )
    image_id = Column(
        String(36), ForeignKey("images.id", ondelete="CASCADE"), primary_key=True
    )
    position = Column(Integer, nullable=False)
    caption_override = Column(Text, nullable=True)

    # Relationships
    gallery = relationship("Gallery", back_populates="memberships")
    image = relationship("Image", back_populates="gallery_links")

    __table_args__ = (
        UniqueConstraint("gallery_id", "position", name="uq_gallery_images_position"),
        Index("ix_gallery_images_gallery_position", "gallery_id", "position"),
    )
