from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from lightbox.database import Base


class Image(Base):
    __tablename__ = "images"

    id = Column(String(36), primary_key=True)
    file_path = Column(String(500), nullable=False, unique=True)  # storage key of the original
    # Best-effort dedup signal only; duplicate uploads are allowed
    sha256 = Column(String(64), nullable=True, index=True)
    mime_type = Column(String(100), nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    file_size = Column(Integer, nullable=True)
    title = Column(String(500), nullable=True)
    alt_text = Column(String(500), nullable=True)
    caption = Column(Text, nullable=True)
    source_url = Column(String(1000), nullable=True)
    uploaded_by = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    uploader = relationship("User")
    gallery_links = relationship(
        "GalleryImage",
        back_populates="image",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
