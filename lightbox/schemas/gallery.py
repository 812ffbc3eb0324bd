from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional, Union
from datetime import datetime
from lightbox.models.gallery import GalleryStatus

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

# Either a JSON array of ids or a comma-separated string
IdList = Union[List[Union[str, int]], str]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GalleryCreate(CamelModel):
    slug: str = Field(..., min_length=3, max_length=200, pattern=SLUG_PATTERN)
    title: str = Field(..., min_length=3, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[GalleryStatus] = None
    images: Optional[IdList] = None
    image_order: Optional[IdList] = None


class GalleryUpdate(CamelModel):
    slug: Optional[str] = Field(None, min_length=3, max_length=200, pattern=SLUG_PATTERN)
    title: Optional[str] = Field(None, min_length=3, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[GalleryStatus] = None
    images: Optional[IdList] = None
    image_order: Optional[IdList] = None


class GalleryImageAdd(BaseModel):
    image_id: str = Field(..., min_length=1)
    caption_override: Optional[str] = None


class GalleryImageResponse(CamelModel):
    id: str
    title: Optional[str] = None
    filename: Optional[str] = None
    caption_override: Optional[str] = None
    position: int
    urls: Dict[str, Optional[str]]


class GalleryResponse(CamelModel):
    id: str
    slug: str
    title: str
    description: Optional[str] = None
    status: GalleryStatus
    author_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    image_count: int
    cover_image: Optional[GalleryImageResponse] = None
    images: Optional[List[GalleryImageResponse]] = None


class GalleryEnvelope(BaseModel):
    ok: bool = True
    gallery: GalleryResponse


class GalleryPositionResponse(BaseModel):
    ok: bool = True
    position: int
