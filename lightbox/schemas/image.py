from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional
from datetime import datetime


class ImageResponse(BaseModel):
    id: str
    file_path: str
    filename: Optional[str] = None
    title: Optional[str] = None
    mime_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    file_size: Optional[int] = None
    caption: Optional[str] = None
    alt_text: Optional[str] = None
    source_url: Optional[str] = None
    sha256: Optional[str] = None
    uploaded_by: Optional[int] = None
    created_at: Optional[datetime] = None
    urls: Dict[str, Optional[str]]
    thumbnails: Dict[str, Optional[str]]

    model_config = ConfigDict(from_attributes=True)


class ImageUploadResponse(BaseModel):
    ok: bool = True
    id: str
    path: str
    mime_type: str
    file_size: int
    sha256: str
    width: Optional[int] = None
    height: Optional[int] = None
    thumbnails: Dict[str, str]
    duplicate_of: List[str] = []
