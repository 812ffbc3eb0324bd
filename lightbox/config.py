from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator
import json


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./lightbox.db"

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Uploads
    UPLOAD_DIR: str = "./uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024
    UPLOAD_RATE_LIMIT: str = "30/minute"
    HASH_CHUNK_SIZE: int = 64 * 1024

    # Thumbnails: variant name -> square edge length in pixels
    THUMBNAIL_SIZES: dict[str, int] = {"small": 200, "medium": 500, "large": 1000}
    THUMBNAIL_QUALITY: int = 85

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]

    @field_validator("THUMBNAIL_SIZES", mode="before")
    @classmethod
    def parse_thumbnail_sizes(cls, v):
        """Parse THUMBNAIL_SIZES from a JSON string if it's a string, otherwise return as-is."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                raise ValueError(f"Invalid JSON in THUMBNAIL_SIZES: {v}")
        return v

    @field_validator("THUMBNAIL_SIZES")
    @classmethod
    def check_thumbnail_sizes(cls, v: dict[str, int]) -> dict[str, int]:
        if not v:
            raise ValueError("THUMBNAIL_SIZES must define at least one size")
        if any(size <= 0 for size in v.values()):
            raise ValueError("THUMBNAIL_SIZES edges must be positive")
        if len(set(v.values())) != len(v):
            raise ValueError("THUMBNAIL_SIZES edges must be distinct")
        return v

    model_config = ConfigDict(env_file=".env")


settings = Settings()
