"""
Square thumbnail variants for uploaded originals.

Every variant is exactly S x S: the source is resized to fit inside the box
with its aspect ratio preserved and centred on an opaque white canvas. A
variant is stored under ``thumbnails-S/`` with the original's filename, so
its location is derivable from the filename and the edge length alone.
"""

from io import BytesIO
from pathlib import PurePosixPath
from typing import Dict, Tuple
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from lightbox.exceptions import DecodeError, VariantError
from lightbox.storage import StoragePort, variant_dir

logger = logging.getLogger(__name__)

BACKGROUND = (255, 255, 255)
DEFAULT_SIZES = {"small": 200, "medium": 500, "large": 1000}

# Pillow raises a broad set of exception types on malformed input
_DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError)


def variant_key(edge: int, filename: str) -> str:
    return f"{variant_dir(edge)}/{filename}"


def contain_dimensions(source_size: Tuple[int, int], edge: int) -> Tuple[int, int]:
    """Largest (width, height) with the source aspect ratio that fits in edge x edge."""
    source_width, source_height = source_size
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Invalid source size: {source_size}")

    if source_width >= source_height:
        new_width = edge
        new_height = max(1, round(edge * source_height / source_width))
    else:
        new_height = edge
        new_width = max(1, round(edge * source_width / source_height))

    return (new_width, new_height)


def contain(img: Image.Image, edge: int) -> Image.Image:
    """Fit ``img`` inside an edge x edge white square without cropping."""
    resized = img.resize(contain_dimensions(img.size, edge), Image.Resampling.LANCZOS)

    canvas = Image.new("RGB", (edge, edge), BACKGROUND)
    paste_x = (edge - resized.width) // 2
    paste_y = (edge - resized.height) // 2
    if resized.mode == "RGBA":
        canvas.paste(resized, (paste_x, paste_y), mask=resized.getchannel("A"))
    else:
        canvas.paste(resized.convert("RGB"), (paste_x, paste_y))
    return canvas


class VariantGenerator:
    """
    Produces the fixed set of square variants for one original.

    Args:
        sizes: Variant name -> edge length in pixels
        quality: Encoder quality for lossy formats (1-95)
    """

    def __init__(self, sizes: Dict[str, int] | None = None, quality: int = 85):
        self.sizes = dict(sizes or DEFAULT_SIZES)
        self.quality = max(1, min(95, quality))

    @property
    def edges(self) -> list[int]:
        return list(self.sizes.values())

    def detect_dimensions(self, storage: StoragePort, key: str) -> Tuple[int, int]:
        """Read (width, height) from the image header."""
        try:
            with storage.open(key) as stream, Image.open(stream) as img:
                return img.size
        except _DECODE_ERRORS as e:
            raise DecodeError(f"Failed to detect image dimensions of {key}: {e}") from e

    def generate(self, storage: StoragePort, key: str) -> Dict[str, str]:
        """
        Write every configured variant of the original stored at ``key``.

        Returns:
            Variant name -> storage key of the written variant

        Raises:
            DecodeError: If the original cannot be decoded
            VariantError: If resizing, encoding or writing any variant fails;
                variants already written by this call are removed first
        """
        filename = PurePosixPath(key).name
        source = self._decode(storage, key)
        touched: list[str] = []
        written: Dict[str, str] = {}

        try:
            with source:
                output_format = self._output_format(filename, source.format)
                prepared = self._normalise_mode(source)
                for name, edge in self.sizes.items():
                    target_key = variant_key(edge, filename)
                    payload = self._encode(contain(prepared, edge), output_format)
                    touched.append(target_key)
                    storage.write(target_key, payload)
                    written[name] = target_key
                    logger.debug(f"Generated {edge}px variant: {target_key}")
        except Exception as e:
            self._discard(storage, touched)
            raise VariantError(f"Failed to generate variants for {key}: {e}") from e

        return written

    def delete_variants(self, storage: StoragePort, filename: str) -> None:
        for edge in self.edges:
            storage.delete(variant_key(edge, filename))

    def _discard(self, storage: StoragePort, keys: list[str]) -> None:
        for target_key in keys:
            try:
                storage.delete(target_key)
            except OSError:
                logger.error(f"Failed to remove partial variant {target_key}", exc_info=True)

    def _decode(self, storage: StoragePort, key: str) -> Image.Image:
        try:
            with storage.open(key) as stream:
                img = Image.open(stream)
                img.load()
        except _DECODE_ERRORS as e:
            raise DecodeError(f"Failed to decode {key}: {e}") from e
        return img

    @staticmethod
    def _normalise_mode(img: Image.Image) -> Image.Image:
        # Honour EXIF orientation so portrait photos are not padded sideways
        img = ImageOps.exif_transpose(img)
        if img.mode in ("RGBA", "RGB"):
            return img
        if img.mode in ("LA", "PA") or (img.mode == "P" and "transparency" in img.info):
            return img.convert("RGBA")
        return img.convert("RGB")

    @staticmethod
    def _output_format(filename: str, source_format: str | None) -> str:
        extension = PurePosixPath(filename).suffix.lower()
        registered = Image.registered_extensions()
        if extension in registered and registered[extension] in Image.SAVE:
            return registered[extension]
        if source_format and source_format in Image.SAVE:
            return source_format
        return "PNG"

    def _encode(self, img: Image.Image, output_format: str) -> bytes:
        buffer = BytesIO()
        if output_format == "JPEG":
            img.save(buffer, output_format, quality=self.quality, optimize=True, progressive=True)
        elif output_format == "WEBP":
            img.save(buffer, output_format, quality=self.quality)
        else:
            img.save(buffer, output_format)
        return buffer.getvalue()
