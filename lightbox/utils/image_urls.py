from pathlib import PurePosixPath
from typing import Dict, Optional, Tuple

from lightbox.storage import StoragePort
from lightbox.services.variants import variant_key


def public_url(key: str, prefix: str) -> str:
    return f"{prefix.rstrip('/')}/{key}"


def url_if_exists(storage: StoragePort, key: str, prefix: str) -> Optional[str]:
    return public_url(key, prefix) if storage.exists(key) else None


def resolve_image_urls(
    storage: StoragePort,
    file_path: Optional[str],
    edges: list[int],
    prefix: str,
) -> Tuple[Optional[str], Dict[str, Optional[str]]]:
    """
    Public URLs for an original and each of its variants.

    Only files actually present in storage get a URL, so a record whose
    thumbnailing failed simply reports ``None`` for its variants.
    """
    if not file_path:
        urls = {"original": None}
        urls.update({f"thumbnail{edge}": None for edge in edges})
        return None, urls

    filename = PurePosixPath(file_path).name
    urls = {"original": url_if_exists(storage, file_path, prefix)}
    for edge in edges:
        urls[f"thumbnail{edge}"] = url_if_exists(storage, variant_key(edge, filename), prefix)
    return filename, urls


def thumbnail_map(
    urls: Dict[str, Optional[str]], sizes: Dict[str, int]
) -> Dict[str, Optional[str]]:
    """Named view (``small``/``medium``/``large``) over the edge-keyed URL map."""
    return {name: urls.get(f"thumbnail{edge}") for name, edge in sizes.items()}
