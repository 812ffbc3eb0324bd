from io import BytesIO
import hashlib
import uuid

import pytest

from lightbox.exceptions import (
    HashError,
    InvalidReferenceError,
    RecordConflictError,
    StorageWriteError,
)
from lightbox.database import transaction
from lightbox.models.image import Image
from lightbox.services import upload_pipeline
from lightbox.services.image_records import ImageRecord, ImageRecordStore
from lightbox.services.upload_pipeline import UploadPipeline, UploadRequest, storage_filename
from lightbox.services.variants import VariantGenerator
from lightbox.storage import MemoryStorage
from lightbox.tests.helpers import make_image_bytes

SIZES = {"small": 20, "medium": 50, "large": 100}


class _ReadOnlyStorage(MemoryStorage):
    def write(self, key, data):
        raise OSError("disk full")


class _UnreadableStorage(MemoryStorage):
    def open(self, key):
        raise OSError("I/O error")


class _StuckOriginalStorage(MemoryStorage):
    """Originals cannot be deleted; everything else can."""

    def delete(self, key):
        if key.startswith("original/"):
            raise OSError("permission denied")
        super().delete(key)


def _pipeline(db, storage):
    return UploadPipeline(db, storage, variants=VariantGenerator(SIZES))


def _request(data, filename="holiday.png", **kwargs):
    return UploadRequest(
        stream=BytesIO(data), original_filename=filename, mime_type="image/png", **kwargs
    )


def test_storage_filename_keeps_lowercased_extension():
    assert storage_filename("abc", "Holiday.PNG") == "abc.png"
    assert storage_filename("abc", "archive.tar.gz") == "abc.gz"


def test_storage_filename_defaults_to_jpg():
    assert storage_filename("abc", None) == "abc.jpg"
    assert storage_filename("abc", "no-extension") == "abc.jpg"


def test_upload_stores_original_variants_and_record(db_session):
    storage = MemoryStorage()
    data = make_image_bytes(size=(120, 60))

    result = _pipeline(db_session, storage).upload(
        _request(data, title="Beach", caption="Low tide", uploaded_by=None)
    )

    image = result.image
    assert image.file_path == f"original/{image.id}.png"
    assert image.sha256 == hashlib.sha256(data).hexdigest()
    assert image.file_size == len(data)
    assert (image.width, image.height) == (120, 60)
    assert image.title == "Beach"
    assert image.caption == "Low tide"
    assert result.duplicate_of == []
    assert result.variants == {
        "small": f"thumbnails-20/{image.id}.png",
        "medium": f"thumbnails-50/{image.id}.png",
        "large": f"thumbnails-100/{image.id}.png",
    }
    assert set(storage.files) == {image.file_path, *result.variants.values()}
    assert db_session.query(Image).count() == 1


def test_undecodable_upload_is_kept_without_dimensions(db_session):
    storage = MemoryStorage()

    result = _pipeline(db_session, storage).upload(_request(b"definitely not pixels", "scan.jpg"))

    image = result.image
    assert image.width is None
    assert image.height is None
    assert result.variants == {}
    assert list(storage.files) == [f"original/{image.id}.jpg"]
    assert image.sha256 == hashlib.sha256(b"definitely not pixels").hexdigest()
    assert db_session.query(Image).count() == 1


def test_failed_variants_keep_detected_dimensions(db_session, monkeypatch):
    storage = MemoryStorage()
    generator = VariantGenerator(SIZES)

    def _explode(*args, **kwargs):
        raise RuntimeError("encoder crashed")

    monkeypatch.setattr("lightbox.services.variants.contain", _explode)

    result = UploadPipeline(db_session, storage, variants=generator).upload(
        _request(make_image_bytes(size=(40, 30)))
    )

    assert (result.image.width, result.image.height) == (40, 30)
    assert result.variants == {}
    assert list(storage.files) == [result.image.file_path]


def test_write_failure_leaves_nothing_behind(db_session):
    storage = _ReadOnlyStorage()

    with pytest.raises(StorageWriteError):
        _pipeline(db_session, storage).upload(_request(make_image_bytes()))

    assert storage.files == {}
    assert db_session.query(Image).count() == 0


def test_hash_failure_removes_the_original(db_session):
    storage = _UnreadableStorage()

    with pytest.raises(HashError):
        _pipeline(db_session, storage).upload(_request(make_image_bytes()))

    assert storage.files == {}
    assert db_session.query(Image).count() == 0


def test_record_conflict_removes_files(db_session, monkeypatch):
    clashing_id = uuid.UUID("00000000-0000-4000-8000-000000000001")
    db_session.add(Image(id=str(clashing_id), file_path="original/existing.png"))
    db_session.commit()
    monkeypatch.setattr(upload_pipeline.uuid, "uuid4", lambda: clashing_id)
    storage = MemoryStorage()

    with pytest.raises(RecordConflictError):
        _pipeline(db_session, storage).upload(_request(make_image_bytes()))

    assert storage.files == {}
    assert db_session.query(Image).count() == 1


def test_duplicate_content_creates_second_record(db_session):
    storage = MemoryStorage()
    data = make_image_bytes(color=(10, 200, 10))
    pipeline = _pipeline(db_session, storage)

    first = pipeline.upload(_request(data))
    second = pipeline.upload(_request(data, "copy.png"))

    assert first.image.id != second.image.id
    assert first.image.sha256 == second.image.sha256
    assert second.duplicate_of == [first.image.id]
    assert db_session.query(Image).count() == 2


def test_unknown_uploader_is_not_reported_as_path_conflict(db_session):
    record = ImageRecord(id="img-orphan", file_path="original/img-orphan.png", uploaded_by=424242)

    with pytest.raises(InvalidReferenceError) as exc_info:
        with transaction(db_session):
            ImageRecordStore(db_session).insert(record)

    assert exc_info.value.code == "invalid_reference"
    assert db_session.query(Image).count() == 0


def test_upload_by_deleted_user_cleans_up(db_session):
    storage = MemoryStorage()

    with pytest.raises(InvalidReferenceError):
        _pipeline(db_session, storage).upload(_request(make_image_bytes(), uploaded_by=424242))

    assert storage.files == {}
    assert db_session.query(Image).count() == 0


def test_variants_removed_even_when_original_delete_fails(db_session, monkeypatch):
    clashing_id = uuid.UUID("00000000-0000-4000-8000-000000000002")
    db_session.add(Image(id=str(clashing_id), file_path="original/existing.png"))
    db_session.commit()
    monkeypatch.setattr(upload_pipeline.uuid, "uuid4", lambda: clashing_id)
    storage = _StuckOriginalStorage()

    with pytest.raises(RecordConflictError):
        _pipeline(db_session, storage).upload(_request(make_image_bytes()))

    # Only the undeletable original survives; no thumbnail is orphaned
    assert list(storage.files) == [f"original/{clashing_id}.png"]
