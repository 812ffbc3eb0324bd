from starlette import status


class LightboxError(Exception):
    """Base error carrying a stable machine-readable code and an HTTP status."""

    code = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message}


class ValidationFailed(LightboxError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(LightboxError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class RecordConflictError(ConflictError):
    code = "record_conflict"


class NotFoundError(LightboxError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class DecodeError(LightboxError):
    code = "decode_failed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class VariantError(LightboxError):
    code = "variant_failed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StorageIOError(LightboxError):
    code = "io_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StorageWriteError(StorageIOError):
    code = "storage_write_failed"


class HashError(StorageIOError):
    code = "hash_failed"


class InvalidReferenceError(LightboxError):
    """A foreign key (e.g. the uploader) points at a row that no longer exists."""

    code = "invalid_reference"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
