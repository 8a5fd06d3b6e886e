"""Storage client protocol, error taxonomy and data types.

Provider error codes are translated into the exception classes below at the
boundary (see :func:`classify_client_error`), so the rest of the code base
only ever catches typed errors.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Protocol


class StorageErrorKind(str, enum.Enum):
    """Closed set of provider error variants the storage layer distinguishes."""

    BUCKET_ALREADY_EXISTS = "bucket_already_exists"
    BUCKET_ALREADY_OWNED = "bucket_already_owned"
    NO_SUCH_KEY = "no_such_key"
    OTHER = "other"


_KIND_BY_CODE: dict[str, StorageErrorKind] = {
    "BucketAlreadyExists": StorageErrorKind.BUCKET_ALREADY_EXISTS,
    "BucketAlreadyOwnedByYou": StorageErrorKind.BUCKET_ALREADY_OWNED,
    "NoSuchKey": StorageErrorKind.NO_SUCH_KEY,
    # HEAD requests carry no body, so a missing key surfaces as a bare status.
    "404": StorageErrorKind.NO_SUCH_KEY,
    "NotFound": StorageErrorKind.NO_SUCH_KEY,
}


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""

    kind: StorageErrorKind = StorageErrorKind.OTHER

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class StorageInitError(StorageError):
    """The shared client could not be constructed."""


class BucketAlreadyExistsError(StorageInitError):
    """The bucket name is taken by another account."""

    kind = StorageErrorKind.BUCKET_ALREADY_EXISTS


class BucketAlreadyOwnedError(StorageInitError):
    """The bucket was already created by the calling account."""

    kind = StorageErrorKind.BUCKET_ALREADY_OWNED


class TransferError(StorageError):
    """An upload or download round trip failed."""


class ObjectNotFoundError(TransferError):
    """The requested key does not exist in the bucket."""

    kind = StorageErrorKind.NO_SUCH_KEY


def error_code(exc: BaseException) -> str | None:
    """Return the provider error code carried by a botocore ``ClientError``."""
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    code = response.get("Error", {}).get("Code")
    return str(code) if code is not None else None


def classify_client_error(exc: BaseException) -> StorageErrorKind:
    code = error_code(exc)
    if code is None:
        return StorageErrorKind.OTHER
    return _KIND_BY_CODE.get(code, StorageErrorKind.OTHER)


@dataclass(frozen=True, slots=True)
class ObjectInfo:
    """Key and size of an object that was just written."""

    key: str
    size_bytes: int


class StorageClient(Protocol):
    """Operations the object handles need from a storage backend."""

    bucket: str

    def put_bytes(self, *, object_key: str, data: bytes) -> None:
        """Upload ``data`` under ``object_key``, replacing any existing object.

        Raises:
            TransferError: If the upload fails.
        """
        ...

    def get_bytes(self, *, object_key: str) -> bytes:
        """Download the full object stored under ``object_key``.

        Raises:
            ObjectNotFoundError: If the key does not exist.
            TransferError: If the download fails for any other reason.
        """
        ...

    def probe(self, *, object_key: str) -> Any:
        """Request the object without reading its body.

        Raises:
            ObjectNotFoundError: If the key does not exist.
            StorageError: If presence could not be determined.
        """
        ...
