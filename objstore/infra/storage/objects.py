from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from objstore.infra.observability.metrics import STORAGE_OPERATIONS
from objstore.infra.storage.client import ObjectNotFoundError, StorageError

if TYPE_CHECKING:
    from objstore.infra.storage.client import StorageClient

logger = logging.getLogger("objstore.storage")


class StoredObject:
    """Handle for a single key in the configured bucket.

    Holds nothing but the key and the shared client; every operation is one
    independent round trip to the store.
    """

    __slots__ = ("_file_name", "_client")

    def __init__(self, file_name: str, client: "StorageClient") -> None:
        self._file_name = file_name
        self._client = client

    def __repr__(self) -> str:
        return f"StoredObject(file_name={self._file_name!r})"

    @property
    def file_name(self) -> str:
        return self._file_name

    def write(self, data: bytes) -> None:
        """Upload ``data``, overwriting whatever is stored under the key.

        Raises:
            TypeError: If ``data`` is not a bytes-like object.
            TransferError: If the upload fails.
        """
        payload = bytes(memoryview(data))
        try:
            self._client.put_bytes(object_key=self._file_name, data=payload)
        except StorageError:
            STORAGE_OPERATIONS.labels("write", "error").inc()
            raise
        STORAGE_OPERATIONS.labels("write", "ok").inc()

    def read(self) -> bytes:
        """Download the whole object into memory.

        Raises:
            ObjectNotFoundError: If the key does not exist.
            TransferError: If the download fails.
        """
        try:
            data = self._client.get_bytes(object_key=self._file_name)
        except ObjectNotFoundError:
            STORAGE_OPERATIONS.labels("read", "missing").inc()
            raise
        except StorageError:
            STORAGE_OPERATIONS.labels("read", "error").inc()
            raise
        STORAGE_OPERATIONS.labels("read", "ok").inc()
        return data

    def exists(self) -> bool:
        """Probe for the key.

        Returns False both when the key is missing and when the probe itself
        fails, so a False result does not prove absence.
        """
        try:
            self._client.probe(object_key=self._file_name)
        except ObjectNotFoundError as exc:
            logger.error(
                "%s error: the key '%s' does not exist",
                exc.code or "NoSuchKey",
                self._file_name,
                extra={"extra": {"key": self._file_name, "code": exc.code}},
            )
            STORAGE_OPERATIONS.labels("exists", "missing").inc()
            return False
        except StorageError as exc:
            logger.error(
                "%s",
                exc,
                extra={"extra": {"key": self._file_name, "code": exc.code}},
            )
            STORAGE_OPERATIONS.labels("exists", "error").inc()
            return False
        STORAGE_OPERATIONS.labels("exists", "ok").inc()
        return True
