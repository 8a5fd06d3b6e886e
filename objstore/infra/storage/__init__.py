"""Object storage access layer.

A :class:`StoreProvider` lazily builds one S3-compatible client per bucket
and hands out :class:`StoredObject` handles that read, write and probe
individual keys.
"""

from .client import (
    BucketAlreadyExistsError,
    BucketAlreadyOwnedError,
    ObjectInfo,
    ObjectNotFoundError,
    StorageClient,
    StorageError,
    StorageErrorKind,
    StorageInitError,
    TransferError,
)
from .objects import StoredObject
from .provider import StoreProvider, get_store_provider

__all__ = [
    "BucketAlreadyExistsError",
    "BucketAlreadyOwnedError",
    "ObjectInfo",
    "ObjectNotFoundError",
    "StorageClient",
    "StorageError",
    "StorageErrorKind",
    "StorageInitError",
    "StoreProvider",
    "StoredObject",
    "TransferError",
    "get_store_provider",
]
