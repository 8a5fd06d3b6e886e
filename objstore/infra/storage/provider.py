"""Once-only construction of the shared storage client.

A :class:`StoreProvider` builds its client on first use and caches the
outcome. A failed construction is cached too: every later caller gets the
same exception instance back and no second bucket-create is attempted.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from functools import lru_cache
from typing import TYPE_CHECKING

from objstore.common.config import Settings, get_settings
from objstore.infra.observability.metrics import STORAGE_OPERATIONS
from objstore.infra.storage.client import StorageInitError
from objstore.infra.storage.objects import StoredObject
from objstore.infra.storage.s3_client import S3StorageClient

if TYPE_CHECKING:
    from objstore.infra.storage.client import StorageClient

logger = logging.getLogger("objstore.storage")

ClientFactory = Callable[[Settings], "StorageClient"]


def build_s3_client(settings: Settings) -> S3StorageClient:
    client = S3StorageClient(settings=settings)
    client.ensure_bucket()
    return client


class StoreProvider:
    """Owns the lazily built storage client for one bucket."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        factory: ClientFactory = build_s3_client,
    ) -> None:
        self._settings = settings
        self._factory = factory
        self._lock = threading.Lock()
        self._initialized = False
        self._client: StorageClient | None = None
        self._error: StorageInitError | None = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def initialized(self) -> bool:
        return self._initialized

    def get_client(self) -> "StorageClient":
        """Return the shared client, building it on the first call.

        Raises:
            StorageInitError: The cached construction failure, if any.
        """
        with self._lock:
            if not self._initialized:
                self._initialize()
            client, error = self._client, self._error
        if error is not None:
            # Same instance every time, but a fresh traceback per raise.
            raise error.with_traceback(None)
        return client

    def _initialize(self) -> None:
        try:
            self._client = self._factory(self.settings)
        except StorageInitError as exc:
            self._error = exc
        except Exception as exc:
            logger.error("storage client construction failed: %s", exc)
            self._error = StorageInitError(f"Failed to initialize storage: {exc}")
            self._error.__cause__ = exc
        self._initialized = True
        STORAGE_OPERATIONS.labels(
            "init", "error" if self._error is not None else "ok"
        ).inc()

    def new_object(self, key: str) -> StoredObject:
        """Return a handle for ``key`` backed by the shared client.

        Raises:
            StorageInitError: If the shared client failed to initialize.
        """
        return StoredObject(key, self.get_client())

    def reset(self) -> None:
        """Forget the cached outcome so the next call builds a fresh client."""
        with self._lock:
            self._initialized = False
            self._client = None
            self._error = None


@lru_cache(maxsize=1)
def get_store_provider() -> StoreProvider:
    return StoreProvider()
