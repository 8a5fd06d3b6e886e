from __future__ import annotations

import os

import pytest

os.environ.setdefault("S3_BUCKET", "reports")
os.environ.setdefault("S3_REGION", "us-east-1")
os.environ["API_KEY_ENABLED"] = "false"

from objstore.common.config import get_settings  # noqa: E402
from objstore.infra.storage.provider import get_store_provider  # noqa: E402


@pytest.fixture(autouse=True)
def clear_cached_singletons():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    get_store_provider.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]
    get_store_provider.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture
def anyio_backend():
    return "asyncio"
