"""Tests for lazy, once-only storage client construction."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from objstore.common.config import Settings
from objstore.infra.storage.client import (
    BucketAlreadyOwnedError,
    StorageInitError,
)
from objstore.infra.storage.objects import StoredObject
from objstore.infra.storage.provider import StoreProvider, get_store_provider
from tests.infra.mock_s3 import MockS3, client_error, make_provider


class TestStoreProvider:
    def test_client_is_built_lazily(self):
        fake = MockS3()
        provider = make_provider(fake)

        assert not provider.initialized
        assert fake.create_bucket_calls == 0

        provider.get_client()

        assert provider.initialized
        assert fake.buckets == {"reports"}

    def test_second_call_returns_cached_client(self):
        fake = MockS3()
        provider = make_provider(fake)

        first = provider.get_client()
        second = provider.get_client()

        assert first is second
        assert fake.create_bucket_calls == 1

    def test_handles_share_one_client(self):
        fake = MockS3()
        provider = make_provider(fake)

        a = provider.new_object("a.pdf")
        b = provider.new_object("b.pdf")

        assert isinstance(a, StoredObject)
        assert a.file_name == "a.pdf"
        assert b.file_name == "b.pdf"
        assert a._client is b._client
        assert fake.create_bucket_calls == 1

    def test_bucket_already_owned_fails_and_is_cached(self):
        fake = MockS3(
            create_bucket_error=client_error("BucketAlreadyOwnedByYou", "CreateBucket")
        )
        provider = make_provider(fake, Settings(S3_BUCKET="reports"))

        with pytest.raises(BucketAlreadyOwnedError) as first:
            provider.get_client()
        with pytest.raises(BucketAlreadyOwnedError) as second:
            provider.get_client()

        assert first.value is second.value
        assert fake.create_bucket_calls == 1

    def test_new_object_reraises_cached_error(self):
        fake = MockS3(create_bucket_error=client_error("AccessDenied", "CreateBucket"))
        provider = make_provider(fake)

        errors = []
        for key in ("a.pdf", "b.pdf", "c.pdf"):
            with pytest.raises(StorageInitError) as excinfo:
                provider.new_object(key)
            errors.append(excinfo.value)

        assert errors[0] is errors[1] is errors[2]
        assert fake.create_bucket_calls == 1

    def test_existing_bucket_accepted_when_enabled(self):
        fake = MockS3(buckets={"reports"})
        provider = make_provider(
            fake, Settings(S3_BUCKET="reports", S3_ACCEPT_EXISTING_BUCKET=True)
        )

        client = provider.get_client()

        assert client.bucket == "reports"
        assert fake.create_bucket_calls == 1

    def test_unexpected_factory_failure_is_wrapped(self):
        cause = ValueError("no credentials")

        def factory(settings):
            raise cause

        provider = StoreProvider(Settings(S3_BUCKET="reports"), factory=factory)

        with pytest.raises(StorageInitError, match="no credentials") as excinfo:
            provider.get_client()

        assert excinfo.value.__cause__ is cause

    def test_concurrent_first_calls_create_bucket_once(self):
        fake = MockS3()
        calls = []

        def slow_factory(settings):
            calls.append(threading.get_ident())
            time.sleep(0.05)
            return make_provider(fake, settings).get_client()

        provider = StoreProvider(Settings(S3_BUCKET="reports"), factory=slow_factory)

        with ThreadPoolExecutor(max_workers=8) as pool:
            clients = list(pool.map(lambda _: provider.get_client(), range(16)))

        assert len(calls) == 1
        assert fake.create_bucket_calls == 1
        assert all(c is clients[0] for c in clients)

    def test_concurrent_first_calls_share_failure(self):
        fake = MockS3(create_bucket_error=client_error("AccessDenied", "CreateBucket"))
        provider = make_provider(fake)

        def attempt(_):
            try:
                provider.get_client()
            except StorageInitError as exc:
                return exc
            return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            errors = list(pool.map(attempt, range(16)))

        assert fake.create_bucket_calls == 1
        assert errors[0] is not None
        assert all(e is errors[0] for e in errors)

    def test_cached_error_traceback_does_not_grow(self):
        fake = MockS3(create_bucket_error=client_error("AccessDenied", "CreateBucket"))
        provider = make_provider(fake)

        def depth_after_call() -> int:
            with pytest.raises(StorageInitError) as excinfo:
                provider.get_client()
            depth, tb = 0, excinfo.value.__traceback__
            while tb is not None:
                depth, tb = depth + 1, tb.tb_next
            return depth

        depths = [depth_after_call() for _ in range(200)]

        assert depths[0] == depths[1] == depths[-1]
        assert fake.create_bucket_calls == 1

    def test_reset_racing_readers_never_sees_half_state(self):
        fake = MockS3(buckets={"reports"})
        provider = make_provider(
            fake, Settings(S3_BUCKET="reports", S3_ACCEPT_EXISTING_BUCKET=True)
        )
        stop = threading.Event()

        def keep_resetting():
            while not stop.is_set():
                provider.reset()

        resetter = threading.Thread(target=keep_resetting)
        resetter.start()
        try:
            results = [provider.get_client() for _ in range(200)]
        finally:
            stop.set()
            resetter.join()

        assert all(client is not None for client in results)
        assert all(client.bucket == "reports" for client in results)

    def test_reset_allows_a_new_attempt(self):
        fake = MockS3(create_bucket_error=client_error("AccessDenied", "CreateBucket"))
        provider = make_provider(fake)

        with pytest.raises(StorageInitError):
            provider.get_client()

        fake.create_bucket_error = None
        provider.reset()

        assert provider.get_client().bucket == "reports"
        assert fake.create_bucket_calls == 2


def test_default_provider_is_process_wide():
    get_store_provider.cache_clear()  # type: ignore[attr-defined]
    try:
        assert get_store_provider() is get_store_provider()
    finally:
        get_store_provider.cache_clear()  # type: ignore[attr-defined]


def test_default_provider_reads_settings_lazily(monkeypatch: pytest.MonkeyPatch):
    from objstore.common.config import get_settings

    monkeypatch.setenv("S3_BUCKET", "lazy-bucket")
    get_settings.cache_clear()  # type: ignore[attr-defined]
    try:
        assert StoreProvider().settings.S3_BUCKET == "lazy-bucket"
    finally:
        get_settings.cache_clear()  # type: ignore[attr-defined]
