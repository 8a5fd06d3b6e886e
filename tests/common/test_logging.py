import json
import logging

import pytest

from objstore.common.config import Settings
from objstore.common.logging import (
    STORAGE_LOGGER,
    JsonFormatter,
    StorageContextFilter,
    setup_logging,
)


def _record(msg: str, *args, **attrs) -> logging.LogRecord:
    record = logging.LogRecord(
        name=STORAGE_LOGGER,
        level=logging.ERROR,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def storage_filters():
    storage_logger = logging.getLogger(STORAGE_LOGGER)
    saved = list(storage_logger.filters)
    yield lambda: [
        f for f in storage_logger.filters if isinstance(f, StorageContextFilter)
    ]
    storage_logger.filters[:] = saved


def test_json_formatter_includes_storage_fields():
    record = _record(
        "%s bucket already created",
        "reports",
        extra={"bucket": "reports", "code": "BucketAlreadyOwnedByYou"},
    )

    payload = json.loads(JsonFormatter().format(record))

    assert payload == {
        "level": "ERROR",
        "logger": STORAGE_LOGGER,
        "message": "reports bucket already created",
        "bucket": "reports",
        "code": "BucketAlreadyOwnedByYou",
    }


def test_json_formatter_skips_unset_storage_fields():
    record = _record("probe failed", extra={"key": "a.pdf", "code": None})

    payload = json.loads(JsonFormatter().format(record))

    assert payload["key"] == "a.pdf"
    assert "code" not in payload


def test_json_formatter_without_extra():
    payload = json.loads(JsonFormatter().format(_record("plain")))

    assert payload["message"] == "plain"
    assert "exception" not in payload


def test_json_formatter_keeps_non_ascii():
    text = JsonFormatter().format(_record("clé manquante"))

    assert "clé manquante" in text


def test_context_filter_stamps_configured_bucket():
    record = _record("missing", extra={"key": "a.pdf", "code": "NoSuchKey"})

    assert StorageContextFilter("reports").filter(record) is True

    assert record.extra == {"key": "a.pdf", "code": "NoSuchKey", "bucket": "reports"}


def test_context_filter_keeps_explicit_bucket_and_copies_extra():
    extra = {"bucket": "archive"}
    record = _record("created", extra=extra)

    StorageContextFilter("reports").filter(record)

    assert record.extra["bucket"] == "archive"
    assert record.extra is not extra


def test_context_filter_handles_record_without_extra():
    record = _record("plain")

    StorageContextFilter("reports").filter(record)

    assert record.extra == {"bucket": "reports"}


def test_setup_logging_installs_single_storage_filter(storage_filters):
    setup_logging(Settings(S3_BUCKET="first"))
    setup_logging(Settings(S3_BUCKET="second"))

    installed = storage_filters()
    assert len(installed) == 1
    assert installed[0].bucket == "second"
