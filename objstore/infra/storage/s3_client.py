"""S3-compatible storage client implementation.

This module provides an S3-compatible storage client that works with
AWS S3, MinIO, and other S3-compatible object storage services.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Any

from objstore.infra.storage.client import (
    BucketAlreadyExistsError,
    BucketAlreadyOwnedError,
    ObjectNotFoundError,
    StorageError,
    StorageErrorKind,
    StorageInitError,
    TransferError,
    classify_client_error,
    error_code,
)

if TYPE_CHECKING:
    from objstore.common.config import Settings

logger = logging.getLogger("objstore.storage")

# us-east-1 rejects an explicit LocationConstraint.
_DEFAULT_REGION = "us-east-1"


class S3StorageClient:
    """S3-compatible object storage client bound to a single bucket.

    Uses boto3 for all storage operations. Uploads and downloads go through
    boto3's managed transfer, which switches to multipart above
    ``S3_MULTIPART_THRESHOLD``.
    """

    def __init__(self, *, settings: "Settings") -> None:
        """Initialize the S3 client with configuration from settings.

        No network traffic happens here; call :meth:`ensure_bucket` to
        create the configured bucket.

        Args:
            settings: Application settings containing S3 configuration.

        Raises:
            StorageInitError: If the boto3 session cannot be established.
        """
        self._settings = settings
        self.bucket = settings.S3_BUCKET
        self._client = self._build_client(settings)
        self._transfer_config = self._build_transfer_config(settings)

    @staticmethod
    def _build_client(settings: "Settings") -> Any:
        """Create a boto3 S3 client from settings and the ambient credential chain."""
        import boto3
        from botocore.config import Config
        from botocore.exceptions import BotoCoreError

        config = Config(
            s3={"addressing_style": settings.S3_ADDRESSING_STYLE},
            connect_timeout=settings.S3_CONNECT_TIMEOUT,
            read_timeout=settings.S3_READ_TIMEOUT,
        )

        try:
            session = boto3.session.Session(profile_name=settings.S3_PROFILE)
            return session.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                region_name=settings.S3_REGION,
                aws_access_key_id=settings.S3_ACCESS_KEY_ID,
                aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
                use_ssl=bool(settings.S3_USE_SSL),
                config=config,
            )
        except BotoCoreError as exc:
            logger.error("Failed to create S3 session: %s", exc)
            raise StorageInitError(f"Failed to create S3 session: {exc}") from exc

    @staticmethod
    def _build_transfer_config(settings: "Settings") -> Any:
        from boto3.s3.transfer import TransferConfig

        return TransferConfig(multipart_threshold=settings.S3_MULTIPART_THRESHOLD)

    def ensure_bucket(self) -> None:
        """Create the configured bucket.

        An existing bucket is reported as an error unless
        ``S3_ACCEPT_EXISTING_BUCKET`` is set, in which case a bucket already
        owned by the caller counts as success.

        Raises:
            BucketAlreadyExistsError: The name is taken by another account.
            BucketAlreadyOwnedError: The caller already owns the bucket.
            StorageInitError: Any other failure.
        """
        params: dict[str, Any] = {"Bucket": self.bucket}
        region = self._settings.S3_REGION
        if region and region != _DEFAULT_REGION:
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}

        try:
            self._client.create_bucket(**params)
        except Exception as exc:
            kind = classify_client_error(exc)
            code = error_code(exc)
            extra = {"extra": {"bucket": self.bucket, "code": code}}
            if kind is StorageErrorKind.BUCKET_ALREADY_OWNED:
                if self._settings.S3_ACCEPT_EXISTING_BUCKET:
                    logger.info("%s bucket already created", self.bucket, extra=extra)
                    return
                logger.error("%s bucket already created", self.bucket, extra=extra)
                raise BucketAlreadyOwnedError(
                    f"Bucket {self.bucket} already created", code=code
                ) from exc
            if kind is StorageErrorKind.BUCKET_ALREADY_EXISTS:
                logger.error("%s bucket already exists", self.bucket, extra=extra)
                raise BucketAlreadyExistsError(
                    f"Bucket {self.bucket} already exists", code=code
                ) from exc
            logger.error("%s", exc, extra=extra)
            raise StorageInitError(
                f"Failed to create bucket {self.bucket}: {exc}", code=code
            ) from exc

    def put_bytes(self, *, object_key: str, data: bytes) -> None:
        """Upload ``data`` under ``object_key``, replacing any existing object."""
        try:
            self._client.upload_fileobj(
                io.BytesIO(data),
                self.bucket,
                object_key,
                Config=self._transfer_config,
            )
        except Exception as exc:
            raise TransferError(
                f"Failed to upload object {object_key}: {exc}", code=error_code(exc)
            ) from exc

    def get_bytes(self, *, object_key: str) -> bytes:
        """Download the full object stored under ``object_key`` into memory."""
        buffer = io.BytesIO()
        try:
            self._client.download_fileobj(
                self.bucket,
                object_key,
                buffer,
                Config=self._transfer_config,
            )
        except Exception as exc:
            raise _transfer_error(exc, object_key, "download") from exc
        return buffer.getvalue()

    def probe(self, *, object_key: str) -> dict[str, Any]:
        """Issue a GET for ``object_key`` and close the body unread."""
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=object_key)
        except Exception as exc:
            raise _transfer_error(exc, object_key, "probe") from exc

        body = response.get("Body")
        if body is not None:
            body.close()
        return response


def _transfer_error(exc: BaseException, object_key: str, action: str) -> StorageError:
    code = error_code(exc)
    if classify_client_error(exc) is StorageErrorKind.NO_SUCH_KEY:
        return ObjectNotFoundError(f"Object {object_key} does not exist", code=code)
    return TransferError(f"Failed to {action} object {object_key}: {exc}", code=code)
