"""AWS S3 object store implementation."""

import logging
from typing import TYPE_CHECKING, Any

from typing_extensions import override

from s3_batch_streamer.config import S3Config
from s3_batch_streamer.errors import ErrorKind, ObjectStoreError
from s3_batch_streamer.models import ObjectDescriptor
from s3_batch_streamer.sources.base import ObjectHandle, ObjectStore

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

try:
    from botocore.exceptions import BotoCoreError, ClientError
except ImportError as e:
    _msg = "boto3 is required for S3 support. Install with: pip install s3-batch-streamer"
    raise ImportError(_msg) from e

logger = logging.getLogger(__name__)

# Response fields reported as system metadata, keyed by their HTTP header names.
_SYSTEM_METADATA = {
    "CacheControl": "Cache-Control",
    "ContentDisposition": "Content-Disposition",
    "ContentEncoding": "Content-Encoding",
    "ContentLength": "Content-Length",
    "ContentType": "Content-Type",
    "ETag": "ETag",
    "LastModified": "Last-Modified",
    "ServerSideEncryption": "x-amz-server-side-encryption",
    "StorageClass": "x-amz-storage-class",
    "VersionId": "x-amz-version-id",
}


def _error_kind(e: ClientError) -> ErrorKind:
    error_code = e.response.get("Error", {}).get("Code", "Unknown")
    if error_code in ("404", "NoSuchKey", "NoSuchBucket"):
        return ErrorKind.NOT_FOUND
    return ErrorKind.PROVIDER


class S3ObjectHandle(ObjectHandle):
    """
    An open GetObject response.

    Wraps the streaming body so the HTTP connection is released on close.
    Botocore read failures surface as OSError.
    """

    def __init__(self, key: str, response: dict[str, Any]) -> None:
        super().__init__(key)
        self._response = response
        self._body = response["Body"]

    @override
    def _read(self, size: int) -> bytes:
        try:
            return self._body.read(None if size < 0 else size)
        except (BotoCoreError, ClientError) as e:
            raise OSError(f"Failed to read S3 object '{self.key}': {e}") from e

    @override
    def _close(self) -> None:
        self._body.close()

    @override
    def _abort(self) -> None:
        # Closing the body drops the connection under a blocked read.
        self._body.close()

    @override
    def get_metadata(self) -> dict[str, Any]:
        metadata: dict[str, Any] = dict(self._response.get("Metadata") or {})
        for field, header in _SYSTEM_METADATA.items():
            if field not in self._response:
                continue
            value = self._response[field]
            if field == "ETag" and isinstance(value, str):
                value = value.strip('"')
            elif field == "LastModified" and hasattr(value, "isoformat"):
                value = value.isoformat()
            metadata[header] = value
        return metadata


class S3ObjectStore(ObjectStore):
    """
    Open objects of one S3 bucket with boto3.

    Client and botocore errors are wrapped into ObjectStoreError; nothing is
    retried here, retries are left to the botocore client configuration.
    """

    def __init__(self, config: S3Config, client: "S3Client | None" = None) -> None:
        """
        Initialize S3ObjectStore.

        Args:
            config: Bucket and connection settings.
            client: Boto3 S3 client instance. If None, the client is built from config.
        """
        self.config = config
        self.bucket = config.bucket
        self.client = client or config.get_s3_client()

        logger.info("S3ObjectStore initialized for s3://%s", self.bucket)

    def _get(self, key: str, **kwargs: Any) -> dict[str, Any]:
        try:
            return self.client.get_object(Bucket=self.bucket, Key=key, **kwargs)
        except ClientError as e:
            msg = f"Failed to get S3 object s3://{self.bucket}/{key}: {e}"
            raise ObjectStoreError(msg, kind=_error_kind(e), source=e) from e
        except BotoCoreError as e:
            msg = f"Failed to get S3 object s3://{self.bucket}/{key}: {e}"
            raise ObjectStoreError(msg, kind=ErrorKind.CONNECTION, source=e) from e

    @override
    def get_object(self, key: str) -> S3ObjectHandle:
        logger.debug("Opening s3://%s/%s", self.bucket, key)
        return S3ObjectHandle(key, self._get(key))

    @override
    def get_object_range(self, key: str, length: int) -> S3ObjectHandle:
        if length < 1:
            raise ValueError("length must be positive")
        logger.debug("Opening first %d bytes of s3://%s/%s", length, self.bucket, key)
        return S3ObjectHandle(key, self._get(key, Range=f"bytes=0-{length - 1}"))

    @override
    def head(self, key: str) -> ObjectDescriptor:
        """
        Describe an object with HeadObject.

        HeadObject does not return the object owner, so ``owner`` is None;
        descriptors built from ``list_objects_v2(FetchOwner=True)`` carry it.
        """
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            msg = f"Failed to describe S3 object s3://{self.bucket}/{key}: {e}"
            raise ObjectStoreError(msg, kind=_error_kind(e), source=e) from e
        except BotoCoreError as e:
            msg = f"Failed to describe S3 object s3://{self.bucket}/{key}: {e}"
            raise ObjectStoreError(msg, kind=ErrorKind.CONNECTION, source=e) from e

        return ObjectDescriptor(
            bucket=self.bucket,
            key=key,
            size=response.get("ContentLength", 0),
            last_modified=response.get("LastModified"),
        )
